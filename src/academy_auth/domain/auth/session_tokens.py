"""Bounded allow-list of live refresh tokens embedded in a user record."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass

MAX_SESSIONS = 5


@dataclass(frozen=True)
class SessionTokens:
    """Ordered refresh tokens that are still accepted for rotation, oldest first.

    The list is a revocation allow-list only. Expiry is enforced by the token
    signature, never by this collection.
    """

    tokens: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if len(self.tokens) > MAX_SESSIONS:
            object.__setattr__(self, "tokens", self.tokens[-MAX_SESSIONS:])

    @classmethod
    def from_iterable(cls, tokens: Iterable[str] | None) -> SessionTokens:
        return cls(tuple(tokens or ()))

    def add(self, token: str) -> SessionTokens:
        """Append one token and evict the oldest entries beyond capacity."""

        return SessionTokens((*self.tokens, token)[-MAX_SESSIONS:])

    def remove(self, token: str) -> SessionTokens:
        """Drop every exact match; removing an absent token is a no-op."""

        return SessionTokens(tuple(existing for existing in self.tokens if existing != token))

    def rotate(self, *, used: str, replacement: str) -> SessionTokens:
        """Discard the presented token and append its replacement."""

        return self.remove(used).add(replacement)

    def contains(self, token: str) -> bool:
        return token in self.tokens

    def clear(self) -> SessionTokens:
        """Revoke every session."""

        return SessionTokens()

    def as_list(self) -> list[str]:
        return list(self.tokens)

    def __len__(self) -> int:
        return len(self.tokens)

    def __iter__(self) -> Iterator[str]:
        return iter(self.tokens)

    def __contains__(self, token: object) -> bool:
        return token in self.tokens
