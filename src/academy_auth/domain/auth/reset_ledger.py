"""Single-slot hashed password-reset token with expiry and cooldown."""

from __future__ import annotations

import hashlib
import math
import secrets
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta

RESET_TOKEN_TTL = timedelta(hours=1)
_RESET_TOKEN_BYTES = 32


def hash_reset_token(raw_token: str) -> str:
    """Return the one-way digest stored in place of a delivered reset token."""

    return hashlib.sha256(raw_token.encode("utf-8")).hexdigest()


def generate_reset_token() -> str:
    return secrets.token_hex(_RESET_TOKEN_BYTES)


@dataclass(frozen=True)
class IssuedResetToken:
    """Raw token to deliver together with the ledger that stores its hash."""

    raw_token: str
    ledger: ResetTokenLedger


@dataclass(frozen=True)
class ResetTokenLedger:
    """Hashed reset token and its absolute expiry; both set or both empty."""

    token_hash: str | None = None
    expires_at: datetime | None = None

    def __post_init__(self) -> None:
        if (self.token_hash is None) != (self.expires_at is None):
            raise ValueError("reset token hash and expiry must be set together")

    @property
    def is_empty(self) -> bool:
        return self.token_hash is None

    def is_live(self, *, now: datetime) -> bool:
        """Return whether a pending token exists and has not expired yet."""

        return self.expires_at is not None and self.expires_at > now

    def remaining(self, *, now: datetime) -> timedelta:
        if self.expires_at is None or self.expires_at <= now:
            return timedelta(0)
        return self.expires_at - now

    def minutes_left(self, *, now: datetime) -> int:
        """Return whole minutes of cooldown left, rounded up."""

        return math.ceil(self.remaining(now=now).total_seconds() / 60)

    def accepts(self, raw_token: str, *, now: datetime) -> bool:
        """Return whether a presented raw token matches the live stored hash."""

        if self.token_hash is None or not self.is_live(now=now):
            return False
        return secrets.compare_digest(self.token_hash, hash_reset_token(raw_token))

    def clear(self) -> ResetTokenLedger:
        return ResetTokenLedger()

    @classmethod
    def issue(
        cls,
        *,
        now: datetime,
        ttl: timedelta = RESET_TOKEN_TTL,
        token_factory: Callable[[], str] = generate_reset_token,
    ) -> IssuedResetToken:
        """Generate a fresh raw token and a ledger holding its hash and expiry."""

        raw_token = token_factory()
        return IssuedResetToken(
            raw_token=raw_token,
            ledger=cls(token_hash=hash_reset_token(raw_token), expires_at=now + ttl),
        )
