"""Port for the credential verifier: one-way password hashing and comparison."""

from __future__ import annotations

from typing import Protocol


class PasswordHasherPort(Protocol):
    """Salted, cost-tunable password hashing contract."""

    def hash_password(self, password: str) -> str:
        """Return a salted hash safe to store; the plaintext is never kept."""

    def verify_password(self, *, password: str, password_hash: str) -> bool:
        """Return whether `password` matches `password_hash`.

        Malformed stored hashes compare as a mismatch instead of raising.
        """
