"""Port for signing and verifying access/refresh tokens."""

from __future__ import annotations

from datetime import timedelta
from typing import Protocol


class InvalidTokenError(ValueError):
    """Raised when a token signature, type or expiry check fails."""


class TokenCodecPort(Protocol):
    """Signed token contract carrying a subject identifier and expiry."""

    @property
    def access_ttl(self) -> timedelta:
        """Lifetime of issued access tokens."""

    @property
    def refresh_ttl(self) -> timedelta:
        """Lifetime of issued refresh tokens."""

    def issue_access(self, subject_id: str) -> str:
        """Sign one short-lived access token."""

    def issue_refresh(self, subject_id: str) -> str:
        """Sign one long-lived refresh token."""

    def verify_access(self, token: str) -> str:
        """Return subject id or raise `InvalidTokenError`."""

    def verify_refresh(self, token: str) -> str:
        """Return subject id or raise `InvalidTokenError`."""
