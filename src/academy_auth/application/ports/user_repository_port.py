"""Port for user record persistence used by authentication services."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol
from uuid import UUID

from academy_auth.domain.auth.account_status import AccountStatus
from academy_auth.domain.auth.reset_ledger import ResetTokenLedger
from academy_auth.domain.auth.roles import Role
from academy_auth.domain.auth.session_tokens import SessionTokens


class DuplicateEmailError(ValueError):
    """Raised when a user with the same normalized email already exists."""

    def __init__(self, *, email: str) -> None:
        super().__init__("User with this email already exists")
        self.email = email


class ConcurrentUpdateError(RuntimeError):
    """Raised when a user row changed between load and save."""

    def __init__(self, *, user_id: UUID) -> None:
        super().__init__("User record was modified concurrently, please retry")
        self.user_id = user_id


@dataclass(frozen=True)
class UserCreateInput:
    """Input payload for inserting one user row."""

    user_id: UUID
    email: str
    password_hash: str
    first_name: str
    last_name: str
    role: Role
    status: AccountStatus
    phone_number: str | None = None
    sessions: SessionTokens = field(default_factory=SessionTokens)


@dataclass(frozen=True)
class UserRecord:
    """User aggregate: identity, credentials, live sessions and reset ledger."""

    user_id: UUID
    email: str
    password_hash: str
    first_name: str
    last_name: str
    role: Role
    status: AccountStatus
    sessions: SessionTokens
    reset_ledger: ResetTokenLedger
    version: int
    created_at: datetime
    updated_at: datetime
    phone_number: str | None = None
    last_login: datetime | None = None

    @property
    def is_active(self) -> bool:
        return self.status.can_authenticate


class UserRepositoryPort(Protocol):
    """User repository contract."""

    async def get_by_id(self, *, user_id: UUID) -> UserRecord | None:
        """Return user by id, including inactive users."""

    async def get_by_email(self, *, email: str) -> UserRecord | None:
        """Return user by normalized email, including inactive users."""

    async def get_by_reset_token_hash(self, *, token_hash: str) -> UserRecord | None:
        """Return the user holding one stored reset-token hash, expired or not."""

    async def create_user(self, payload: UserCreateInput) -> UserRecord:
        """Insert one user row or raise `DuplicateEmailError`."""

    async def save_user(self, user: UserRecord) -> UserRecord:
        """Persist mutable fields in one write guarded by `user.version`.

        Raises `ConcurrentUpdateError` when the stored version no longer matches.
        """
