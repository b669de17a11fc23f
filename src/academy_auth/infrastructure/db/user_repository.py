"""SQLAlchemy adapter for user record persistence."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, cast
from uuid import UUID

import sqlalchemy as sa
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from academy_auth.application.ports.user_repository_port import (
    ConcurrentUpdateError,
    DuplicateEmailError,
    UserCreateInput,
    UserRecord,
    UserRepositoryPort,
)
from academy_auth.domain.auth.account_status import AccountStatus
from academy_auth.domain.auth.reset_ledger import ResetTokenLedger
from academy_auth.domain.auth.roles import Role
from academy_auth.domain.auth.session_tokens import SessionTokens
from academy_auth.infrastructure.db.metadata import users


class SqlAlchemyUserRepository(UserRepositoryPort):
    """User repository backed by SQLAlchemy async sessions."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_by_id(self, *, user_id: UUID) -> UserRecord | None:
        """Return user by id, including inactive users."""

        return await self._fetch_one(users.c.id == user_id)

    async def get_by_email(self, *, email: str) -> UserRecord | None:
        """Return user by normalized email, including inactive users."""

        return await self._fetch_one(users.c.email == email)

    async def get_by_reset_token_hash(self, *, token_hash: str) -> UserRecord | None:
        """Return the user holding one stored reset-token hash."""

        return await self._fetch_one(users.c.reset_password_token == token_hash)

    async def create_user(self, payload: UserCreateInput) -> UserRecord:
        """Insert one user row, mapping unique-email violations to `DuplicateEmailError`."""

        statement = sa.insert(users).values(
            id=payload.user_id,
            email=payload.email,
            password_hash=payload.password_hash,
            first_name=payload.first_name,
            last_name=payload.last_name,
            phone_number=payload.phone_number,
            role=payload.role.value,
            status=payload.status.value,
            refresh_tokens=payload.sessions.as_list(),
            version=1,
        ).returning(*users.c)

        async with self._session_factory() as session:
            try:
                result = await session.execute(statement)
                await session.commit()
            except IntegrityError as exc:
                await session.rollback()
                raise DuplicateEmailError(email=payload.email) from exc

        row = result.mappings().one()
        return _to_user_record(row)

    async def save_user(self, user: UserRecord) -> UserRecord:
        """Write all mutable fields when the stored version still matches."""

        statement = (
            sa.update(users)
            .where(
                users.c.id == user.user_id,
                users.c.version == user.version,
            )
            .values(
                password_hash=user.password_hash,
                first_name=user.first_name,
                last_name=user.last_name,
                phone_number=user.phone_number,
                role=user.role.value,
                status=user.status.value,
                refresh_tokens=user.sessions.as_list(),
                reset_password_token=user.reset_ledger.token_hash,
                reset_password_expire=user.reset_ledger.expires_at,
                last_login=user.last_login,
                version=users.c.version + 1,
                updated_at=datetime.now(tz=UTC),
            )
            .returning(*users.c)
        )

        async with self._session_factory() as session:
            result = await session.execute(statement)
            row = result.mappings().first()
            await session.commit()

        if row is None:
            raise ConcurrentUpdateError(user_id=user.user_id)
        return _to_user_record(row)

    async def _fetch_one(self, condition: sa.ColumnElement[bool]) -> UserRecord | None:
        statement = sa.select(*users.c).where(condition).limit(1)

        async with self._session_factory() as session:
            result = await session.execute(statement)

        row = result.mappings().first()
        if row is None:
            return None
        return _to_user_record(row)


def _to_user_record(row: sa.RowMapping) -> UserRecord:
    raw_user_id = row["id"]
    user_id = raw_user_id if isinstance(raw_user_id, UUID) else UUID(str(raw_user_id))
    return UserRecord(
        user_id=user_id,
        email=cast(str, row["email"]),
        password_hash=cast(str, row["password_hash"]),
        first_name=cast(str, row["first_name"]),
        last_name=cast(str, row["last_name"]),
        phone_number=cast(str | None, row["phone_number"]),
        role=Role(cast(str, row["role"])),
        status=AccountStatus(cast(str, row["status"])),
        sessions=SessionTokens.from_iterable(cast(list[str] | None, row["refresh_tokens"])),
        reset_ledger=ResetTokenLedger(
            token_hash=cast(str | None, row["reset_password_token"]),
            expires_at=_as_utc(row["reset_password_expire"]),
        ),
        last_login=_as_utc(row["last_login"]),
        version=int(row["version"]),
        created_at=cast(datetime, _as_utc(row["created_at"])),
        updated_at=cast(datetime, _as_utc(row["updated_at"])),
    )


def _as_utc(value: Any) -> datetime | None:
    """Return an aware UTC datetime; SQLite hands back naive values."""

    if value is None:
        return None
    moment = cast(datetime, value)
    if moment.tzinfo is None:
        return moment.replace(tzinfo=UTC)
    return moment.astimezone(UTC)
