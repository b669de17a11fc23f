"""Pydantic request/response contracts for the auth HTTP surface."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, StringConstraints, field_validator
from pydantic.alias_generators import to_camel

from academy_auth.application.ports.user_repository_port import UserRecord
from academy_auth.domain.auth.account_status import AccountStatus
from academy_auth.domain.auth.credentials import PasswordPolicyError, require_strong_password
from academy_auth.domain.auth.roles import Role

PersonName = Annotated[
    str,
    StringConstraints(strip_whitespace=True, min_length=1, max_length=50, pattern=r"^[a-zA-Z\s\-']+$"),
]
PhoneNumber = Annotated[
    str,
    StringConstraints(strip_whitespace=True, max_length=30, pattern=r"^[\d\s\-+()]*$"),
]
RequiredStr = Annotated[str, Field(min_length=1)]


class CamelModel(BaseModel):
    """Base model exchanging camelCase keys on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RegisterRequest(CamelModel):
    """Registration payload contract."""

    first_name: PersonName
    last_name: PersonName
    email: Annotated[EmailStr, Field(max_length=100)]
    password: RequiredStr
    phone_number: PhoneNumber | None = None

    @field_validator("password")
    @classmethod
    def _password_policy(cls, value: str) -> str:
        try:
            require_strong_password(password=value)
        except PasswordPolicyError as exc:
            raise ValueError(str(exc)) from exc
        return value


class LoginRequest(CamelModel):
    """Login payload contract."""

    email: EmailStr
    password: RequiredStr


class LogoutRequest(CamelModel):
    """Optional body carrying the refresh token of the session to end."""

    refresh_token: str | None = None


class ChangePasswordRequest(CamelModel):
    """Change-password payload contract."""

    current_password: RequiredStr
    new_password: RequiredStr


class ForgotPasswordRequest(CamelModel):
    """Forgot-password payload contract."""

    email: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class ResetPasswordRequest(CamelModel):
    """Reset-password payload contract; the token travels in the path."""

    password: RequiredStr


class ProfileUpdateRequest(CamelModel):
    """Profile update payload; omitted fields stay unchanged."""

    first_name: PersonName | None = None
    last_name: PersonName | None = None
    phone_number: PhoneNumber | None = None


class UserSummary(CamelModel):
    """Public user fields; credentials and token state are never serialized."""

    id: UUID
    first_name: str
    last_name: str
    email: str
    role: Role
    status: AccountStatus
    phone_number: str | None = None
    last_login: datetime | None = None

    @classmethod
    def from_record(cls, user: UserRecord) -> UserSummary:
        return cls(
            id=user.user_id,
            first_name=user.first_name,
            last_name=user.last_name,
            email=user.email,
            role=user.role,
            status=user.status,
            phone_number=user.phone_number,
            last_login=user.last_login,
        )


class TokenResponse(CamelModel):
    """Issued token pair plus user summary."""

    success: Literal[True] = True
    access_token: str
    refresh_token: str
    user: UserSummary


class MessageResponse(CamelModel):
    """Plain success message."""

    success: Literal[True] = True
    message: str


class UserResponse(CamelModel):
    """User summary envelope."""

    success: Literal[True] = True
    data: UserSummary
    message: str | None = None


class ForgotPasswordResponse(CamelModel):
    """Forgot-password outcome; cooldown fields only appear while a token is pending."""

    success: Literal[True] = True
    message: str
    cooldown: bool | None = None
    minutes_left: int | None = None
    expires_at: datetime | None = None
