"""Runtime settings loaded from environment variables."""

from __future__ import annotations

import re
from datetime import timedelta
from functools import lru_cache
from typing import Annotated, Any, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

NonEmptyStr = Annotated[str, Field(min_length=1)]
PositiveInt = Annotated[int, Field(gt=0)]

_DURATION_PATTERN = re.compile(r"^\s*(\d+)\s*([smhd]?)\s*$")
_DURATION_UNITS = {
    "": "seconds",
    "s": "seconds",
    "m": "minutes",
    "h": "hours",
    "d": "days",
}


def parse_duration(value: Any) -> timedelta:
    """Parse `15m` / `7d` / `3600` style durations into a positive timedelta."""

    if isinstance(value, timedelta):
        duration = value
    elif isinstance(value, int | float):
        duration = timedelta(seconds=value)
    else:
        match = _DURATION_PATTERN.match(str(value))
        if match is None:
            raise ValueError(f"invalid duration: {value!r}")
        amount, unit = match.groups()
        duration = timedelta(**{_DURATION_UNITS[unit]: int(amount)})
    if duration <= timedelta(0):
        raise ValueError("duration must be positive")
    return duration


class Settings(BaseSettings):
    """Environment-driven application settings."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    database_url: NonEmptyStr = Field(validation_alias="DATABASE_URL")
    jwt_secret: NonEmptyStr = Field(validation_alias="JWT_SECRET")
    jwt_refresh_secret: str | None = Field(default=None, validation_alias="JWT_REFRESH_SECRET")
    jwt_access_expire: timedelta = Field(
        default=timedelta(minutes=15),
        validation_alias="JWT_ACCESS_EXPIRE",
    )
    jwt_refresh_expire: timedelta = Field(
        default=timedelta(days=7),
        validation_alias="JWT_REFRESH_EXPIRE",
    )
    app_env: Literal["development", "production", "test"] = Field(
        default="development",
        validation_alias="APP_ENV",
    )
    client_url: NonEmptyStr = Field(
        default="http://localhost:3000",
        validation_alias="CLIENT_URL",
    )
    email_host: str | None = Field(default=None, validation_alias="EMAIL_HOST")
    email_port: PositiveInt = Field(default=587, validation_alias="EMAIL_PORT")
    email_user: str | None = Field(default=None, validation_alias="EMAIL_USER")
    email_password: str | None = Field(default=None, validation_alias="EMAIL_PASSWORD")
    email_from: NonEmptyStr = Field(
        default="AI4SID~Academy <info@ai4sid.org>",
        validation_alias="EMAIL_FROM",
    )
    email_use_tls: bool = Field(default=True, validation_alias="EMAIL_USE_TLS")
    notify_password_changed: bool = Field(default=True, validation_alias="NOTIFY_PASSWORD_CHANGED")
    notify_password_reset: bool = Field(default=True, validation_alias="NOTIFY_PASSWORD_RESET")
    notify_profile_updated: bool = Field(default=True, validation_alias="NOTIFY_PROFILE_UPDATED")
    bcrypt_rounds: Annotated[int, Field(ge=4, le=31)] = Field(
        default=10,
        validation_alias="BCRYPT_ROUNDS",
    )
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    @field_validator("jwt_access_expire", "jwt_refresh_expire", mode="before")
    @classmethod
    def _parse_duration(cls, value: Any) -> timedelta:
        return parse_duration(value)

    @field_validator("jwt_refresh_secret", "email_host", mode="before")
    @classmethod
    def _blank_as_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @property
    def effective_refresh_secret(self) -> str:
        """Refresh signing secret, falling back to the access secret when unset.

        The fallback means a leaked access secret can also forge refresh tokens.
        """

        return self.jwt_refresh_secret or self.jwt_secret

    @property
    def secure_cookies(self) -> bool:
        return self.app_env == "production"


@lru_cache(maxsize=1)
def load_settings() -> Settings:
    """Load and cache application settings."""

    return Settings()  # type: ignore[call-arg]
