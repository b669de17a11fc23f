"""HMAC-signed JWT codec for access and refresh tokens."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Any, Literal
from uuid import uuid4

import jwt

from academy_auth.application.ports.token_codec_port import InvalidTokenError, TokenCodecPort
from academy_auth.config.settings import Settings

JWT_ALGORITHM = "HS256"
DEFAULT_ACCESS_TTL = timedelta(minutes=15)
DEFAULT_REFRESH_TTL = timedelta(days=7)

TokenType = Literal["access", "refresh"]

logger = logging.getLogger(__name__)


class MissingSigningSecretError(RuntimeError):
    """Raised at construction time when no signing secret is configured."""


class JwtTokenCodec(TokenCodecPort):
    """Sign and verify compact tokens carrying `sub`, `type`, `jti` and expiry."""

    def __init__(
        self,
        *,
        access_secret: str | None,
        refresh_secret: str | None = None,
        access_ttl: timedelta = DEFAULT_ACCESS_TTL,
        refresh_ttl: timedelta = DEFAULT_REFRESH_TTL,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        if not access_secret:
            raise MissingSigningSecretError("JWT_SECRET environment variable is not defined")
        self._access_secret = access_secret
        self._refresh_secret = refresh_secret or access_secret
        self._access_ttl = access_ttl
        self._refresh_ttl = refresh_ttl
        self._now = now or (lambda: datetime.now(tz=UTC))

    @classmethod
    def from_settings(cls, settings: Settings) -> JwtTokenCodec:
        if settings.jwt_refresh_secret is None:
            logger.warning("jwt_refresh_secret_unset falling_back_to=JWT_SECRET")
        return cls(
            access_secret=settings.jwt_secret,
            refresh_secret=settings.effective_refresh_secret,
            access_ttl=settings.jwt_access_expire,
            refresh_ttl=settings.jwt_refresh_expire,
        )

    @property
    def access_ttl(self) -> timedelta:
        return self._access_ttl

    @property
    def refresh_ttl(self) -> timedelta:
        return self._refresh_ttl

    def issue_access(self, subject_id: str) -> str:
        return self._issue(subject_id, token_type="access")

    def issue_refresh(self, subject_id: str) -> str:
        return self._issue(subject_id, token_type="refresh")

    def verify_access(self, token: str) -> str:
        return self._verify(token, token_type="access")

    def verify_refresh(self, token: str) -> str:
        return self._verify(token, token_type="refresh")

    def _secret_for(self, token_type: TokenType) -> str:
        return self._access_secret if token_type == "access" else self._refresh_secret

    def _ttl_for(self, token_type: TokenType) -> timedelta:
        return self._access_ttl if token_type == "access" else self._refresh_ttl

    def _issue(self, subject_id: str, *, token_type: TokenType) -> str:
        issued_at = self._now()
        payload: dict[str, Any] = {
            "sub": subject_id,
            "type": token_type,
            "jti": uuid4().hex,
            "iat": issued_at,
            "exp": issued_at + self._ttl_for(token_type),
        }
        return jwt.encode(payload, self._secret_for(token_type), algorithm=JWT_ALGORITHM)

    def _verify(self, token: str, *, token_type: TokenType) -> str:
        try:
            payload = jwt.decode(
                token,
                self._secret_for(token_type),
                algorithms=[JWT_ALGORITHM],
                options={"require": ["sub", "type", "exp"]},
            )
        except jwt.PyJWTError as exc:
            raise InvalidTokenError(f"{token_type} token rejected") from exc

        if payload.get("type") != token_type:
            raise InvalidTokenError(f"{token_type} token rejected")

        subject_id = payload.get("sub")
        if not isinstance(subject_id, str) or not subject_id:
            raise InvalidTokenError(f"{token_type} token rejected")
        return subject_id
