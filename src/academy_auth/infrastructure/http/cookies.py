"""Token cookie helpers."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from fastapi import Response

ACCESS_COOKIE_NAME = "accessToken"
REFRESH_COOKIE_NAME = "refreshToken"
_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


@dataclass(frozen=True)
class CookiePolicy:
    """Cookie attributes shared by every token response."""

    access_ttl: timedelta
    refresh_ttl: timedelta
    refresh_path: str
    secure: bool = False


def set_token_cookies(
    response: Response,
    *,
    policy: CookiePolicy,
    access_token: str,
    refresh_token: str,
) -> None:
    """Attach httpOnly access and refresh cookies; the refresh cookie is path-scoped."""

    response.set_cookie(
        ACCESS_COOKIE_NAME,
        access_token,
        max_age=int(policy.access_ttl.total_seconds()),
        httponly=True,
        secure=policy.secure,
        samesite="strict",
    )
    response.set_cookie(
        REFRESH_COOKIE_NAME,
        refresh_token,
        max_age=int(policy.refresh_ttl.total_seconds()),
        path=policy.refresh_path,
        httponly=True,
        secure=policy.secure,
        samesite="strict",
    )


def clear_token_cookies(response: Response, *, policy: CookiePolicy) -> None:
    """Overwrite both token cookies with empty values expiring at the epoch."""

    response.set_cookie(ACCESS_COOKIE_NAME, "", expires=_EPOCH, httponly=True)
    response.set_cookie(
        REFRESH_COOKIE_NAME,
        "",
        expires=_EPOCH,
        path=policy.refresh_path,
        httponly=True,
    )
