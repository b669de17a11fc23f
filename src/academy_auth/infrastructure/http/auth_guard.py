"""Access-token extraction and resolution for protected auth endpoints."""

from __future__ import annotations

from academy_auth.application.ports.user_repository_port import UserRecord
from academy_auth.application.services.auth_service import AuthService, NotAuthorizedError
from academy_auth.infrastructure.http.cookies import ACCESS_COOKIE_NAME


def extract_bearer_token(authorization_header: str | None) -> str | None:
    """Extract token from `Authorization: Bearer <token>`; malformed headers yield None."""

    if authorization_header is None or not authorization_header.strip():
        return None

    parts = authorization_header.strip().split()
    if len(parts) != 2 or parts[0].lower() != "bearer" or not parts[1].strip():
        return None
    return parts[1]


class AccessTokenGuard:
    """Resolve the authenticated caller from a bearer header or the access cookie."""

    def __init__(self, *, auth_service: AuthService) -> None:
        self._auth_service = auth_service

    async def require_user(
        self,
        *,
        authorization_header: str | None,
        cookies: dict[str, str],
    ) -> UserRecord:
        """Return the active caller or raise `NotAuthorizedError`."""

        token = extract_bearer_token(authorization_header) or cookies.get(ACCESS_COOKIE_NAME)
        if not token:
            raise NotAuthorizedError(self._auth_service.messages.not_authorized)
        return await self._auth_service.authenticate_access_token(token)
