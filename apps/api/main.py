"""academy-auth API entrypoint and HTTP wiring."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from academy_auth.application.ports.notification_sender_port import NotificationSenderPort
from academy_auth.application.ports.token_codec_port import TokenCodecPort
from academy_auth.application.services.auth_service import AuthService
from academy_auth.application.services.notification_dispatcher import (
    NotificationDispatcher,
    NotificationHooks,
)
from academy_auth.config.settings import Settings, load_settings
from academy_auth.infrastructure.db.session import create_session_factory
from academy_auth.infrastructure.db.user_repository import SqlAlchemyUserRepository
from academy_auth.infrastructure.http.auth_router import REFRESH_PATH, build_auth_router
from academy_auth.infrastructure.http.cookies import CookiePolicy
from academy_auth.infrastructure.http.error_handlers import install_error_handlers
from academy_auth.infrastructure.logging import configure_logging
from academy_auth.infrastructure.notifications.sender import build_notification_sender
from academy_auth.infrastructure.security.jwt_token_codec import JwtTokenCodec
from academy_auth.infrastructure.security.password_hasher import BcryptPasswordHasher

API_HOST = "0.0.0.0"
API_PORT = 8000
logger = logging.getLogger(__name__)


def build_auth_service(
    settings: Settings,
    *,
    token_codec: TokenCodecPort | None = None,
    notifier: NotificationSenderPort | None = None,
) -> AuthService:
    """Build authentication service with SQLAlchemy-backed dependencies."""

    session_factory = create_session_factory(settings.database_url)
    return AuthService(
        users=SqlAlchemyUserRepository(session_factory),
        password_hasher=BcryptPasswordHasher(rounds=settings.bcrypt_rounds),
        token_codec=token_codec or JwtTokenCodec.from_settings(settings),
        notifier=notifier or build_notification_sender(settings),
        client_url=settings.client_url,
        dispatcher=NotificationDispatcher(),
        hooks=NotificationHooks(
            password_changed=settings.notify_password_changed,
            password_reset=settings.notify_password_reset,
            profile_updated=settings.notify_profile_updated,
        ),
    )


def create_app(
    *,
    settings: Settings | None = None,
    auth_service: AuthService | None = None,
) -> FastAPI:
    """Create FastAPI app exposing the auth token lifecycle routes.

    Settings are loaded from the environment when not supplied, so a missing
    `JWT_SECRET` aborts startup instead of failing individual requests.
    """

    if settings is None:
        settings = load_settings()
    configure_logging(level=settings.log_level)

    if auth_service is None:
        auth_service = build_auth_service(settings)

    # Cookie lifetimes follow the codec actually signing the tokens.
    cookie_policy = CookiePolicy(
        access_ttl=auth_service.token_codec.access_ttl,
        refresh_ttl=auth_service.token_codec.refresh_ttl,
        refresh_path=REFRESH_PATH,
        secure=settings.secure_cookies,
    )

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        logger.info("api_startup app_env=%s", settings.app_env)
        yield
        await auth_service.dispatcher.drain()
        logger.info("api_shutdown")

    app = FastAPI(title="academy-auth", lifespan=lifespan)
    install_error_handlers(app)
    app.include_router(build_auth_router(auth_service=auth_service, cookie_policy=cookie_policy))
    return app


def run_asgi_server(*, host: str = API_HOST, port: int = API_PORT) -> None:
    """Run the API as a long-lived ASGI process using application factory mode."""

    uvicorn.run(
        "apps.api.main:create_app",
        host=host,
        port=port,
        factory=True,
    )


def main() -> None:
    """Run API runtime process."""

    run_asgi_server()


if __name__ == "__main__":
    main()
