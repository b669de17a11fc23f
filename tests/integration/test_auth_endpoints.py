from __future__ import annotations

from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

import sqlalchemy as sa
from alembic.config import Config
from fastapi import FastAPI
from fastapi.testclient import TestClient

from alembic import command
from academy_auth.application.ports.notification_sender_port import NotificationRecipient
from academy_auth.config.settings import Settings
from academy_auth.infrastructure.db.metadata import users
from academy_auth.infrastructure.security.jwt_token_codec import JwtTokenCodec
from apps.api.main import build_auth_service, create_app

PASSWORD = "Str0ng!Pass"
NEW_PASSWORD = "N3w!Password"


class RecordingNotifier:
    def __init__(self) -> None:
        self.reset_urls: list[str] = []
        self.kinds: list[str] = []

    async def send_welcome(self, recipient: NotificationRecipient) -> None:
        self.kinds.append("welcome")

    async def send_password_reset(self, recipient: NotificationRecipient, *, reset_url: str) -> None:
        self.kinds.append("password_reset")
        self.reset_urls.append(reset_url)

    async def send_password_changed(self, recipient: NotificationRecipient) -> None:
        self.kinds.append("password_changed")

    async def send_password_reset_success(self, recipient: NotificationRecipient) -> None:
        self.kinds.append("password_reset_success")

    async def send_profile_updated(self, recipient: NotificationRecipient) -> None:
        self.kinds.append("profile_updated")


class ShiftedClock:
    def __init__(self) -> None:
        self.offset = timedelta(0)

    def __call__(self) -> datetime:
        return datetime.now(tz=UTC) + self.offset


def _upgrade_head(tmp_path: Path, filename: str) -> tuple[str, str]:
    db_path = tmp_path / filename
    sync_url = f"sqlite+pysqlite:///{db_path}"
    async_url = f"sqlite+aiosqlite:///{db_path}"

    alembic_config = Config("alembic.ini")
    alembic_config.set_main_option("sqlalchemy.url", sync_url)
    command.upgrade(alembic_config, "head")

    return sync_url, async_url


def _build_app(
    async_url: str,
    *,
    notifier: RecordingNotifier,
    clock: ShiftedClock | None = None,
) -> FastAPI:
    settings = Settings(
        _env_file=None,
        DATABASE_URL=async_url,
        JWT_SECRET="integration-access-secret",
        JWT_REFRESH_SECRET="integration-refresh-secret",
        APP_ENV="test",
        CLIENT_URL="https://academy.ai4sid.org",
        BCRYPT_ROUNDS=4,
    )  # type: ignore[call-arg]
    codec = JwtTokenCodec(
        access_secret=settings.jwt_secret,
        refresh_secret=settings.effective_refresh_secret,
        now=clock,
    )
    auth_service = build_auth_service(settings, token_codec=codec, notifier=notifier)
    return create_app(settings=settings, auth_service=auth_service)


def _register(client: TestClient, *, email: str = "ada@ai4sid.org") -> dict[str, Any]:
    response = client.post(
        "/auth/register",
        json={
            "firstName": "Ada",
            "lastName": "Lovelace",
            "email": email,
            "password": PASSWORD,
        },
    )
    assert response.status_code == 201
    return response.json()


def _login(client: TestClient, *, password: str = PASSWORD) -> dict[str, Any]:
    response = client.post("/auth/login", json={"email": "ada@ai4sid.org", "password": password})
    assert response.status_code == 200
    return response.json()


def _stored_sessions(sync_url: str) -> list[str]:
    engine = sa.create_engine(sync_url)
    with engine.connect() as connection:
        return list(connection.execute(sa.select(users.c.refresh_tokens)).scalar_one())


def test_register_returns_tokens_cookies_and_user_summary(tmp_path: Path) -> None:
    sync_url, async_url = _upgrade_head(tmp_path, "api_register.db")
    notifier = RecordingNotifier()

    with TestClient(_build_app(async_url, notifier=notifier)) as client:
        response = client.post(
            "/auth/register",
            json={
                "firstName": "Ada",
                "lastName": "Lovelace",
                "email": "Ada@AI4SID.org",
                "password": PASSWORD,
                "phoneNumber": "+44 20 7946 0000",
            },
        )

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["user"]["email"] == "ada@ai4sid.org"
    assert body["user"]["role"] == "student"
    assert body["user"]["status"] == "active"
    assert "passwordHash" not in body["user"]
    assert response.cookies.get("accessToken") == body["accessToken"]
    assert response.cookies.get("refreshToken") == body["refreshToken"]
    set_cookie = response.headers.get_list("set-cookie")
    assert any("Path=/auth/refresh" in header for header in set_cookie)
    assert all("HttpOnly" in header for header in set_cookie)
    assert _stored_sessions(sync_url) == [body["refreshToken"]]
    assert notifier.kinds == ["welcome"]


def test_cookie_lifetimes_follow_token_codec(tmp_path: Path) -> None:
    _, async_url = _upgrade_head(tmp_path, "api_cookie_ttl.db")
    settings = Settings(
        _env_file=None,
        DATABASE_URL=async_url,
        JWT_SECRET="integration-access-secret",
        APP_ENV="test",
        BCRYPT_ROUNDS=4,
    )  # type: ignore[call-arg]
    codec = JwtTokenCodec(
        access_secret=settings.jwt_secret,
        access_ttl=timedelta(minutes=5),
        refresh_ttl=timedelta(days=2),
    )
    auth_service = build_auth_service(settings, token_codec=codec, notifier=RecordingNotifier())

    with TestClient(create_app(settings=settings, auth_service=auth_service)) as client:
        _register(client)
        response = client.post(
            "/auth/login",
            json={"email": "ada@ai4sid.org", "password": PASSWORD},
        )

    set_cookie = response.headers.get_list("set-cookie")
    access_header = next(header for header in set_cookie if header.startswith("accessToken="))
    refresh_header = next(header for header in set_cookie if header.startswith("refreshToken="))
    assert "Max-Age=300" in access_header
    assert "Max-Age=172800" in refresh_header


def test_register_validation_and_duplicate_errors_use_envelope(tmp_path: Path) -> None:
    _, async_url = _upgrade_head(tmp_path, "api_register_errors.db")

    with TestClient(_build_app(async_url, notifier=RecordingNotifier())) as client:
        _register(client)
        duplicate = client.post(
            "/auth/register",
            json={
                "firstName": "Ada",
                "lastName": "Lovelace",
                "email": "ADA@ai4sid.org",
                "password": PASSWORD,
            },
        )
        weak = client.post(
            "/auth/register",
            json={
                "firstName": "Ada",
                "lastName": "Lovelace",
                "email": "weak@ai4sid.org",
                "password": "password",
            },
        )

    assert duplicate.status_code == 400
    assert duplicate.json() == {"success": False, "error": "User with this email already exists"}
    assert weak.status_code == 400
    assert weak.json()["success"] is False
    assert [error["field"] for error in weak.json()["errors"]] == ["password"]


def test_unknown_email_and_wrong_password_responses_are_identical(tmp_path: Path) -> None:
    _, async_url = _upgrade_head(tmp_path, "api_login_failures.db")

    with TestClient(_build_app(async_url, notifier=RecordingNotifier())) as client:
        _register(client)
        unknown = client.post(
            "/auth/login",
            json={"email": "nobody@ai4sid.org", "password": PASSWORD},
        )
        wrong = client.post(
            "/auth/login",
            json={"email": "ada@ai4sid.org", "password": "Wr0ng!Pass"},
        )

    assert unknown.status_code == wrong.status_code == 401
    assert unknown.content == wrong.content
    assert unknown.json() == {"success": False, "error": "Invalid email or password"}


def test_suspended_account_cannot_login(tmp_path: Path) -> None:
    sync_url, async_url = _upgrade_head(tmp_path, "api_login_suspended.db")

    with TestClient(_build_app(async_url, notifier=RecordingNotifier())) as client:
        _register(client)
        with sa.create_engine(sync_url).begin() as connection:
            connection.execute(sa.update(users).values(status="suspended"))
        response = client.post(
            "/auth/login",
            json={"email": "ada@ai4sid.org", "password": PASSWORD},
        )

    assert response.status_code == 401
    assert response.json()["error"] == "Your account is suspended. Please contact support."


def test_sessions_are_capped_at_five_most_recent(tmp_path: Path) -> None:
    sync_url, async_url = _upgrade_head(tmp_path, "api_session_cap.db")

    with TestClient(_build_app(async_url, notifier=RecordingNotifier())) as client:
        _register(client)
        issued = [_login(client)["refreshToken"] for _ in range(6)]

    assert _stored_sessions(sync_url) == issued[1:]


def test_refresh_rotates_and_rejects_reuse(tmp_path: Path) -> None:
    sync_url, async_url = _upgrade_head(tmp_path, "api_refresh.db")

    with TestClient(_build_app(async_url, notifier=RecordingNotifier())) as client:
        original = _register(client)["refreshToken"]

        rotated = client.post("/auth/refresh")
        client.cookies.clear()
        replayed = client.post("/auth/refresh", json={"refreshToken": original})
        missing = client.post("/auth/refresh")

    assert rotated.status_code == 200
    new_token = rotated.json()["refreshToken"]
    assert new_token != original
    assert _stored_sessions(sync_url) == [new_token]
    assert replayed.status_code == 401
    assert replayed.json() == {"success": False, "error": "Invalid or expired refresh token"}
    assert missing.status_code == 401
    assert missing.json() == {"success": False, "error": "Refresh token not provided"}


def test_expired_refresh_token_gets_generic_401(tmp_path: Path) -> None:
    _, async_url = _upgrade_head(tmp_path, "api_refresh_expired.db")
    clock = ShiftedClock()

    with TestClient(_build_app(async_url, notifier=RecordingNotifier(), clock=clock)) as client:
        _register(client)
        clock.offset = -timedelta(days=8)
        stale = _login(client)["refreshToken"]
        client.cookies.clear()
        response = client.post("/auth/refresh", json={"refreshToken": stale})

    assert response.status_code == 401
    assert response.json() == {"success": False, "error": "Invalid or expired refresh token"}


def test_malformed_refresh_body_is_rejected_with_401(tmp_path: Path) -> None:
    _, async_url = _upgrade_head(tmp_path, "api_refresh_malformed.db")

    with TestClient(_build_app(async_url, notifier=RecordingNotifier())) as client:
        _register(client)
        client.cookies.clear()
        numeric = client.post("/auth/refresh", json={"refreshToken": 12345})
        listed = client.post("/auth/refresh", json=["not", "an", "object"])

    for response in (numeric, listed):
        assert response.status_code == 401
        assert response.json() == {"success": False, "error": "Refresh token not provided"}


def test_me_requires_access_token(tmp_path: Path) -> None:
    _, async_url = _upgrade_head(tmp_path, "api_me.db")

    with TestClient(_build_app(async_url, notifier=RecordingNotifier())) as client:
        access_token = _register(client)["accessToken"]
        with_cookie = client.get("/auth/me")
        with_header = client.get("/auth/me", headers={"Authorization": f"Bearer {access_token}"})
        client.cookies.clear()
        anonymous = client.get("/auth/me")

    assert with_cookie.status_code == 200
    assert with_cookie.json()["data"]["email"] == "ada@ai4sid.org"
    assert with_header.json() == with_cookie.json()
    assert anonymous.status_code == 401
    assert anonymous.json() == {"success": False, "error": "Not authorized"}


def test_logout_and_logout_all_scenario(tmp_path: Path) -> None:
    sync_url, async_url = _upgrade_head(tmp_path, "api_logout.db")

    with TestClient(_build_app(async_url, notifier=RecordingNotifier())) as client:
        t1 = _register(client)["refreshToken"]
        t2 = _login(client)["refreshToken"]
        third = _login(client)
        t3 = third["refreshToken"]
        bearer = {"Authorization": f"Bearer {third['accessToken']}"}
        assert _stored_sessions(sync_url) == [t1, t2, t3]

        logout = client.post("/auth/logout", json={"refreshToken": t2}, headers=bearer)
        assert logout.status_code == 200
        assert logout.json() == {"success": True, "message": "Logged out successfully"}
        assert _stored_sessions(sync_url) == [t1, t3]

        logout_all = client.post("/auth/logout-all", headers=bearer)
        assert logout_all.status_code == 200
        assert _stored_sessions(sync_url) == []

        client.cookies.clear()
        replays = [
            client.post("/auth/refresh", json={"refreshToken": token}).status_code
            for token in (t1, t2, t3)
        ]

    assert replays == [401, 401, 401]


def test_change_password_revokes_sessions(tmp_path: Path) -> None:
    sync_url, async_url = _upgrade_head(tmp_path, "api_change_password.db")
    notifier = RecordingNotifier()

    with TestClient(_build_app(async_url, notifier=notifier)) as client:
        registered = _register(client)
        bearer = {"Authorization": f"Bearer {registered['accessToken']}"}

        wrong = client.put(
            "/auth/change-password",
            json={"currentPassword": "Wr0ng!Pass", "newPassword": NEW_PASSWORD},
            headers=bearer,
        )
        assert wrong.status_code == 401
        assert wrong.json()["error"] == "Current password is incorrect"
        assert _stored_sessions(sync_url) == [registered["refreshToken"]]

        changed = client.put(
            "/auth/change-password",
            json={"currentPassword": PASSWORD, "newPassword": NEW_PASSWORD},
            headers=bearer,
        )
        assert changed.status_code == 200
        assert _stored_sessions(sync_url) == []
        _login(client, password=NEW_PASSWORD)

    assert "password_changed" in notifier.kinds


def test_forgot_password_cooldown_and_reset_flow(tmp_path: Path) -> None:
    sync_url, async_url = _upgrade_head(tmp_path, "api_reset.db")
    notifier = RecordingNotifier()

    with TestClient(_build_app(async_url, notifier=notifier)) as client:
        registered = _register(client)

        unknown = client.post("/auth/forgot-password", json={"email": "ghost@ai4sid.org"})
        assert unknown.status_code == 200
        assert "cooldown" not in unknown.json()

        sent = client.post("/auth/forgot-password", json={"email": "ada@ai4sid.org"})
        assert sent.json() == {"success": True, "message": "Password reset email sent"}
        raw_token = notifier.reset_urls[0].rsplit("/", 1)[1]
        assert notifier.reset_urls[0] == f"https://academy.ai4sid.org/reset-password/{raw_token}"

        cooldown = client.post("/auth/forgot-password", json={"email": "ada@ai4sid.org"})
        assert cooldown.json()["cooldown"] is True
        assert cooldown.json()["minutesLeft"] == 60
        assert "expiresAt" in cooldown.json()
        assert len(notifier.reset_urls) == 1

        short = client.put(f"/auth/reset-password/{raw_token}", json={"password": "short"})
        assert short.status_code == 400

        reset = client.put(f"/auth/reset-password/{raw_token}", json={"password": NEW_PASSWORD})
        assert reset.status_code == 200
        assert _stored_sessions(sync_url) == []

        reused = client.put(f"/auth/reset-password/{raw_token}", json={"password": NEW_PASSWORD})
        assert reused.status_code == 400
        assert reused.json() == {"success": False, "error": "Invalid or expired reset token"}

        client.cookies.clear()
        stale_refresh = client.post(
            "/auth/refresh",
            json={"refreshToken": registered["refreshToken"]},
        )
        assert stale_refresh.status_code == 401
        _login(client, password=NEW_PASSWORD)

    assert "password_reset_success" in notifier.kinds


def test_expired_reset_token_is_rejected(tmp_path: Path) -> None:
    sync_url, async_url = _upgrade_head(tmp_path, "api_reset_expired.db")
    notifier = RecordingNotifier()

    with TestClient(_build_app(async_url, notifier=notifier)) as client:
        _register(client)
        client.post("/auth/forgot-password", json={"email": "ada@ai4sid.org"})
        raw_token = notifier.reset_urls[0].rsplit("/", 1)[1]
        with sa.create_engine(sync_url).begin() as connection:
            connection.execute(
                sa.update(users).values(
                    reset_password_expire=datetime.now(tz=UTC) - timedelta(minutes=1)
                )
            )

        response = client.put(f"/auth/reset-password/{raw_token}", json={"password": NEW_PASSWORD})
        retry = client.post("/auth/forgot-password", json={"email": "ada@ai4sid.org"})

    assert response.status_code == 400
    assert response.json()["error"] == "Invalid or expired reset token"
    assert retry.json() == {"success": True, "message": "Password reset email sent"}
    assert len(notifier.reset_urls) == 2


def test_update_profile_changes_name(tmp_path: Path) -> None:
    _, async_url = _upgrade_head(tmp_path, "api_profile.db")

    with TestClient(_build_app(async_url, notifier=RecordingNotifier())) as client:
        _register(client)
        response = client.put("/auth/profile", json={"lastName": "Byron"})

    assert response.status_code == 200
    assert response.json()["data"]["lastName"] == "Byron"
    assert response.json()["data"]["firstName"] == "Ada"
    assert response.json()["message"] == "Profile updated successfully"
