from __future__ import annotations

import smtplib

import pytest

from academy_auth.application.ports.notification_sender_port import (
    NotificationDeliveryError,
    NotificationRecipient,
)
from academy_auth.config.settings import Settings
from academy_auth.infrastructure.notifications import templates
from academy_auth.infrastructure.notifications.sender import (
    LoggingEmailSender,
    SmtpEmailSender,
    build_notification_sender,
    redact_email,
)

RECIPIENT = NotificationRecipient(email="ada@ai4sid.org", first_name="Ada")


def _settings(**overrides: object) -> Settings:
    values: dict[str, object] = {
        "DATABASE_URL": "sqlite+aiosqlite:///./unused.db",
        "JWT_SECRET": "secret",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)  # type: ignore[arg-type]


def test_password_reset_template_carries_link_and_expiry() -> None:
    rendered = templates.render_password_reset(
        first_name="Ada",
        reset_url="https://academy.ai4sid.org/reset-password/abc123",
    )

    assert rendered.subject == "Password Reset Request"
    assert "https://academy.ai4sid.org/reset-password/abc123" in rendered.html
    assert "https://academy.ai4sid.org/reset-password/abc123" in rendered.text
    assert "1 hour" in rendered.html


def test_templates_escape_user_supplied_names() -> None:
    rendered = templates.render_welcome(
        first_name="<script>",
        client_url="https://academy.ai4sid.org",
    )

    assert "<script>" not in rendered.html
    assert "&lt;script&gt;" in rendered.html
    assert "https://academy.ai4sid.org/dashboard" in rendered.html


def test_redact_email_keeps_domain_only() -> None:
    assert redact_email("ada.lovelace@ai4sid.org") == "ad***@ai4sid.org"
    assert redact_email("no-at-sign") == "redacted"


@pytest.mark.asyncio
async def test_logging_sender_logs_redacted_recipient(caplog: pytest.LogCaptureFixture) -> None:
    sender = LoggingEmailSender(client_url="https://academy.ai4sid.org/")

    with caplog.at_level("INFO"):
        await sender.send_password_reset(
            RECIPIENT,
            reset_url="https://academy.ai4sid.org/reset-password/tok",
        )

    assert "email_dev_mode to=ad***@ai4sid.org subject=Password Reset Request" in caplog.text
    assert "ada@ai4sid.org" not in caplog.text


@pytest.mark.asyncio
async def test_smtp_failure_maps_to_delivery_error(monkeypatch: pytest.MonkeyPatch) -> None:
    def _refuse(*args: object, **kwargs: object) -> None:
        raise smtplib.SMTPConnectError(421, b"service not available")

    monkeypatch.setattr(smtplib, "SMTP", _refuse)
    sender = SmtpEmailSender(
        host="smtp.ai4sid.org",
        port=587,
        from_address="AI4SID~Academy <info@ai4sid.org>",
        client_url="https://academy.ai4sid.org",
    )

    with pytest.raises(NotificationDeliveryError, match="ad\\*\\*\\*@ai4sid.org"):
        await sender.send_password_changed(RECIPIENT)


def test_builder_falls_back_to_logging_sender_without_host(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.delenv("EMAIL_HOST", raising=False)

    assert isinstance(build_notification_sender(_settings()), LoggingEmailSender)
    assert isinstance(
        build_notification_sender(_settings(EMAIL_HOST="smtp.ai4sid.org")),
        SmtpEmailSender,
    )
