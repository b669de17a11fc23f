"""Notification senders: SMTP delivery and a log-only development fallback."""

from __future__ import annotations

import asyncio
import logging
import smtplib
import ssl
from email.message import EmailMessage

from academy_auth.application.ports.notification_sender_port import (
    NotificationDeliveryError,
    NotificationRecipient,
    NotificationSenderPort,
)
from academy_auth.config.settings import Settings
from academy_auth.infrastructure.notifications import templates
from academy_auth.infrastructure.notifications.templates import RenderedEmail

logger = logging.getLogger(__name__)

_SMTP_TIMEOUT_SECONDS = 30.0


def redact_email(email: str) -> str:
    """Return a log-safe form of one email address."""

    if "@" not in email:
        return "redacted"
    local, domain = email.split("@", 1)
    return f"{local[:2]}***@{domain}"


class _TemplateSender(NotificationSenderPort):
    """Render templates and hand them to `_deliver`."""

    def __init__(self, *, client_url: str) -> None:
        self._client_url = client_url.rstrip("/")

    async def send_welcome(self, recipient: NotificationRecipient) -> None:
        await self._deliver(
            recipient.email,
            templates.render_welcome(first_name=recipient.first_name, client_url=self._client_url),
        )

    async def send_password_reset(self, recipient: NotificationRecipient, *, reset_url: str) -> None:
        await self._deliver(
            recipient.email,
            templates.render_password_reset(first_name=recipient.first_name, reset_url=reset_url),
        )

    async def send_password_changed(self, recipient: NotificationRecipient) -> None:
        await self._deliver(
            recipient.email,
            templates.render_password_changed(first_name=recipient.first_name),
        )

    async def send_password_reset_success(self, recipient: NotificationRecipient) -> None:
        await self._deliver(
            recipient.email,
            templates.render_password_reset_success(first_name=recipient.first_name),
        )

    async def send_profile_updated(self, recipient: NotificationRecipient) -> None:
        await self._deliver(
            recipient.email,
            templates.render_profile_updated(first_name=recipient.first_name),
        )

    async def _deliver(self, to_email: str, message: RenderedEmail) -> None:
        raise NotImplementedError


class LoggingEmailSender(_TemplateSender):
    """Log rendered emails instead of sending them; used when SMTP is not configured."""

    async def _deliver(self, to_email: str, message: RenderedEmail) -> None:
        logger.info(
            "email_dev_mode to=%s subject=%s body_preview=%s",
            redact_email(to_email),
            message.subject,
            message.text[:200],
        )


class SmtpEmailSender(_TemplateSender):
    """Deliver rendered emails over SMTP from a worker thread."""

    def __init__(
        self,
        *,
        host: str,
        port: int,
        from_address: str,
        client_url: str,
        username: str | None = None,
        password: str | None = None,
        use_starttls: bool = True,
        timeout_seconds: float = _SMTP_TIMEOUT_SECONDS,
    ) -> None:
        super().__init__(client_url=client_url)
        self._host = host
        self._port = port
        self._from_address = from_address
        self._username = username
        self._password = password
        self._use_starttls = use_starttls
        self._timeout_seconds = timeout_seconds

    async def _deliver(self, to_email: str, message: RenderedEmail) -> None:
        await asyncio.to_thread(self._deliver_sync, to_email, message)
        logger.info("email_sent to=%s subject=%s", redact_email(to_email), message.subject)

    def _deliver_sync(self, to_email: str, message: RenderedEmail) -> None:
        email = EmailMessage()
        email["Subject"] = message.subject
        email["From"] = self._from_address
        email["To"] = to_email
        email.set_content(message.text)
        email.add_alternative(message.html, subtype="html")

        context = ssl.create_default_context()
        try:
            if self._use_starttls:
                with smtplib.SMTP(self._host, self._port, timeout=self._timeout_seconds) as server:
                    server.starttls(context=context)
                    self._login(server)
                    server.send_message(email)
            else:
                with smtplib.SMTP_SSL(
                    self._host,
                    self._port,
                    context=context,
                    timeout=self._timeout_seconds,
                ) as server:
                    self._login(server)
                    server.send_message(email)
        except (smtplib.SMTPException, OSError) as exc:
            raise NotificationDeliveryError(
                f"smtp delivery failed to={redact_email(to_email)}"
            ) from exc

    def _login(self, server: smtplib.SMTP) -> None:
        if self._username and self._password:
            server.login(self._username, self._password)


def build_notification_sender(settings: Settings) -> NotificationSenderPort:
    """Return an SMTP sender when a host is configured, else the log-only sender."""

    if settings.email_host is None:
        logger.warning("email_not_configured using=log_only_sender")
        return LoggingEmailSender(client_url=settings.client_url)
    return SmtpEmailSender(
        host=settings.email_host,
        port=settings.email_port,
        from_address=settings.email_from,
        client_url=settings.client_url,
        username=settings.email_user,
        password=settings.email_password,
        use_starttls=settings.email_use_tls,
    )
