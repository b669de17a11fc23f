"""Port for transactional account notifications."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


class NotificationDeliveryError(RuntimeError):
    """Raised when a notification could not be handed to the provider."""


@dataclass(frozen=True)
class NotificationRecipient:
    """Minimal recipient data needed by notification templates."""

    email: str
    first_name: str


class NotificationSenderPort(Protocol):
    """Account notification sink contract."""

    async def send_welcome(self, recipient: NotificationRecipient) -> None:
        """Deliver the post-registration welcome message."""

    async def send_password_reset(self, recipient: NotificationRecipient, *, reset_url: str) -> None:
        """Deliver the reset link; raises `NotificationDeliveryError` on failure."""

    async def send_password_changed(self, recipient: NotificationRecipient) -> None:
        """Deliver the password-changed confirmation."""

    async def send_password_reset_success(self, recipient: NotificationRecipient) -> None:
        """Deliver the password-reset confirmation."""

    async def send_profile_updated(self, recipient: NotificationRecipient) -> None:
        """Deliver the profile-updated confirmation."""
