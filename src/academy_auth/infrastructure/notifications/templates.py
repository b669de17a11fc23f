"""Subject/body templates for account notification emails."""

from __future__ import annotations

from dataclasses import dataclass
from html import escape

_BRAND = "AI4SID~Academy"


@dataclass(frozen=True)
class RenderedEmail:
    """One rendered message ready for delivery."""

    subject: str
    html: str
    text: str


def _wrap(*, heading: str, paragraphs: list[str], action: tuple[str, str] | None = None) -> str:
    body = "".join(f'<p style="font-size: 16px; color: #555;">{item}</p>' for item in paragraphs)
    button = ""
    if action is not None:
        label, url = action
        button = (
            f'<p style="text-align: center; margin: 30px 0;">'
            f'<a href="{escape(url, quote=True)}" style="display: inline-block; '
            f'padding: 14px 28px; background-color: #667eea; color: white; '
            f'text-decoration: none; border-radius: 6px; font-weight: bold;">{escape(label)}</a>'
            f"</p>"
        )
    return (
        '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; '
        'padding: 20px;">'
        f'<h1 style="color: #333;">{escape(heading)}</h1>'
        f"{body}{button}"
        f'<p style="font-size: 14px; color: #666;">Best regards,<br>'
        f"<strong>{_BRAND} Team</strong></p>"
        "</div>"
    )


def render_welcome(*, first_name: str, client_url: str) -> RenderedEmail:
    name = escape(first_name)
    dashboard_url = f"{client_url}/dashboard"
    return RenderedEmail(
        subject=f"Welcome to {_BRAND}!",
        html=_wrap(
            heading=f"Welcome to {_BRAND}!",
            paragraphs=[
                f"Hi {name},",
                "Thank you for joining. You can now access your dashboard and start "
                "your learning journey.",
            ],
            action=("Go to Dashboard", dashboard_url),
        ),
        text=f"Hi {first_name},\n\nWelcome to {_BRAND}! Your dashboard: {dashboard_url}\n",
    )


def render_password_reset(*, first_name: str, reset_url: str) -> RenderedEmail:
    return RenderedEmail(
        subject="Password Reset Request",
        html=_wrap(
            heading="Password Reset Request",
            paragraphs=[
                f"Hi {escape(first_name)},",
                "You requested to reset your password. Click the button below to reset it.",
                "This link will expire in <strong>1 hour</strong>.",
                "If you didn't request this, please ignore this email. "
                "Your password will remain unchanged.",
            ],
            action=("Reset Password", reset_url),
        ),
        text=(
            f"Hi {first_name},\n\nReset your password within 1 hour:\n{reset_url}\n\n"
            "If you didn't request this, ignore this email.\n"
        ),
    )


def render_password_changed(*, first_name: str) -> RenderedEmail:
    return _render_notice(
        subject="Your password was changed",
        first_name=first_name,
        message="Your password was changed and every active session was signed out. "
        "If this wasn't you, contact support immediately.",
    )


def render_password_reset_success(*, first_name: str) -> RenderedEmail:
    return _render_notice(
        subject="Your password was reset",
        first_name=first_name,
        message="Your password was reset successfully. Please login with your new password.",
    )


def render_profile_updated(*, first_name: str) -> RenderedEmail:
    return _render_notice(
        subject="Your profile was updated",
        first_name=first_name,
        message="Your profile details were updated.",
    )


def _render_notice(*, subject: str, first_name: str, message: str) -> RenderedEmail:
    return RenderedEmail(
        subject=subject,
        html=_wrap(heading=subject, paragraphs=[f"Hi {escape(first_name)},", escape(message)]),
        text=f"Hi {first_name},\n\n{message}\n",
    )
