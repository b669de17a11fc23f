"""Caller-facing message strings used by authentication flows."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class AuthMessages:
    """Message catalogue for auth responses.

    Login and refresh failures intentionally share generic wording so callers
    cannot tell which check failed.
    """

    invalid_credentials: str = "Invalid email or password"
    account_not_active_template: str = "Your account is {status}. Please contact support."
    refresh_token_missing: str = "Refresh token not provided"
    invalid_refresh_token: str = "Invalid or expired refresh token"
    not_authorized: str = "Not authorized"
    user_gone: str = "User no longer exists"
    guard_account_not_active: str = "Your account is not active"
    user_not_found: str = "User not found"
    wrong_current_password: str = "Current password is incorrect"
    invalid_reset_token: str = "Invalid or expired reset token"
    reset_delivery_failed: str = "Email could not be sent"
    logged_out: str = "Logged out successfully"
    logged_out_all: str = "Logged out from all devices successfully"
    password_changed: str = "Password changed successfully. Please login again."
    forgot_password_generic: str = (
        "If an account with that email exists, a password reset link has been sent."
    )
    forgot_password_sent: str = "Password reset email sent"
    forgot_password_cooldown_template: str = (
        "A password reset link was already sent. Please check your email or try again "
        "in {minutes} minute(s)."
    )
    password_reset: str = "Password reset successful. Please login with your new password."
    profile_updated: str = "Profile updated successfully"

    def account_not_active(self, status: str) -> str:
        return self.account_not_active_template.format(status=status)

    def forgot_password_cooldown(self, minutes: int) -> str:
        return self.forgot_password_cooldown_template.format(minutes=minutes)


DEFAULT_AUTH_MESSAGES = AuthMessages()
