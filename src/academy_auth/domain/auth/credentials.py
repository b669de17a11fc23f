"""Shared normalization and policy helpers for user credential inputs."""

from __future__ import annotations

import re

MIN_PASSWORD_LENGTH = 8
MAX_PASSWORD_LENGTH = 128
PASSWORD_SPECIAL_CHARACTERS = "@$!%*?&"

_UPPERCASE = re.compile(r"[A-Z]")
_LOWERCASE = re.compile(r"[a-z]")
_DIGIT = re.compile(r"\d")
_SPECIAL = re.compile(f"[{re.escape(PASSWORD_SPECIAL_CHARACTERS)}]")


class PasswordPolicyError(ValueError):
    """Raised when a candidate password does not satisfy the password policy."""


def normalize_user_email(*, email: str) -> str:
    """Normalize one user email and reject blank values."""

    normalized = email.strip().lower()
    if not normalized:
        raise ValueError("email cannot be blank")
    return normalized


def require_minimum_password_length(*, password: str) -> None:
    """Reject passwords shorter than the minimum length."""

    if len(password) < MIN_PASSWORD_LENGTH:
        raise PasswordPolicyError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
        )


def require_strong_password(*, password: str) -> None:
    """Enforce the registration password policy.

    Length must be within bounds and the password must mix upper case, lower case,
    a digit and one of the accepted special characters.
    """

    if not MIN_PASSWORD_LENGTH <= len(password) <= MAX_PASSWORD_LENGTH:
        raise PasswordPolicyError(
            f"Password must be between {MIN_PASSWORD_LENGTH} and "
            f"{MAX_PASSWORD_LENGTH} characters"
        )
    if not (
        _UPPERCASE.search(password)
        and _LOWERCASE.search(password)
        and _DIGIT.search(password)
        and _SPECIAL.search(password)
    ):
        raise PasswordPolicyError(
            "Password must contain at least one uppercase letter, one lowercase letter, "
            "one number, and one special character"
        )
