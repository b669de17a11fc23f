"""Role values assigned to platform accounts."""

from __future__ import annotations

from enum import StrEnum


class Role(StrEnum):
    """Supported account roles."""

    ADMIN = "admin"
    STUDENT = "student"
    INSTRUCTOR = "instructor"


DEFAULT_ROLE = Role.STUDENT
