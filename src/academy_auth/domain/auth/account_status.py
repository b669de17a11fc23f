"""Account lifecycle status values."""

from __future__ import annotations

from enum import StrEnum


class AccountStatus(StrEnum):
    """Supported account statuses; only `active` may authenticate."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"
    GRADUATED = "graduated"

    @property
    def can_authenticate(self) -> bool:
        return self is AccountStatus.ACTIVE
