"""Fire-and-forget dispatch of account notifications."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NotificationHooks:
    """Toggles for optional notifications; welcome mail is always sent."""

    password_changed: bool = True
    password_reset: bool = True
    profile_updated: bool = True


class NotificationDispatcher:
    """Schedule notification coroutines without awaiting their completion.

    Failures are logged with the notification kind and user context and never
    reach the caller of the primary operation.
    """

    def __init__(self) -> None:
        self._pending: set[asyncio.Task[None]] = set()

    def dispatch(
        self,
        send: Callable[[], Awaitable[None]],
        *,
        kind: str,
        user_id: str,
    ) -> None:
        """Start one delivery in the background."""

        task = asyncio.get_running_loop().create_task(self._run(send, kind=kind, user_id=user_id))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def drain(self) -> None:
        """Wait for every in-flight delivery; used on shutdown and in tests."""

        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    async def _run(self, send: Callable[[], Awaitable[None]], *, kind: str, user_id: str) -> None:
        try:
            await send()
        except Exception:
            logger.exception("notification_failed kind=%s user_id=%s", kind, user_id)
        else:
            logger.info("notification_sent kind=%s user_id=%s", kind, user_id)
