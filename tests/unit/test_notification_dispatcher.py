from __future__ import annotations

import asyncio

import pytest

from academy_auth.application.services.notification_dispatcher import NotificationDispatcher


@pytest.mark.asyncio
async def test_dispatch_runs_in_background_and_drain_waits() -> None:
    dispatcher = NotificationDispatcher()
    delivered: list[str] = []
    gate = asyncio.Event()

    async def _send() -> None:
        await gate.wait()
        delivered.append("welcome")

    dispatcher.dispatch(_send, kind="welcome", user_id="user-1")

    assert dispatcher.pending_count == 1
    assert delivered == []

    gate.set()
    await dispatcher.drain()

    assert delivered == ["welcome"]
    assert dispatcher.pending_count == 0


@pytest.mark.asyncio
async def test_failed_delivery_is_logged_and_never_raised(
    caplog: pytest.LogCaptureFixture,
) -> None:
    dispatcher = NotificationDispatcher()

    async def _send() -> None:
        raise RuntimeError("provider down")

    with caplog.at_level("INFO"):
        dispatcher.dispatch(_send, kind="password_changed", user_id="user-7")
        await dispatcher.drain()

    assert "notification_failed kind=password_changed user_id=user-7" in caplog.text
    assert "notification_sent" not in caplog.text


@pytest.mark.asyncio
async def test_successful_delivery_is_logged(caplog: pytest.LogCaptureFixture) -> None:
    dispatcher = NotificationDispatcher()

    async def _send() -> None:
        return None

    with caplog.at_level("INFO"):
        dispatcher.dispatch(_send, kind="welcome", user_id="user-2")
        await dispatcher.drain()

    assert "notification_sent kind=welcome user_id=user-2" in caplog.text
