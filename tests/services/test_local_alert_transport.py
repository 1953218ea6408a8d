"""In-process timer transport."""

from __future__ import annotations

import asyncio
from datetime import timedelta

import pytest

from medreminder.integrations.local_alerts import AlertTransportError, LocalAlertTransport

pytestmark = pytest.mark.asyncio


async def test_alert_fires_handler_with_payload(clock) -> None:
    received: list[dict] = []

    async def handler(payload: dict) -> None:
        received.append(payload)

    transport = LocalAlertTransport(clock=clock, handler=handler)
    await transport.schedule_one_shot("med-1", clock() + timedelta(milliseconds=20), {"medication_id": "med-1"})
    assert [alert.key for alert in await transport.list_pending()] == ["med-1"]

    await asyncio.sleep(0.2)
    assert received == [{"medication_id": "med-1"}]
    assert await transport.list_pending() == []
    await transport.close()


async def test_rescheduling_a_key_replaces_the_timer(clock) -> None:
    received: list[dict] = []

    async def handler(payload: dict) -> None:
        received.append(payload)

    transport = LocalAlertTransport(clock=clock, handler=handler)
    await transport.schedule_one_shot("med-1", clock() + timedelta(milliseconds=20), {"version": 1})
    await transport.schedule_one_shot("med-1", clock() + timedelta(milliseconds=40), {"version": 2})

    pending = await transport.list_pending()
    assert len(pending) == 1
    assert pending[0].payload == {"version": 2}

    await asyncio.sleep(0.2)
    assert received == [{"version": 2}]
    await transport.close()


async def test_cancelled_alert_never_fires(clock) -> None:
    received: list[dict] = []

    async def handler(payload: dict) -> None:
        received.append(payload)

    transport = LocalAlertTransport(clock=clock, handler=handler)
    await transport.schedule_one_shot("med-1", clock() + timedelta(milliseconds=20), {})
    await transport.cancel("med-1")
    await transport.cancel("never-scheduled")

    await asyncio.sleep(0.1)
    assert received == []
    await transport.close()


async def test_handler_errors_are_contained(clock) -> None:
    calls = 0

    async def handler(payload: dict) -> None:
        nonlocal calls
        calls += 1
        raise RuntimeError("boom")

    transport = LocalAlertTransport(clock=clock, handler=handler)
    await transport.schedule_one_shot("med-1", clock(), {})
    await asyncio.sleep(0.05)
    assert calls == 1
    await transport.close()


async def test_pending_alerts_are_sorted_and_closed(clock) -> None:
    transport = LocalAlertTransport(clock=clock)
    await transport.schedule_one_shot("later", clock() + timedelta(hours=2), {})
    await transport.schedule_one_shot("sooner", clock() + timedelta(hours=1), {})
    assert [alert.key for alert in await transport.list_pending()] == ["sooner", "later"]

    await transport.close()
    assert await transport.list_pending() == []


async def test_empty_key_is_rejected(clock) -> None:
    transport = LocalAlertTransport(clock=clock)
    with pytest.raises(AlertTransportError):
        await transport.schedule_one_shot("", clock(), {})
