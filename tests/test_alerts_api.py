"""Global reminder toggle API tests."""

from __future__ import annotations

from typing import Any

import pytest
from httpx import AsyncClient

pytestmark = pytest.mark.asyncio


async def test_alert_toggle_converges_pending_alerts(app_context: dict[str, Any]) -> None:
    client: AsyncClient = app_context["client"]
    headers = app_context["headers"]

    assert (await client.get("/api/v1/alerts")).json() == {"enabled": True}
    created = (
        await client.post(
            "/api/v1/medications", json={"name": "Amoxicillin", "interval_hours": 8}, headers=headers
        )
    ).json()

    pending = (await client.get("/api/v1/alerts/pending")).json()
    assert [alert["key"] for alert in pending] == [created["id"]]
    assert pending[0]["payload"]["name"] == "Amoxicillin"
    assert pending[0]["fire_at"] == created["next_dose_at"]

    disabled = await client.put("/api/v1/alerts", json={"enabled": False})
    assert disabled.json() == {"enabled": False}
    assert (await client.get("/api/v1/alerts/pending")).json() == []

    # new medications stay silent while reminders are off
    await client.post("/api/v1/medications", json={"name": "Ibuprofen"}, headers=headers)
    assert (await client.get("/api/v1/alerts/pending")).json() == []

    enabled = await client.put("/api/v1/alerts", json={"enabled": True})
    assert enabled.json() == {"enabled": True}
    assert len((await client.get("/api/v1/alerts/pending")).json()) == 2


async def test_alert_toggle_is_persisted(app_context: dict[str, Any]) -> None:
    client: AsyncClient = app_context["client"]
    runtime = app_context["runtime"]

    await client.put("/api/v1/alerts", json={"enabled": False})
    assert await runtime.store.get("alerts_enabled") is False
