"""Health endpoint smoke tests."""

from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient

from medreminder.main import app


@pytest.mark.asyncio
async def test_healthcheck_reports_ready_runtime(app_context: dict[str, Any]) -> None:
    response = await app_context["client"].get("/api/v1/health")
    assert response.status_code == 200
    payload = response.json()
    assert payload["status"] == "ok"
    assert payload["service"] == "Medication Reminder API"
    assert payload["runtime_ready"] is True
    assert payload["alerts_enabled"] is True
    assert payload["local_time"] == app_context["clock"]().isoformat()


@pytest.mark.asyncio
async def test_healthcheck_before_startup() -> None:
    app.state.runtime = None
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.get("/api/v1/health")
    assert response.status_code == 200
    payload = response.json()
    assert payload["status"] == "starting"
    assert payload["runtime_ready"] is False
    assert payload["alerts_enabled"] is None


@pytest.mark.asyncio
async def test_runtime_missing_returns_503() -> None:
    app.state.runtime = None
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.get("/api/v1/alerts")
    assert response.status_code == 503
