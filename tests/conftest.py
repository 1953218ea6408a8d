"""Test fixtures for the medication reminder backend."""
from __future__ import annotations

import os
import uuid
from collections.abc import AsyncIterator, Mapping
from datetime import datetime, timedelta
from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test.db")
os.environ.setdefault("AUTO_CREATE_SCHEMA", "false")

from medreminder.core.config import get_settings
from medreminder.db.base import Base
from medreminder.db.session import dispose_engine, get_sessionmaker
from medreminder.integrations.local_alerts import AlertTransportError, PendingAlert
from medreminder.main import app
from medreminder.models import *  # noqa: F401,F403
from medreminder.services.reminder_service import build_runtime

START = datetime(2026, 3, 2, 8, 0)


class ManualClock:
    """Clock that only moves when a test advances it."""

    def __init__(self, start: datetime = START) -> None:
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs: float) -> datetime:
        self.current += timedelta(**kwargs)
        return self.current


class RecordingTransport:
    """In-memory alert transport that records calls and can be told to fail."""

    def __init__(self) -> None:
        self.pending: dict[str, PendingAlert] = {}
        self.scheduled: list[str] = []
        self.cancelled: list[str] = []
        self.fail_keys: set[str] = set()

    async def schedule_one_shot(
        self, key: str, fire_at: datetime, payload: Mapping[str, Any]
    ) -> str:
        if key in self.fail_keys:
            raise AlertTransportError(f"refused {key}")
        self.pending[key] = PendingAlert(key=key, fire_at=fire_at, payload=dict(payload))
        self.scheduled.append(key)
        return key

    async def cancel(self, key: str) -> None:
        self.cancelled.append(key)
        self.pending.pop(key, None)

    async def list_pending(self) -> list[PendingAlert]:
        return sorted(self.pending.values(), key=lambda alert: alert.fire_at)


class RecordingEmitter:
    """Counts pulses; pulses whose 1-based index is in ``fail_on`` report failure."""

    def __init__(self, fail_on: set[int] | None = None, raise_on: set[int] | None = None) -> None:
        self.calls = 0
        self.fail_on = fail_on or set()
        self.raise_on = raise_on or set()

    async def emit_pulse(self) -> bool:
        self.calls += 1
        if self.calls in self.raise_on:
            raise RuntimeError("speaker unplugged")
        return self.calls not in self.fail_on


class FakeSleep:
    """Records requested pauses instead of sleeping."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture()
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture()
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture()
def emitter() -> RecordingEmitter:
    return RecordingEmitter()


@pytest.fixture()
def fake_sleep() -> FakeSleep:
    return FakeSleep()


@pytest.fixture(scope="session")
def db_url(tmp_path_factory: pytest.TempPathFactory) -> str:
    """Provide a temporary SQLite database URL for the test session."""
    db_path = tmp_path_factory.mktemp("db") / "test.db"
    return f"sqlite+aiosqlite:///{db_path}"


@pytest_asyncio.fixture()
async def reset_database(db_url: str) -> AsyncIterator[None]:
    """Drop and recreate the database schema for an isolated test."""
    os.environ["DATABASE_URL"] = db_url
    get_settings.cache_clear()
    get_settings()

    await dispose_engine(db_url)
    engine = create_async_engine(db_url, future=True)
    async with engine.begin() as connection:
        await connection.run_sync(Base.metadata.drop_all)
        await connection.run_sync(Base.metadata.create_all)
    await engine.dispose()
    yield
    await dispose_engine(db_url)


@pytest_asyncio.fixture()
async def app_context(
    reset_database: None,
    db_url: str,
    clock: ManualClock,
    transport: RecordingTransport,
    emitter: RecordingEmitter,
    fake_sleep: FakeSleep,
) -> AsyncIterator[dict[str, Any]]:
    """Yield an async client wired to a runtime built from test fakes."""
    runtime = await build_runtime(
        get_settings(),
        sessionmaker=get_sessionmaker(db_url),
        transport=transport,
        emitter=emitter,
        clock=clock,
        sleep=fake_sleep,
    )
    app.state.runtime = runtime
    owner_id = uuid.uuid4()
    context: dict[str, Any] = {
        "owner_id": owner_id,
        "headers": {"X-Owner-ID": str(owner_id)},
        "clock": clock,
        "transport": transport,
        "emitter": emitter,
        "sleep": fake_sleep,
        "runtime": runtime,
    }
    try:
        async with AsyncClient(
            transport=ASGITransport(app=app), base_url="http://test"
        ) as client:
            context["client"] = client
            yield context
    finally:
        await runtime.close()
        app.state.runtime = None
