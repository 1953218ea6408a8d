"""Glue between the ledger, the alert dispatcher and the alarm engine."""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from medreminder.core.clock import Clock, local_now
from medreminder.core.config import Settings
from medreminder.db.session import get_sessionmaker
from medreminder.integrations.local_alerts import AlertTransport, LocalAlertTransport
from medreminder.integrations.sound import SoundEmitter, build_sound_emitter
from medreminder.models import Medication
from medreminder.services import dose_scheduler
from medreminder.services.alarm_engine import AlarmEngine, AlarmOutcome, Sleeper
from medreminder.services.alert_dispatcher import AlertDispatcher
from medreminder.services.config_store import ConfigStore, SqlConfigStore
from medreminder.services.medication_service import (
    find_medication,
    list_all_medications,
    list_medications,
)

logger = logging.getLogger(__name__)

ALERTS_ENABLED_KEY = "alerts_enabled"


class DueWindowGuard:
    """Remembers which (medication, due instant) windows already sounded.

    A due window is identified by the ``next_dose_at`` it belongs to, so a
    taken or rescheduled dose opens a fresh window automatically.
    """

    def __init__(self) -> None:
        self._seen: set[tuple[uuid.UUID, datetime]] = set()

    def has_fired(self, medication_id: uuid.UUID, due_at: datetime) -> bool:
        return (medication_id, due_at) in self._seen

    def mark(self, medication_id: uuid.UUID, due_at: datetime) -> None:
        self._seen.add((medication_id, due_at))

    def should_fire(self, medication_id: uuid.UUID, due_at: datetime) -> bool:
        if self.has_fired(medication_id, due_at):
            return False
        self.mark(medication_id, due_at)
        return True

    def prune(self, now: datetime) -> None:
        cutoff = now - timedelta(minutes=dose_scheduler.DUE_GRACE_MINUTES)
        self._seen = {entry for entry in self._seen if entry[1] >= cutoff}


async def load_alerts_enabled(store: ConfigStore, *, default: bool = True) -> bool:
    value = await store.get(ALERTS_ENABLED_KEY)
    if value is None:
        return default
    return bool(value)


async def refresh_owner_schedule(
    session: AsyncSession,
    *,
    owner_id: uuid.UUID,
    dispatcher: AlertDispatcher,
    now: datetime | None = None,
) -> list[Medication]:
    """Screen-became-active refresh: catch up the owner's doses and reconverge alerts."""
    medications = await list_medications(session, owner_id=owner_id, now=now)
    await dispatcher.ensure_scheduled(medications)
    return medications


async def converge_all(
    session: AsyncSession,
    *,
    dispatcher: AlertDispatcher,
    now: datetime | None = None,
) -> list[str]:
    medications = await list_all_medications(session, now=now)
    if not dispatcher.enabled:
        await dispatcher.cancel_all(medications)
        return []
    return await dispatcher.ensure_scheduled(medications)


async def set_alerts_enabled(
    session: AsyncSession,
    *,
    enabled: bool,
    dispatcher: AlertDispatcher,
    store: ConfigStore,
    now: datetime | None = None,
) -> list[str]:
    """Persist the global reminder switch and converge every medication onto it."""
    await store.set(ALERTS_ENABLED_KEY, enabled)
    medications = await list_all_medications(session, now=now)
    scheduled = await dispatcher.set_enabled(enabled, medications)
    logger.info(
        "Reminders %s; %s alerts pending", "enabled" if enabled else "disabled", len(scheduled)
    )
    return scheduled


async def collect_due_alarms(
    session: AsyncSession,
    *,
    owner_id: uuid.UUID,
    engine: AlarmEngine,
    guard: DueWindowGuard,
    now: datetime | None = None,
    dispatcher: AlertDispatcher | None = None,
) -> list[Medication]:
    """Medications whose due-soon window was just entered and should sound.

    Nothing is returned (and nothing is marked) while sound is muted, so the
    alarm can still sound once the mute lifts inside the same window.
    """
    now = now or local_now()
    guard.prune(now)
    if await engine.is_muted():
        return []
    config = await engine.get_sound_config()
    medications = await list_medications(
        session, owner_id=owner_id, now=now, dispatcher=dispatcher
    )
    due = [
        medication
        for medication in medications
        if medication.next_dose_at is not None
        and dose_scheduler.is_due_soon(
            medication.next_dose_at, now, config.advance_warning_minutes
        )
        and not guard.has_fired(medication.id, medication.next_dose_at)
    ]
    for medication in due:
        assert medication.next_dose_at is not None
        guard.mark(medication.id, medication.next_dose_at)
    return due


class AlertHandler:
    """Single entry point the delivery collaborator calls when an alert fires."""

    def __init__(
        self,
        sessionmaker: async_sessionmaker[AsyncSession],
        engine: AlarmEngine,
        *,
        guard: DueWindowGuard | None = None,
    ) -> None:
        self._sessionmaker = sessionmaker
        self._engine = engine
        self._guard = guard

    async def handle(self, payload: Mapping[str, Any]) -> AlarmOutcome | None:
        raw_id = payload.get("medication_id")
        try:
            medication_id = uuid.UUID(str(raw_id))
        except (TypeError, ValueError):
            logger.warning("Ignoring alert with malformed payload: %s", dict(payload))
            return None

        async with self._sessionmaker() as session:
            medication = await find_medication(session, medication_id)
        if medication is None:
            logger.warning("Alert fired for unknown medication %s", medication_id)
            return None

        if await self._engine.is_muted():
            logger.info("Alert for %s arrived while muted; window left open", medication.id)
            return AlarmOutcome.SUPPRESSED

        due_at = medication.next_dose_at
        if self._guard is not None and due_at is not None:
            if not self._guard.should_fire(medication.id, due_at):
                logger.debug("Alarm for %s already played in this window", medication.id)
                return None

        logger.info("Dose due for %s (%s)", medication.name, medication.dose_quantity)
        result = await self._engine.play_alarm()
        return result.outcome


@dataclass
class ReminderRuntime:
    """Process-wide reminder collaborators, built once at startup."""

    store: ConfigStore
    transport: AlertTransport
    dispatcher: AlertDispatcher
    engine: AlarmEngine
    guard: DueWindowGuard
    handler: AlertHandler
    clock: Clock = local_now

    def now(self) -> datetime:
        return self.clock()

    async def close(self) -> None:
        close = getattr(self.transport, "close", None)
        if close is not None:
            await close()


async def build_runtime(
    settings: Settings,
    *,
    sessionmaker: async_sessionmaker[AsyncSession] | None = None,
    store: ConfigStore | None = None,
    transport: AlertTransport | None = None,
    emitter: SoundEmitter | None = None,
    clock: Clock = local_now,
    sleep: Sleeper = asyncio.sleep,
) -> ReminderRuntime:
    sessionmaker = sessionmaker or get_sessionmaker(settings.database_url)
    store = store or SqlConfigStore(sessionmaker)
    transport = transport or LocalAlertTransport(clock=clock)
    emitter = emitter or build_sound_emitter(settings.sound_emitter)

    enabled = await load_alerts_enabled(store, default=settings.alerts_enabled_default)
    dispatcher = AlertDispatcher(transport, clock=clock, enabled=enabled)
    engine = AlarmEngine(store, emitter, clock=clock, sleep=sleep)
    guard = DueWindowGuard()
    handler = AlertHandler(sessionmaker, engine, guard=guard)
    set_handler = getattr(transport, "set_handler", None)
    if set_handler is not None:
        set_handler(handler.handle)

    return ReminderRuntime(
        store=store,
        transport=transport,
        dispatcher=dispatcher,
        engine=engine,
        guard=guard,
        handler=handler,
        clock=clock,
    )


__all__ = [
    "ALERTS_ENABLED_KEY",
    "AlertHandler",
    "DueWindowGuard",
    "ReminderRuntime",
    "build_runtime",
    "collect_due_alarms",
    "converge_all",
    "load_alerts_enabled",
    "refresh_owner_schedule",
    "set_alerts_enabled",
]
