"""Keeps exactly one pending one-shot alert per medication."""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable
from typing import Any

from medreminder.core.clock import Clock, local_now
from medreminder.integrations.local_alerts import AlertTransport
from medreminder.models import Medication

logger = logging.getLogger(__name__)


def alert_key(medication_id: uuid.UUID | str) -> str:
    return str(medication_id)


def build_payload(medication: Medication) -> dict[str, Any]:
    return {
        "medication_id": str(medication.id),
        "name": medication.name,
        "dose_quantity": medication.dose_quantity,
    }


class AlertDispatcher:
    """Converges the delivery collaborator onto the ledger's ``next_dose_at`` values.

    Every operation is cancel-then-maybe-schedule, so repeating a call without
    a ledger change leaves the same pending keys behind. Transport failures are
    logged and skipped; the affected medication simply has no alert until the
    next convergence.
    """

    def __init__(
        self,
        transport: AlertTransport,
        *,
        clock: Clock = local_now,
        enabled: bool = True,
    ) -> None:
        self._transport = transport
        self._clock = clock
        self._enabled = enabled

    @property
    def enabled(self) -> bool:
        return self._enabled

    async def cancel(self, medication_id: uuid.UUID | str) -> None:
        key = alert_key(medication_id)
        try:
            await self._transport.cancel(key)
        except Exception:
            logger.exception("Failed to cancel alert %s", key)

    async def reschedule(self, medication: Medication) -> bool:
        """Cancel the medication's alert and schedule a new one if it is due in the future."""
        await self.cancel(medication.id)
        if not self._enabled:
            return False
        fire_at = medication.next_dose_at
        if fire_at is None or fire_at <= self._clock():
            return False
        key = alert_key(medication.id)
        try:
            await self._transport.schedule_one_shot(key, fire_at, build_payload(medication))
        except Exception:
            logger.exception("Failed to schedule alert %s for %s", key, fire_at.isoformat())
            return False
        return True

    async def ensure_scheduled(self, medications: Iterable[Medication]) -> list[str]:
        """Reschedule every medication; returns the keys that ended up scheduled."""
        scheduled: list[str] = []
        for medication in medications:
            if await self.reschedule(medication):
                scheduled.append(alert_key(medication.id))
        return scheduled

    async def cancel_all(self, medications: Iterable[Medication]) -> None:
        for medication in medications:
            await self.cancel(medication.id)

    async def set_enabled(self, enabled: bool, medications: Iterable[Medication]) -> list[str]:
        """Flip the global switch and fully converge over ``medications``."""
        self._enabled = enabled
        items = list(medications)
        if enabled:
            return await self.ensure_scheduled(items)
        await self.cancel_all(items)
        return []

    async def pending_keys(self) -> set[str]:
        pending = await self._transport.list_pending()
        return {alert.key for alert in pending}


__all__ = ["AlertDispatcher", "alert_key", "build_payload"]
