"""In-process one-shot alert delivery backed by asyncio timers."""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol

from medreminder.core.clock import Clock, local_now

logger = logging.getLogger(__name__)

AlertCallback = Callable[[dict[str, Any]], Awaitable[Any]]


class AlertTransportError(RuntimeError):
    """Raised when the delivery collaborator rejects a schedule or cancel call."""


@dataclass
class PendingAlert:
    """A scheduled alert as reported by the transport."""

    key: str
    fire_at: datetime
    payload: dict[str, Any] = field(default_factory=dict)


class AlertTransport(Protocol):
    """Capabilities the dispatcher needs from a delivery collaborator."""

    async def schedule_one_shot(
        self, key: str, fire_at: datetime, payload: Mapping[str, Any]
    ) -> str: ...

    async def cancel(self, key: str) -> None: ...

    async def list_pending(self) -> list[PendingAlert]: ...


@dataclass
class _ScheduledAlert:
    handle: str
    fire_at: datetime
    payload: dict[str, Any]
    timer: asyncio.TimerHandle


class LocalAlertTransport:
    """Single-process transport: one timer per key, handler invoked at fire time.

    Timers live in memory only; pending alerts are rebuilt on startup by
    re-running the dispatcher's convergence.
    """

    def __init__(
        self,
        *,
        clock: Clock = local_now,
        handler: AlertCallback | None = None,
    ) -> None:
        self._clock = clock
        self._handler = handler
        self._pending: dict[str, _ScheduledAlert] = {}
        self._tasks: set[asyncio.Task[Any]] = set()

    def set_handler(self, handler: AlertCallback) -> None:
        self._handler = handler

    async def schedule_one_shot(
        self, key: str, fire_at: datetime, payload: Mapping[str, Any]
    ) -> str:
        if not key:
            raise AlertTransportError("Alert key cannot be empty")
        loop = asyncio.get_running_loop()
        await self.cancel(key)
        delay = max(0.0, (fire_at - self._clock()).total_seconds())
        handle = uuid.uuid4().hex
        timer = loop.call_later(delay, self._fire, key, handle)
        self._pending[key] = _ScheduledAlert(
            handle=handle, fire_at=fire_at, payload=dict(payload), timer=timer
        )
        logger.debug("Alert %s scheduled for %s", key, fire_at.isoformat())
        return handle

    async def cancel(self, key: str) -> None:
        entry = self._pending.pop(key, None)
        if entry is not None:
            entry.timer.cancel()
            logger.debug("Alert %s cancelled", key)

    async def list_pending(self) -> list[PendingAlert]:
        return [
            PendingAlert(key=key, fire_at=entry.fire_at, payload=dict(entry.payload))
            for key, entry in sorted(
                self._pending.items(), key=lambda item: item[1].fire_at
            )
        ]

    async def close(self) -> None:
        """Drop every timer and wait for in-flight handler calls."""
        for entry in self._pending.values():
            entry.timer.cancel()
        self._pending.clear()
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    def _fire(self, key: str, handle: str) -> None:
        entry = self._pending.get(key)
        if entry is None or entry.handle != handle:
            return
        del self._pending[key]
        if self._handler is None:
            logger.warning("Alert %s fired with no handler registered", key)
            return
        task = asyncio.ensure_future(self._deliver(key, entry.payload))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _deliver(self, key: str, payload: dict[str, Any]) -> None:
        assert self._handler is not None
        try:
            await self._handler(payload)
        except Exception:
            logger.exception("Alert handler failed for %s", key)


__all__ = [
    "AlertCallback",
    "AlertTransport",
    "AlertTransportError",
    "LocalAlertTransport",
    "PendingAlert",
]
