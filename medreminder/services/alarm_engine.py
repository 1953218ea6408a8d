"""Repeating alarm playback gated by the mute state."""

from __future__ import annotations

import asyncio
import enum
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import timedelta
from typing import Any

from pydantic import ValidationError

from medreminder.core.clock import Clock, local_now
from medreminder.integrations.sound import SoundEmitter
from medreminder.schemas.sound import MuteState, SoundConfig
from medreminder.services.config_store import ConfigStore

logger = logging.getLogger(__name__)

SOUND_CONFIG_KEY = "sound_config"
MUTE_STATE_KEY = "mute_state"

Sleeper = Callable[[float], Awaitable[Any]]


class AlarmOutcome(str, enum.Enum):
    SUPPRESSED = "suppressed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


@dataclass
class PlaybackResult:
    outcome: AlarmOutcome
    pulses: int = 0
    failures: int = 0


def _cancelled(cancel: asyncio.Event | None) -> bool:
    return cancel is not None and cancel.is_set()


class AlarmEngine:
    """Owns the sound configuration and mute state and sequences alarm pulses.

    The engine never touches medications or dose history. Callers must not
    start a second playback for the same due window while one is running.
    """

    def __init__(
        self,
        store: ConfigStore,
        emitter: SoundEmitter,
        *,
        clock: Clock = local_now,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        self._store = store
        self._emitter = emitter
        self._clock = clock
        self._sleep = sleep

    # ------------------------------------------------------------------
    # Sound configuration
    # ------------------------------------------------------------------
    async def get_sound_config(self) -> SoundConfig:
        raw = await self._store.get(SOUND_CONFIG_KEY)
        if not raw:
            return SoundConfig()
        try:
            return SoundConfig.model_validate({**SoundConfig().model_dump(), **raw})
        except (TypeError, ValidationError):
            logger.warning("Stored sound config is invalid; using defaults")
            return SoundConfig()

    async def save_sound_config(self, config: SoundConfig) -> SoundConfig:
        await self._store.set(SOUND_CONFIG_KEY, config.model_dump(mode="json"))
        return config

    # ------------------------------------------------------------------
    # Mute state
    # ------------------------------------------------------------------
    async def _load_mute_state(self) -> MuteState:
        raw = await self._store.get(MUTE_STATE_KEY)
        if not raw:
            return MuteState()
        try:
            return MuteState.model_validate(raw)
        except (TypeError, ValidationError):
            logger.warning("Stored mute state is invalid; treating as unmuted")
            return MuteState()

    async def _save_mute_state(self, state: MuteState) -> MuteState:
        await self._store.set(MUTE_STATE_KEY, state.model_dump(mode="json"))
        return state

    async def get_mute_state(self) -> MuteState:
        """Read the mute state, clearing a ``mute_until`` that has expired."""
        state = await self._load_mute_state()
        if state.mute_until is not None and self._clock() >= state.mute_until:
            logger.info("Temporary mute expired at %s", state.mute_until.isoformat())
            state = await self._save_mute_state(state.model_copy(update={"mute_until": None}))
        return state

    async def is_muted(self) -> bool:
        state = await self.get_mute_state()
        return state.muted or state.mute_until is not None

    async def mute_temporarily(self, minutes: int) -> MuteState:
        """Mute for ``minutes`` from now; ``0`` clears any temporary mute."""
        if minutes < 0:
            raise ValueError("minutes must be zero or positive")
        state = await self._load_mute_state()
        mute_until = self._clock() + timedelta(minutes=minutes) if minutes else None
        return await self._save_mute_state(
            state.model_copy(update={"mute_until": mute_until})
        )

    async def set_muted(self, muted: bool) -> MuteState:
        state = await self._load_mute_state()
        return await self._save_mute_state(state.model_copy(update={"muted": muted}))

    # ------------------------------------------------------------------
    # Playback
    # ------------------------------------------------------------------
    async def _emit(self) -> bool:
        try:
            return bool(await self._emitter.emit_pulse())
        except Exception:
            logger.exception("Sound emitter raised while emitting a pulse")
            return False

    async def play_alarm(
        self,
        *,
        repetitions: int | None = None,
        interval_ms: int | None = None,
        ignore_mute: bool = False,
        cancel: asyncio.Event | None = None,
    ) -> PlaybackResult:
        """Play ``repetitions`` pulses separated by ``interval_ms``.

        Saved configuration fills in whichever argument is omitted. When
        ``cancel`` is set, playback stops before the next pulse or pause.
        """
        if not ignore_mute and await self.is_muted():
            logger.info("Sound muted; alarm suppressed")
            return PlaybackResult(AlarmOutcome.SUPPRESSED)

        config = await self.get_sound_config()
        count = config.repetitions if repetitions is None else repetitions
        pause_ms = config.interval_ms if interval_ms is None else interval_ms
        if count < 1:
            raise ValueError("repetitions must be at least 1")
        if pause_ms < 0:
            raise ValueError("interval_ms must be zero or positive")

        logger.info("Playing alarm: %s pulses every %sms", count, pause_ms)
        result = PlaybackResult(AlarmOutcome.COMPLETED)
        for index in range(count):
            if index:
                if _cancelled(cancel):
                    result.outcome = AlarmOutcome.CANCELLED
                    return result
                await self._sleep(pause_ms / 1000)
            if _cancelled(cancel):
                result.outcome = AlarmOutcome.CANCELLED
                return result
            if await self._emit():
                result.pulses += 1
            else:
                result.failures += 1
                logger.warning("Alarm pulse %s of %s failed", index + 1, count)
        return result

    async def play_bell(self) -> bool:
        """Emit a single pulse regardless of mute, for testing the sound."""
        return await self._emit()


__all__ = [
    "AlarmEngine",
    "AlarmOutcome",
    "MUTE_STATE_KEY",
    "PlaybackResult",
    "SOUND_CONFIG_KEY",
]
