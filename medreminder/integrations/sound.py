"""Audible pulse emitters used by the alarm engine."""

from __future__ import annotations

import logging
import sys
from typing import Protocol, TextIO

logger = logging.getLogger(__name__)


class SoundEmitter(Protocol):
    """Emits one audible/visual pulse; returns ``False`` when delivery failed."""

    async def emit_pulse(self) -> bool: ...


class LogSoundEmitter:
    """Stub emitter that only records the pulse in the log."""

    async def emit_pulse(self) -> bool:
        logger.info("Alarm pulse")
        return True


class TerminalBellEmitter:
    """Rings the terminal bell on the given stream."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream or sys.stdout

    async def emit_pulse(self) -> bool:
        try:
            self._stream.write("\a")
            self._stream.flush()
        except (OSError, ValueError) as exc:
            logger.warning("Failed to ring terminal bell: %s", exc)
            return False
        return True


def build_sound_emitter(kind: str) -> SoundEmitter:
    """Return the emitter configured by ``SOUND_EMITTER``."""
    if kind == "bell":
        return TerminalBellEmitter()
    return LogSoundEmitter()


__all__ = [
    "LogSoundEmitter",
    "SoundEmitter",
    "TerminalBellEmitter",
    "build_sound_emitter",
]
