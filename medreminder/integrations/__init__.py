"""Integration shortcuts."""

from .local_alerts import (
    AlertCallback,
    AlertTransport,
    AlertTransportError,
    LocalAlertTransport,
    PendingAlert,
)
from .sound import LogSoundEmitter, SoundEmitter, TerminalBellEmitter, build_sound_emitter

__all__ = [
    "AlertCallback",
    "AlertTransport",
    "AlertTransportError",
    "LocalAlertTransport",
    "LogSoundEmitter",
    "PendingAlert",
    "SoundEmitter",
    "TerminalBellEmitter",
    "build_sound_emitter",
]
