"""Sound configuration and mute schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field, model_validator


class SoundConfig(BaseModel):
    """How the repeating alarm is played."""

    repetitions: int = Field(3, ge=1)
    interval_ms: int = Field(1500, ge=0)
    advance_warning_minutes: int = Field(30, ge=0)


class MuteState(BaseModel):
    """Permanent mute toggle plus an optional temporary mute expiry."""

    muted: bool = False
    mute_until: datetime | None = None


class MuteStatus(MuteState):
    """Mute state as evaluated at read time."""

    active: bool = False


class MuteRequest(BaseModel):
    """Either mute for ``minutes`` (0 clears) or flip the permanent toggle."""

    minutes: int | None = Field(default=None, ge=0)
    muted: bool | None = None

    @model_validator(mode="after")
    def _one_action(self) -> "MuteRequest":
        if (self.minutes is None) == (self.muted is None):
            raise ValueError("Provide exactly one of 'minutes' or 'muted'")
        return self


class PlaybackRead(BaseModel):
    outcome: str
    pulses: int
    failures: int = 0
