"""Dose history and upcoming-dose schemas."""

from __future__ import annotations

import enum
import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict


class UpcomingWindow(str, enum.Enum):
    ALL = "all"
    TODAY = "today"
    WEEK = "week"


class DoseEventRead(BaseModel):
    """A recorded dose."""

    id: uuid.UUID
    medication_id: uuid.UUID
    taken_at: datetime

    model_config = ConfigDict(from_attributes=True)


class DoseHistoryEntry(BaseModel):
    """A recorded dose joined with the medication it belongs to."""

    id: uuid.UUID
    medication_id: uuid.UUID
    medication_name: str
    dose_quantity: str
    interval_hours: int
    taken_at: datetime


class UpcomingDose(BaseModel):
    """One projected dose in the upcoming-doses view."""

    medication_id: uuid.UUID
    name: str
    dose_quantity: str
    interval_hours: int
    scheduled_at: datetime
    is_next: bool
    due_soon: bool = False
    dose_number: int | None = None
    total_doses: int | None = None


class CourseProgress(BaseModel):
    """Completion summary for a finite course."""

    medication_id: uuid.UUID
    name: str
    total_doses: int
    doses_taken: int
    doses_remaining: int
    progress_percent: float


class SkipDoseRequest(BaseModel):
    """Dismiss the pending dose; ``scheduled_at`` guards against stale views."""

    scheduled_at: datetime | None = None


class AlarmCheckResult(BaseModel):
    medication_ids: list[uuid.UUID]
    playing: bool
