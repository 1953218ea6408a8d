"""Medication schemas."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class MedicationBase(BaseModel):
    """Shared medication fields."""

    name: str = Field(..., min_length=1, max_length=255)
    dose_quantity: str = Field("", max_length=120)
    interval_hours: int = Field(8, gt=0)
    total_doses: int = Field(0, ge=0)

    model_config = ConfigDict(str_strip_whitespace=True)


class MedicationCreate(MedicationBase):
    """Payload for registering a medication."""


class MedicationUpdate(BaseModel):
    """Mutable medication fields."""

    name: str | None = Field(default=None, min_length=1, max_length=255)
    dose_quantity: str | None = Field(default=None, max_length=120)
    interval_hours: int | None = Field(default=None, gt=0)
    total_doses: int | None = Field(default=None, ge=0)
    next_dose_at: datetime | None = None

    model_config = ConfigDict(str_strip_whitespace=True)


class MedicationRead(MedicationBase):
    """Serialized medication with its course accounting."""

    id: uuid.UUID
    owner_id: uuid.UUID
    next_dose_at: datetime | None = None
    doses_taken: int = 0
    doses_remaining: int | None = None
    course_complete: bool = False

    model_config = ConfigDict(from_attributes=True)
