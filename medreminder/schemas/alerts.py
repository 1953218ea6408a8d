"""Alert toggle and pending alert schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel


class AlertToggle(BaseModel):
    enabled: bool


class PendingAlertRead(BaseModel):
    key: str
    fire_at: datetime
    payload: dict[str, Any]
