"""Naive local time helpers.

All scheduling happens in naive local time. Aware datetimes arriving from the
API are converted to the host's local zone and stripped of tzinfo.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime

Clock = Callable[[], datetime]


def local_now() -> datetime:
    """Return the current naive local time."""
    return datetime.now()


def coerce_local(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt
    return dt.astimezone().replace(tzinfo=None)
