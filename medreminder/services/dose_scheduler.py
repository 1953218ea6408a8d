"""Pure dose scheduling rules.

Nothing here touches storage; every function takes ``now`` explicitly so the
same rules serve the ledger, the dispatcher and the upcoming-doses views.
"""

from __future__ import annotations

import heapq
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, TypeVar

T = TypeVar("T")

OPEN_ENDED_PROJECTION = 5
DUE_GRACE_MINUTES = 5


def _interval(interval_hours: int) -> timedelta:
    if interval_hours <= 0:
        raise ValueError("interval_hours must be positive")
    return timedelta(hours=interval_hours)


def initial_next_dose(interval_hours: int, now: datetime) -> datetime:
    """First dose of a newly registered medication."""
    return now + _interval(interval_hours)


def next_after_taken(now: datetime, interval_hours: int) -> datetime:
    """Next dose after one is taken at ``now``; any earlier schedule is discarded."""
    return now + _interval(interval_hours)


def catch_up(
    next_dose_at: datetime | None, interval_hours: int, now: datetime
) -> datetime | None:
    """Roll a stale ``next_dose_at`` forward by whole intervals until it is >= ``now``."""
    if next_dose_at is None:
        return None
    step = _interval(interval_hours)
    candidate = next_dose_at
    while candidate < now:
        candidate += step
    return candidate


def is_course_complete(total_doses: int, doses_taken: int) -> bool:
    return total_doses > 0 and doses_taken >= total_doses


def doses_remaining(total_doses: int, doses_taken: int) -> int | None:
    """Doses left in a finite course; ``None`` for open-ended courses."""
    if total_doses == 0:
        return None
    return max(0, total_doses - doses_taken)


def projection_count(total_doses: int, doses_taken: int) -> int:
    """How many doses to project beyond ``next_dose_at``."""
    if total_doses == 0:
        return OPEN_ENDED_PROJECTION
    return max(0, total_doses - doses_taken - 1)


@dataclass(frozen=True)
class DoseProjection:
    """Lazily computed, restartable sequence of upcoming dose times.

    Iterating yields ``next_dose_at`` followed by ``projection_count`` further
    doses spaced ``interval_hours`` apart. Nothing is yielded when no dose is
    scheduled or the course is already complete.
    """

    next_dose_at: datetime | None
    interval_hours: int
    total_doses: int = 0
    doses_taken: int = 0

    def __iter__(self) -> Iterator[datetime]:
        if self.next_dose_at is None or is_course_complete(
            self.total_doses, self.doses_taken
        ):
            return
        step = _interval(self.interval_hours)
        current = self.next_dose_at
        yield current
        for _ in range(projection_count(self.total_doses, self.doses_taken)):
            current += step
            yield current

    def __len__(self) -> int:
        if self.next_dose_at is None or is_course_complete(
            self.total_doses, self.doses_taken
        ):
            return 0
        return 1 + projection_count(self.total_doses, self.doses_taken)


def project_doses(
    next_dose_at: datetime | None,
    interval_hours: int,
    total_doses: int = 0,
    doses_taken: int = 0,
) -> DoseProjection:
    return DoseProjection(
        next_dose_at=next_dose_at,
        interval_hours=interval_hours,
        total_doses=total_doses,
        doses_taken=doses_taken,
    )


def merge_upcoming(
    sequences: Iterable[Iterable[T]], key: Callable[[T], Any]
) -> list[T]:
    """Merge per-medication projections, each already in time order, into one view."""
    return list(heapq.merge(*sequences, key=key))


def minutes_until(next_dose_at: datetime, now: datetime) -> float:
    return (next_dose_at - now).total_seconds() / 60


def is_due_soon(
    next_dose_at: datetime | None, now: datetime, advance_warning_minutes: int
) -> bool:
    """True from ``advance_warning_minutes`` before the dose until 5 minutes after it."""
    if next_dose_at is None:
        return False
    remaining = minutes_until(next_dose_at, now)
    return -DUE_GRACE_MINUTES <= remaining <= advance_warning_minutes


__all__ = [
    "DUE_GRACE_MINUTES",
    "DoseProjection",
    "OPEN_ENDED_PROJECTION",
    "catch_up",
    "doses_remaining",
    "initial_next_dose",
    "is_course_complete",
    "is_due_soon",
    "merge_upcoming",
    "minutes_until",
    "next_after_taken",
    "project_doses",
    "projection_count",
]
