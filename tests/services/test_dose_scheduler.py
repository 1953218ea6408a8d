"""Pure scheduling rules."""

from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from medreminder.services import dose_scheduler

T = datetime(2026, 3, 2, 8, 0)


def test_initial_and_after_taken_add_one_interval() -> None:
    assert dose_scheduler.initial_next_dose(8, T) == T + timedelta(hours=8)
    taken_at = T + timedelta(hours=3, minutes=12)
    assert dose_scheduler.next_after_taken(taken_at, 6) == taken_at + timedelta(hours=6)


@pytest.mark.parametrize("interval", [0, -4])
def test_non_positive_interval_is_rejected(interval: int) -> None:
    with pytest.raises(ValueError):
        dose_scheduler.initial_next_dose(interval, T)
    with pytest.raises(ValueError):
        dose_scheduler.catch_up(T - timedelta(hours=1), interval, T)


@pytest.mark.parametrize(
    ("interval", "behind"),
    [
        (8, timedelta(hours=20)),
        (8, timedelta(hours=24)),
        (6, timedelta(days=3, minutes=7)),
        (24, timedelta(seconds=1)),
        (1, timedelta(days=30, hours=5, minutes=59)),
    ],
)
def test_catch_up_lands_on_interval_grid(interval: int, behind: timedelta) -> None:
    original = T
    now = T + behind
    rolled = dose_scheduler.catch_up(original, interval, now)

    step = timedelta(hours=interval)
    assert rolled is not None
    assert rolled >= now
    assert rolled - now < step
    assert (rolled - original) % step == timedelta(0)


def test_catch_up_leaves_current_schedule_alone() -> None:
    future = T + timedelta(hours=2)
    assert dose_scheduler.catch_up(future, 8, T) == future
    assert dose_scheduler.catch_up(T, 8, T) == T
    assert dose_scheduler.catch_up(None, 8, T) is None


def test_catch_up_twenty_hours_late_on_eight_hour_interval() -> None:
    assert dose_scheduler.catch_up(T, 8, T + timedelta(hours=20)) == T + timedelta(hours=24)


def test_doses_remaining_and_completion() -> None:
    assert dose_scheduler.doses_remaining(0, 12) is None
    assert dose_scheduler.doses_remaining(5, 2) == 3
    assert dose_scheduler.doses_remaining(5, 7) == 0
    assert not dose_scheduler.is_course_complete(0, 100)
    assert not dose_scheduler.is_course_complete(3, 2)
    assert dose_scheduler.is_course_complete(3, 3)


def test_finite_course_projection() -> None:
    projection = dose_scheduler.project_doses(T, 8, total_doses=4, doses_taken=1)
    expected = [T, T + timedelta(hours=8), T + timedelta(hours=16)]
    assert list(projection) == expected
    assert len(projection) == 3
    # restartable
    assert list(projection) == expected


def test_open_ended_projection_has_five_beyond_next() -> None:
    for taken in (0, 3, 40):
        doses = list(dose_scheduler.project_doses(T, 6, total_doses=0, doses_taken=taken))
        assert doses[0] == T
        assert doses[1:] == [T + timedelta(hours=6 * step) for step in range(1, 6)]


def test_projection_last_dose_and_completed_course() -> None:
    assert list(dose_scheduler.project_doses(T, 8, total_doses=3, doses_taken=2)) == [T]
    assert list(dose_scheduler.project_doses(T, 8, total_doses=3, doses_taken=3)) == []
    assert list(dose_scheduler.project_doses(None, 8)) == []
    assert len(dose_scheduler.project_doses(None, 8)) == 0


@pytest.mark.parametrize(
    ("offset_minutes", "expected"),
    [
        (45, False),
        (30, True),
        (10, True),
        (0, True),
        (-5, True),
        (-6, False),
    ],
)
def test_due_soon_window(offset_minutes: int, expected: bool) -> None:
    next_dose_at = T + timedelta(minutes=offset_minutes)
    assert dose_scheduler.is_due_soon(next_dose_at, T, 30) is expected


def test_due_soon_without_schedule() -> None:
    assert dose_scheduler.is_due_soon(None, T, 30) is False


def test_merge_upcoming_interleaves_by_time() -> None:
    every_six = list(dose_scheduler.project_doses(T, 6, total_doses=3))
    every_eight = list(dose_scheduler.project_doses(T + timedelta(hours=1), 8, total_doses=3))
    merged = dose_scheduler.merge_upcoming([every_eight, every_six], key=lambda when: when)
    assert merged == sorted(every_six + every_eight)
