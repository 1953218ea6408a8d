"""Dose-taking, history, summary and upcoming views."""

from __future__ import annotations

import uuid
from datetime import timedelta

import pytest

from medreminder.db.session import get_sessionmaker
from medreminder.schemas.dose import UpcomingWindow
from medreminder.schemas.medication import MedicationCreate
from medreminder.services import dose_scheduler, dose_service, medication_service
from medreminder.services.alert_dispatcher import AlertDispatcher

pytestmark = pytest.mark.asyncio

OWNER = uuid.UUID("0b7e5d7a-4c55-4bd3-8a3c-6f2a9d1e0c22")


async def _create(session, clock, **fields):
    return await medication_service.create_medication(
        session, MedicationCreate(**fields), owner_id=OWNER, now=clock()
    )


async def test_mark_taken_restarts_interval_from_now(reset_database, db_url: str, clock) -> None:
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        medication = await _create(session, clock, name="Ibuprofen", interval_hours=6)
        clock.advance(hours=2, minutes=15)
        event = await dose_service.mark_taken(session, medication=medication, now=clock())

    assert event.taken_at == clock()
    assert medication.next_dose_at == clock() + timedelta(hours=6)


async def test_finite_course_runs_to_completion(
    reset_database, db_url: str, clock, transport
) -> None:
    dispatcher = AlertDispatcher(transport, clock=clock)
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        medication = await _create(
            session, clock, name="Amoxicillin", interval_hours=8, total_doses=3
        )
        for _ in range(3):
            clock.advance(hours=8)
            await dose_service.mark_taken(
                session, medication=medication, now=clock(), dispatcher=dispatcher
            )

        taken = await medication_service.count_doses_taken(session, medication.id)
        assert dose_scheduler.doses_remaining(medication.total_doses, taken) == 0
        assert medication.next_dose_at is None
        assert await dispatcher.pending_keys() == set()

        with pytest.raises(medication_service.CourseCompletedError):
            await dose_service.mark_taken(session, medication=medication, now=clock())

        # catch-up never revives a finished course
        clock.advance(days=3)
        [refreshed] = await medication_service.list_medications(
            session, owner_id=OWNER, now=clock()
        )
        assert refreshed.next_dose_at is None


async def test_history_is_newest_first_and_filterable(reset_database, db_url: str, clock) -> None:
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        first = await _create(session, clock, name="Amoxicillin", dose_quantity="500mg")
        second = await _create(session, clock, name="Ibuprofen", dose_quantity="400mg")
        await dose_service.mark_taken(session, medication=first, now=clock())
        clock.advance(minutes=30)
        await dose_service.mark_taken(session, medication=second, now=clock())
        clock.advance(minutes=30)
        await dose_service.mark_taken(session, medication=first, now=clock())

        history = await dose_service.list_dose_history(session, owner_id=OWNER)
        only_first = await dose_service.list_dose_history(
            session, owner_id=OWNER, medication_id=first.id
        )
        other_owner = await dose_service.list_dose_history(session, owner_id=uuid.uuid4())

    assert [entry.medication_name for entry in history] == [
        "Amoxicillin",
        "Ibuprofen",
        "Amoxicillin",
    ]
    assert history[0].taken_at > history[1].taken_at > history[2].taken_at
    assert history[1].dose_quantity == "400mg"
    assert len(only_first) == 2
    assert other_owner == []


async def test_course_summary_reports_progress(reset_database, db_url: str, clock) -> None:
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        course = await _create(session, clock, name="Amoxicillin", total_doses=4)
        await _create(session, clock, name="Vitamin D", total_doses=0)
        await dose_service.mark_taken(session, medication=course, now=clock())

        summary = await dose_service.course_summary(session, owner_id=OWNER)

    assert len(summary) == 1
    progress = summary[0]
    assert progress.name == "Amoxicillin"
    assert progress.doses_taken == 1
    assert progress.doses_remaining == 3
    assert progress.progress_percent == 25.0


async def test_upcoming_merges_projections(reset_database, db_url: str, clock) -> None:
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        course = await _create(session, clock, name="Amoxicillin", interval_hours=8, total_doses=4)
        await dose_service.mark_taken(session, medication=course, now=clock())
        await _create(session, clock, name="Ibuprofen", interval_hours=6)

        upcoming = await dose_service.list_upcoming(session, owner_id=OWNER, now=clock())

    course_doses = [dose for dose in upcoming if dose.name == "Amoxicillin"]
    open_doses = [dose for dose in upcoming if dose.name == "Ibuprofen"]
    start = clock()
    assert [dose.scheduled_at for dose in course_doses] == [
        start + timedelta(hours=8),
        start + timedelta(hours=16),
        start + timedelta(hours=24),
    ]
    assert [dose.dose_number for dose in course_doses] == [2, 3, 4]
    assert all(dose.total_doses == 4 for dose in course_doses)
    assert len(open_doses) == 6
    assert open_doses[0].is_next and not open_doses[1].is_next
    assert open_doses[0].dose_number is None
    assert [dose.scheduled_at for dose in upcoming] == sorted(
        dose.scheduled_at for dose in upcoming
    )


async def test_upcoming_windows_and_due_soon(reset_database, db_url: str, clock) -> None:
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        await _create(session, clock, name="Melatonin", interval_hours=24)

        everything = await dose_service.list_upcoming(
            session, owner_id=OWNER, window=UpcomingWindow.ALL, now=clock()
        )
        week = await dose_service.list_upcoming(
            session, owner_id=OWNER, window=UpcomingWindow.WEEK, now=clock()
        )
        today = await dose_service.list_upcoming(
            session, owner_id=OWNER, window=UpcomingWindow.TODAY, now=clock()
        )

        clock.advance(hours=23, minutes=45)
        soon = await dose_service.list_upcoming(
            session, owner_id=OWNER, now=clock(), advance_warning_minutes=30
        )

    assert len(everything) == 6
    assert len(week) == 6
    assert today == []
    assert soon[0].due_soon is True
    assert not any(dose.due_soon for dose in soon[1:])
