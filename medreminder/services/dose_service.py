"""Dose-taking, history and upcoming-dose views."""
from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from medreminder.core.clock import local_now
from medreminder.models import DoseEvent, Medication
from medreminder.schemas.dose import (
    CourseProgress,
    DoseHistoryEntry,
    UpcomingDose,
    UpcomingWindow,
)
from medreminder.services import dose_scheduler
from medreminder.services.alert_dispatcher import AlertDispatcher
from medreminder.services.medication_service import (
    CourseCompletedError,
    commit,
    count_doses_taken,
    doses_taken_by_medication,
    list_medications,
)

logger = logging.getLogger(__name__)

_WEEK = timedelta(days=7)


async def mark_taken(
    session: AsyncSession,
    *,
    medication: Medication,
    now: datetime | None = None,
    dispatcher: AlertDispatcher | None = None,
) -> DoseEvent:
    """Record a dose at ``now`` and restart the interval from it.

    The final dose of a finite course clears ``next_dose_at`` instead.
    """
    now = now or local_now()
    taken = await count_doses_taken(session, medication.id)
    if dose_scheduler.is_course_complete(medication.total_doses, taken):
        raise CourseCompletedError(
            f"All {medication.total_doses} doses of {medication.name} have been taken"
        )

    event = DoseEvent(medication_id=medication.id, taken_at=now)
    session.add(event)
    taken += 1
    if dose_scheduler.is_course_complete(medication.total_doses, taken):
        medication.next_dose_at = None
        logger.info("Course for medication %s completed", medication.id)
    else:
        medication.next_dose_at = dose_scheduler.next_after_taken(
            now, medication.interval_hours
        )
    await commit(session)
    await session.refresh(event)
    if dispatcher is not None:
        await dispatcher.reschedule(medication)
    return event


async def list_dose_history(
    session: AsyncSession,
    *,
    owner_id: uuid.UUID,
    medication_id: uuid.UUID | None = None,
) -> list[DoseHistoryEntry]:
    stmt = (
        select(
            DoseEvent.id,
            DoseEvent.medication_id,
            Medication.name,
            Medication.dose_quantity,
            Medication.interval_hours,
            DoseEvent.taken_at,
        )
        .join(Medication, DoseEvent.medication_id == Medication.id)
        .where(Medication.owner_id == owner_id)
        .order_by(DoseEvent.taken_at.desc())
    )
    if medication_id is not None:
        stmt = stmt.where(DoseEvent.medication_id == medication_id)
    result = await session.execute(stmt)
    return [
        DoseHistoryEntry(
            id=event_id,
            medication_id=med_id,
            medication_name=name,
            dose_quantity=dose_quantity,
            interval_hours=interval_hours,
            taken_at=taken_at,
        )
        for event_id, med_id, name, dose_quantity, interval_hours, taken_at in result.all()
    ]


async def course_summary(
    session: AsyncSession,
    *,
    owner_id: uuid.UUID,
) -> list[CourseProgress]:
    """Progress of every finite course owned by ``owner_id``."""
    stmt = (
        select(Medication)
        .where(Medication.owner_id == owner_id, Medication.total_doses > 0)
        .order_by(Medication.name)
    )
    medications = list((await session.execute(stmt)).scalars().all())
    counts = await doses_taken_by_medication(session, [med.id for med in medications])

    summary: list[CourseProgress] = []
    for medication in medications:
        taken = counts.get(medication.id, 0)
        remaining = dose_scheduler.doses_remaining(medication.total_doses, taken) or 0
        progress = min(100.0, taken / medication.total_doses * 100)
        summary.append(
            CourseProgress(
                medication_id=medication.id,
                name=medication.name,
                total_doses=medication.total_doses,
                doses_taken=taken,
                doses_remaining=remaining,
                progress_percent=round(progress, 1),
            )
        )
    return summary


def _in_window(when: datetime, window: UpcomingWindow, now: datetime) -> bool:
    if window is UpcomingWindow.TODAY:
        return when.date() == now.date()
    if window is UpcomingWindow.WEEK:
        return now <= when <= now + _WEEK
    return True


async def list_upcoming(
    session: AsyncSession,
    *,
    owner_id: uuid.UUID,
    window: UpcomingWindow = UpcomingWindow.ALL,
    now: datetime | None = None,
    advance_warning_minutes: int = 30,
    dispatcher: AlertDispatcher | None = None,
) -> list[UpcomingDose]:
    """Projected doses for every medication, merged and sorted by time."""
    now = now or local_now()
    medications = await list_medications(
        session, owner_id=owner_id, now=now, dispatcher=dispatcher
    )
    counts = await doses_taken_by_medication(session, [med.id for med in medications])

    per_medication: list[list[UpcomingDose]] = []
    for medication in medications:
        doses: list[UpcomingDose] = []
        taken = counts.get(medication.id, 0)
        finite = medication.total_doses > 0
        projection = dose_scheduler.project_doses(
            medication.next_dose_at,
            medication.interval_hours,
            medication.total_doses,
            taken,
        )
        for index, scheduled_at in enumerate(projection):
            if not _in_window(scheduled_at, window, now):
                continue
            doses.append(
                UpcomingDose(
                    medication_id=medication.id,
                    name=medication.name,
                    dose_quantity=medication.dose_quantity,
                    interval_hours=medication.interval_hours,
                    scheduled_at=scheduled_at,
                    is_next=index == 0,
                    due_soon=index == 0
                    and dose_scheduler.is_due_soon(
                        scheduled_at, now, advance_warning_minutes
                    ),
                    dose_number=taken + 1 + index if finite else None,
                    total_doses=medication.total_doses if finite else None,
                )
            )
        per_medication.append(doses)
    return dose_scheduler.merge_upcoming(
        per_medication, key=lambda dose: (dose.scheduled_at, dose.name.lower())
    )


__all__ = [
    "course_summary",
    "list_dose_history",
    "list_upcoming",
    "mark_taken",
]
