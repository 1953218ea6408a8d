"""Medication ledger services."""
from __future__ import annotations

import logging
import uuid
from collections.abc import Sequence
from datetime import datetime

from sqlalchemy import Select, delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from medreminder.core.clock import coerce_local, local_now
from medreminder.models import DoseEvent, Medication
from medreminder.schemas.medication import MedicationCreate, MedicationUpdate
from medreminder.services import dose_scheduler
from medreminder.services.alert_dispatcher import AlertDispatcher

logger = logging.getLogger(__name__)


class MedicationNotFoundError(ValueError):
    """Raised when a medication does not exist for the owner."""


class CourseCompletedError(ValueError):
    """Raised when a finite course has no doses left."""


async def commit(session: AsyncSession) -> None:
    """Commit, rolling back and logging on storage failure."""
    try:
        await session.commit()
    except SQLAlchemyError:
        await session.rollback()
        logger.exception("Ledger write failed")
        raise


async def count_doses_taken(session: AsyncSession, medication_id: uuid.UUID) -> int:
    stmt = select(func.count(DoseEvent.id)).where(DoseEvent.medication_id == medication_id)
    result = await session.execute(stmt)
    return int(result.scalar_one())


async def doses_taken_by_medication(
    session: AsyncSession, medication_ids: Sequence[uuid.UUID]
) -> dict[uuid.UUID, int]:
    if not medication_ids:
        return {}
    stmt = (
        select(DoseEvent.medication_id, func.count(DoseEvent.id))
        .where(DoseEvent.medication_id.in_(list(medication_ids)))
        .group_by(DoseEvent.medication_id)
    )
    result = await session.execute(stmt)
    return {medication_id: int(total) for medication_id, total in result.all()}


def _apply_schedule(medication: Medication, *, doses_taken: int, now: datetime) -> bool:
    """Apply catch-up and the completion policy in place; returns True if changed."""
    if dose_scheduler.is_course_complete(medication.total_doses, doses_taken):
        updated = None
    else:
        updated = dose_scheduler.catch_up(
            medication.next_dose_at, medication.interval_hours, now
        )
    if updated == medication.next_dose_at:
        return False
    medication.next_dose_at = updated
    return True


async def refresh_schedules(
    session: AsyncSession,
    medications: Sequence[Medication],
    *,
    now: datetime | None = None,
    dispatcher: AlertDispatcher | None = None,
) -> list[Medication]:
    """Bring every ``next_dose_at`` current before it is surfaced.

    Changes are committed and, when a dispatcher is given, the alerts of the
    medications that moved are rescheduled. Returns the medications that moved.
    """
    now = now or local_now()
    counts = await doses_taken_by_medication(
        session, [med.id for med in medications if med.total_doses > 0]
    )
    changed = [
        medication
        for medication in medications
        if _apply_schedule(medication, doses_taken=counts.get(medication.id, 0), now=now)
    ]
    if changed:
        await commit(session)
        if dispatcher is not None:
            await dispatcher.ensure_scheduled(changed)
    return changed


def _sort_key(medication: Medication) -> tuple[bool, datetime, str]:
    return (
        medication.next_dose_at is None,
        medication.next_dose_at or datetime.max,
        medication.name.lower(),
    )


async def find_medication(
    session: AsyncSession, medication_id: uuid.UUID
) -> Medication | None:
    """Unscoped lookup for callers that already hold a trusted medication id."""
    return await session.get(Medication, medication_id)


async def get_medication(
    session: AsyncSession,
    *,
    owner_id: uuid.UUID,
    medication_id: uuid.UUID,
    now: datetime | None = None,
    dispatcher: AlertDispatcher | None = None,
) -> Medication:
    medication = await session.get(Medication, medication_id)
    if medication is None or medication.owner_id != owner_id:
        raise MedicationNotFoundError("Medication not found")
    await refresh_schedules(session, [medication], now=now, dispatcher=dispatcher)
    return medication


async def list_medications(
    session: AsyncSession,
    *,
    owner_id: uuid.UUID,
    now: datetime | None = None,
    dispatcher: AlertDispatcher | None = None,
) -> list[Medication]:
    stmt: Select[tuple[Medication]] = select(Medication).where(
        Medication.owner_id == owner_id
    )
    result = await session.execute(stmt)
    medications = list(result.scalars().all())
    await refresh_schedules(session, medications, now=now, dispatcher=dispatcher)
    return sorted(medications, key=_sort_key)


async def list_all_medications(
    session: AsyncSession,
    *,
    now: datetime | None = None,
    dispatcher: AlertDispatcher | None = None,
) -> list[Medication]:
    result = await session.execute(select(Medication))
    medications = list(result.scalars().all())
    await refresh_schedules(session, medications, now=now, dispatcher=dispatcher)
    return sorted(medications, key=_sort_key)


async def create_medication(
    session: AsyncSession,
    payload: MedicationCreate,
    *,
    owner_id: uuid.UUID,
    now: datetime | None = None,
    dispatcher: AlertDispatcher | None = None,
) -> Medication:
    now = now or local_now()
    medication = Medication(
        owner_id=owner_id,
        name=payload.name,
        dose_quantity=payload.dose_quantity,
        interval_hours=payload.interval_hours,
        total_doses=payload.total_doses,
        next_dose_at=dose_scheduler.initial_next_dose(payload.interval_hours, now),
    )
    session.add(medication)
    await commit(session)
    await session.refresh(medication)
    logger.info("Medication %s registered every %sh", medication.id, medication.interval_hours)
    if dispatcher is not None:
        await dispatcher.reschedule(medication)
    return medication


async def update_medication(
    session: AsyncSession,
    *,
    medication: Medication,
    payload: MedicationUpdate,
    now: datetime | None = None,
    dispatcher: AlertDispatcher | None = None,
) -> Medication:
    updates = payload.model_dump(exclude_unset=True)
    if "name" in updates:
        if not updates["name"]:
            raise ValueError("Medication name cannot be empty")
        medication.name = updates["name"]
    if "dose_quantity" in updates:
        medication.dose_quantity = updates["dose_quantity"] or ""
    if "interval_hours" in updates:
        if updates["interval_hours"] is None:
            raise ValueError("interval_hours cannot be null")
        medication.interval_hours = updates["interval_hours"]
    if "total_doses" in updates:
        total = updates["total_doses"]
        if total is None:
            raise ValueError("total_doses cannot be null")
        taken = await count_doses_taken(session, medication.id)
        if total > 0 and total < taken:
            raise ValueError(
                f"total_doses cannot be lower than the {taken} doses already taken"
            )
        medication.total_doses = total
    if "next_dose_at" in updates:
        next_dose_at = updates["next_dose_at"]
        medication.next_dose_at = coerce_local(next_dose_at) if next_dose_at else None

    await commit(session)
    await refresh_schedules(session, [medication], now=now)
    await session.refresh(medication)
    if dispatcher is not None:
        await dispatcher.reschedule(medication)
    return medication


async def delete_medication(
    session: AsyncSession,
    *,
    medication: Medication,
    dispatcher: AlertDispatcher | None = None,
) -> None:
    medication_id = medication.id
    await session.execute(delete(DoseEvent).where(DoseEvent.medication_id == medication_id))
    await session.delete(medication)
    await commit(session)
    logger.info("Medication %s deleted", medication_id)
    if dispatcher is not None:
        await dispatcher.cancel(medication_id)


async def skip_next_dose(
    session: AsyncSession,
    *,
    medication: Medication,
    scheduled_at: datetime | None = None,
    dispatcher: AlertDispatcher | None = None,
) -> Medication:
    """Dismiss the pending dose; projected doses cannot be skipped individually."""
    if medication.next_dose_at is None:
        raise ValueError("No dose is scheduled for this medication")
    if scheduled_at is not None and coerce_local(scheduled_at) != medication.next_dose_at:
        raise ValueError("Only the next scheduled dose can be skipped")
    medication.next_dose_at = None
    await commit(session)
    await session.refresh(medication)
    if dispatcher is not None:
        await dispatcher.cancel(medication.id)
    return medication


__all__ = [
    "CourseCompletedError",
    "MedicationNotFoundError",
    "commit",
    "count_doses_taken",
    "create_medication",
    "delete_medication",
    "doses_taken_by_medication",
    "find_medication",
    "get_medication",
    "list_all_medications",
    "list_medications",
    "refresh_schedules",
    "skip_next_dose",
    "update_medication",
]
