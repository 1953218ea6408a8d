"""Medication ledger API endpoints."""
from __future__ import annotations

import uuid
from datetime import datetime

from fastapi import APIRouter, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from medreminder.api.deps import DispatcherDep, NowDep, OwnerDep, SessionDep
from medreminder.models import Medication
from medreminder.schemas.dose import DoseEventRead, DoseHistoryEntry, SkipDoseRequest
from medreminder.schemas.medication import (
    MedicationCreate,
    MedicationRead,
    MedicationUpdate,
)
from medreminder.services import (
    dose_scheduler,
    dose_service,
    medication_service,
    reminder_service,
)
from medreminder.services.alert_dispatcher import AlertDispatcher
from medreminder.services.medication_service import (
    CourseCompletedError,
    MedicationNotFoundError,
)

router = APIRouter()


def _to_read(medication: Medication, doses_taken: int) -> MedicationRead:
    return MedicationRead(
        id=medication.id,
        owner_id=medication.owner_id,
        name=medication.name,
        dose_quantity=medication.dose_quantity,
        interval_hours=medication.interval_hours,
        total_doses=medication.total_doses,
        next_dose_at=medication.next_dose_at,
        doses_taken=doses_taken,
        doses_remaining=dose_scheduler.doses_remaining(medication.total_doses, doses_taken),
        course_complete=dose_scheduler.is_course_complete(
            medication.total_doses, doses_taken
        ),
    )


async def _read(session: AsyncSession, medication: Medication) -> MedicationRead:
    taken = await medication_service.count_doses_taken(session, medication.id)
    return _to_read(medication, taken)


async def _load(
    session: AsyncSession,
    owner_id: uuid.UUID,
    medication_id: uuid.UUID,
    now: datetime,
    dispatcher: AlertDispatcher,
) -> Medication:
    try:
        return await medication_service.get_medication(
            session,
            owner_id=owner_id,
            medication_id=medication_id,
            now=now,
            dispatcher=dispatcher,
        )
    except MedicationNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc


@router.get("", response_model=list[MedicationRead], summary="List medications")
async def list_medications(
    session: SessionDep,
    owner_id: OwnerDep,
    dispatcher: DispatcherDep,
    now: NowDep,
) -> list[MedicationRead]:
    medications = await reminder_service.refresh_owner_schedule(
        session, owner_id=owner_id, dispatcher=dispatcher, now=now
    )
    counts = await medication_service.doses_taken_by_medication(
        session, [medication.id for medication in medications]
    )
    return [_to_read(medication, counts.get(medication.id, 0)) for medication in medications]


@router.post(
    "",
    response_model=MedicationRead,
    status_code=status.HTTP_201_CREATED,
    summary="Register medication",
)
async def create_medication(
    payload: MedicationCreate,
    session: SessionDep,
    owner_id: OwnerDep,
    dispatcher: DispatcherDep,
    now: NowDep,
) -> MedicationRead:
    try:
        medication = await medication_service.create_medication(
            session, payload, owner_id=owner_id, now=now, dispatcher=dispatcher
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return _to_read(medication, 0)


@router.get("/{medication_id}", response_model=MedicationRead, summary="Get medication")
async def get_medication(
    medication_id: uuid.UUID,
    session: SessionDep,
    owner_id: OwnerDep,
    dispatcher: DispatcherDep,
    now: NowDep,
) -> MedicationRead:
    medication = await _load(session, owner_id, medication_id, now, dispatcher)
    return await _read(session, medication)


@router.patch("/{medication_id}", response_model=MedicationRead, summary="Update medication")
async def update_medication(
    medication_id: uuid.UUID,
    payload: MedicationUpdate,
    session: SessionDep,
    owner_id: OwnerDep,
    dispatcher: DispatcherDep,
    now: NowDep,
) -> MedicationRead:
    medication = await _load(session, owner_id, medication_id, now, dispatcher)
    try:
        updated = await medication_service.update_medication(
            session,
            medication=medication,
            payload=payload,
            now=now,
            dispatcher=dispatcher,
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return await _read(session, updated)


@router.delete(
    "/{medication_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete medication and its dose history",
)
async def delete_medication(
    medication_id: uuid.UUID,
    session: SessionDep,
    owner_id: OwnerDep,
    dispatcher: DispatcherDep,
    now: NowDep,
) -> None:
    medication = await _load(session, owner_id, medication_id, now, dispatcher)
    await medication_service.delete_medication(
        session, medication=medication, dispatcher=dispatcher
    )


@router.post(
    "/{medication_id}/doses",
    response_model=DoseEventRead,
    status_code=status.HTTP_201_CREATED,
    summary="Mark a dose as taken",
)
async def mark_taken(
    medication_id: uuid.UUID,
    session: SessionDep,
    owner_id: OwnerDep,
    dispatcher: DispatcherDep,
    now: NowDep,
) -> DoseEventRead:
    medication = await _load(session, owner_id, medication_id, now, dispatcher)
    try:
        event = await dose_service.mark_taken(
            session, medication=medication, now=now, dispatcher=dispatcher
        )
    except CourseCompletedError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    return DoseEventRead.model_validate(event)


@router.get(
    "/{medication_id}/doses",
    response_model=list[DoseHistoryEntry],
    summary="Dose history for one medication",
)
async def list_doses(
    medication_id: uuid.UUID,
    session: SessionDep,
    owner_id: OwnerDep,
    dispatcher: DispatcherDep,
    now: NowDep,
) -> list[DoseHistoryEntry]:
    await _load(session, owner_id, medication_id, now, dispatcher)
    return await dose_service.list_dose_history(
        session, owner_id=owner_id, medication_id=medication_id
    )


@router.post(
    "/{medication_id}/skip",
    response_model=MedicationRead,
    summary="Dismiss the next scheduled dose",
)
async def skip_next_dose(
    medication_id: uuid.UUID,
    payload: SkipDoseRequest,
    session: SessionDep,
    owner_id: OwnerDep,
    dispatcher: DispatcherDep,
    now: NowDep,
) -> MedicationRead:
    medication = await _load(session, owner_id, medication_id, now, dispatcher)
    try:
        updated = await medication_service.skip_next_dose(
            session,
            medication=medication,
            scheduled_at=payload.scheduled_at,
            dispatcher=dispatcher,
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return await _read(session, updated)
