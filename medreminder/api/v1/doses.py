"""Endpoints for aggregated dose views and due-soon alarms."""

from __future__ import annotations

from fastapi import APIRouter, BackgroundTasks, Query

from medreminder.api.deps import (
    DispatcherDep,
    EngineDep,
    NowDep,
    OwnerDep,
    RuntimeDep,
    SessionDep,
)
from medreminder.schemas.dose import (
    AlarmCheckResult,
    CourseProgress,
    DoseHistoryEntry,
    UpcomingDose,
    UpcomingWindow,
)
from medreminder.services import dose_service, reminder_service

router = APIRouter()


@router.get(
    "/upcoming",
    response_model=list[UpcomingDose],
    summary="Projected doses across all medications",
)
async def list_upcoming(
    session: SessionDep,
    owner_id: OwnerDep,
    engine: EngineDep,
    dispatcher: DispatcherDep,
    now: NowDep,
    window: UpcomingWindow = Query(UpcomingWindow.ALL, description="all, today or week"),
) -> list[UpcomingDose]:
    config = await engine.get_sound_config()
    return await dose_service.list_upcoming(
        session,
        owner_id=owner_id,
        window=window,
        now=now,
        advance_warning_minutes=config.advance_warning_minutes,
        dispatcher=dispatcher,
    )


@router.get("/history", response_model=list[DoseHistoryEntry], summary="Dose history")
async def list_history(
    session: SessionDep,
    owner_id: OwnerDep,
) -> list[DoseHistoryEntry]:
    return await dose_service.list_dose_history(session, owner_id=owner_id)


@router.get(
    "/summary",
    response_model=list[CourseProgress],
    summary="Progress of finite courses",
)
async def course_summary(
    session: SessionDep,
    owner_id: OwnerDep,
) -> list[CourseProgress]:
    return await dose_service.course_summary(session, owner_id=owner_id)


@router.post(
    "/check-alarms",
    response_model=AlarmCheckResult,
    summary="Sound the alarm once for doses entering their due-soon window",
)
async def check_alarms(
    background_tasks: BackgroundTasks,
    session: SessionDep,
    owner_id: OwnerDep,
    runtime: RuntimeDep,
    now: NowDep,
) -> AlarmCheckResult:
    due = await reminder_service.collect_due_alarms(
        session,
        owner_id=owner_id,
        engine=runtime.engine,
        guard=runtime.guard,
        now=now,
        dispatcher=runtime.dispatcher,
    )
    if due:
        background_tasks.add_task(runtime.engine.play_alarm)
    return AlarmCheckResult(
        medication_ids=[medication.id for medication in due], playing=bool(due)
    )
