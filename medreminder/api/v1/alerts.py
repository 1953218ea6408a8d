"""Global reminder switch and pending alert inspection."""

from __future__ import annotations

from fastapi import APIRouter

from medreminder.api.deps import NowDep, RuntimeDep, SessionDep
from medreminder.schemas.alerts import AlertToggle, PendingAlertRead
from medreminder.services import reminder_service

router = APIRouter()


@router.get("", response_model=AlertToggle, summary="Whether reminders are enabled")
async def get_alerts(runtime: RuntimeDep) -> AlertToggle:
    return AlertToggle(enabled=runtime.dispatcher.enabled)


@router.put("", response_model=AlertToggle, summary="Enable or disable all reminders")
async def set_alerts(
    payload: AlertToggle,
    session: SessionDep,
    runtime: RuntimeDep,
    now: NowDep,
) -> AlertToggle:
    await reminder_service.set_alerts_enabled(
        session,
        enabled=payload.enabled,
        dispatcher=runtime.dispatcher,
        store=runtime.store,
        now=now,
    )
    return AlertToggle(enabled=runtime.dispatcher.enabled)


@router.get(
    "/pending",
    response_model=list[PendingAlertRead],
    summary="Alerts currently scheduled with the delivery transport",
)
async def list_pending(runtime: RuntimeDep) -> list[PendingAlertRead]:
    pending = await runtime.transport.list_pending()
    return [
        PendingAlertRead(key=alert.key, fire_at=alert.fire_at, payload=alert.payload)
        for alert in pending
    ]
