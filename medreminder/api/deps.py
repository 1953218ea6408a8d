"""Common API dependencies."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Annotated
from collections.abc import AsyncGenerator

from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from medreminder.db.session import get_session
from medreminder.services.alarm_engine import AlarmEngine
from medreminder.services.alert_dispatcher import AlertDispatcher
from medreminder.services.reminder_service import ReminderRuntime


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Provide an async database session."""
    async for session in get_session():
        yield session


def get_owner_id(
    x_owner_id: Annotated[str | None, Header()] = None,
) -> uuid.UUID:
    """Identify the medication owner from the ``X-Owner-ID`` header."""
    if not x_owner_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="X-Owner-ID header is required",
        )
    try:
        return uuid.UUID(x_owner_id)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="X-Owner-ID must be a UUID",
        ) from exc


def get_runtime(request: Request) -> ReminderRuntime:
    runtime = getattr(request.app.state, "runtime", None)
    if runtime is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Reminder runtime is not ready",
        )
    return runtime


def get_dispatcher(
    runtime: Annotated[ReminderRuntime, Depends(get_runtime)],
) -> AlertDispatcher:
    return runtime.dispatcher


def get_alarm_engine(
    runtime: Annotated[ReminderRuntime, Depends(get_runtime)],
) -> AlarmEngine:
    return runtime.engine


def get_now(
    runtime: Annotated[ReminderRuntime, Depends(get_runtime)],
) -> datetime:
    """Current time from the runtime clock."""
    return runtime.now()


SessionDep = Annotated[AsyncSession, Depends(get_db_session)]
OwnerDep = Annotated[uuid.UUID, Depends(get_owner_id)]
RuntimeDep = Annotated[ReminderRuntime, Depends(get_runtime)]
DispatcherDep = Annotated[AlertDispatcher, Depends(get_dispatcher)]
EngineDep = Annotated[AlarmEngine, Depends(get_alarm_engine)]
NowDep = Annotated[datetime, Depends(get_now)]
