"""Health check endpoints."""

from datetime import datetime

from fastapi import APIRouter, Request

from medreminder.core.config import get_settings

router = APIRouter()


@router.get("", summary="Service and reminder runtime status")
async def healthcheck(request: Request) -> dict[str, str | bool | None]:
    """Report whether the reminder runtime is up and reminders are switched on."""
    settings = get_settings()
    runtime = getattr(request.app.state, "runtime", None)
    return {
        "status": "ok" if runtime is not None else "starting",
        "service": settings.app_name,
        "local_time": (runtime.now() if runtime is not None else datetime.now()).isoformat(),
        "runtime_ready": runtime is not None,
        "alerts_enabled": runtime.dispatcher.enabled if runtime is not None else None,
    }
