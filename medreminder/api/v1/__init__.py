"""Versioned API router."""

from fastapi import APIRouter

from . import (
    alerts,
    doses,
    health,
    medications,
    sound,
)

router = APIRouter()
router.include_router(health.router, prefix="/health", tags=["health"])
router.include_router(medications.router, prefix="/medications", tags=["medications"])
router.include_router(doses.router, prefix="/doses", tags=["doses"])
router.include_router(alerts.router, prefix="/alerts", tags=["alerts"])
router.include_router(sound.router, prefix="/sound", tags=["sound"])
