"""Sound configuration and mute endpoints."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, status

from medreminder.api.deps import EngineDep
from medreminder.schemas.sound import (
    MuteRequest,
    MuteStatus,
    PlaybackRead,
    SoundConfig,
)
from medreminder.services.alarm_engine import AlarmEngine

router = APIRouter()


async def _mute_status(engine: AlarmEngine) -> MuteStatus:
    state = await engine.get_mute_state()
    return MuteStatus(
        muted=state.muted,
        mute_until=state.mute_until,
        active=state.muted or state.mute_until is not None,
    )


@router.get("/config", response_model=SoundConfig, summary="Alarm sound settings")
async def get_config(engine: EngineDep) -> SoundConfig:
    return await engine.get_sound_config()


@router.put("/config", response_model=SoundConfig, summary="Save alarm sound settings")
async def save_config(payload: SoundConfig, engine: EngineDep) -> SoundConfig:
    return await engine.save_sound_config(payload)


@router.get("/mute", response_model=MuteStatus, summary="Current mute state")
async def get_mute(engine: EngineDep) -> MuteStatus:
    return await _mute_status(engine)


@router.post("/mute", response_model=MuteStatus, summary="Mute temporarily or toggle mute")
async def mute(payload: MuteRequest, engine: EngineDep) -> MuteStatus:
    if payload.minutes is not None:
        await engine.mute_temporarily(payload.minutes)
    elif payload.muted is not None:
        await engine.set_muted(payload.muted)
    return await _mute_status(engine)


@router.post("/test", response_model=PlaybackRead, summary="Play a single test pulse")
async def test_sound(engine: EngineDep) -> PlaybackRead:
    delivered = await engine.play_bell()
    if not delivered:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Sound output is temporarily unavailable",
        )
    return PlaybackRead(outcome="completed", pulses=1)
