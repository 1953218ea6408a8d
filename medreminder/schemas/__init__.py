"""Pydantic schemas."""

from medreminder.schemas.alerts import AlertToggle, PendingAlertRead
from medreminder.schemas.dose import (
    AlarmCheckResult,
    CourseProgress,
    DoseEventRead,
    DoseHistoryEntry,
    SkipDoseRequest,
    UpcomingDose,
    UpcomingWindow,
)
from medreminder.schemas.medication import (
    MedicationCreate,
    MedicationRead,
    MedicationUpdate,
)
from medreminder.schemas.sound import (
    MuteRequest,
    MuteState,
    MuteStatus,
    PlaybackRead,
    SoundConfig,
)

__all__ = [
    "AlarmCheckResult",
    "AlertToggle",
    "CourseProgress",
    "DoseEventRead",
    "DoseHistoryEntry",
    "MedicationCreate",
    "MedicationRead",
    "MedicationUpdate",
    "MuteRequest",
    "MuteState",
    "MuteStatus",
    "PendingAlertRead",
    "PlaybackRead",
    "SkipDoseRequest",
    "SoundConfig",
    "UpcomingDose",
    "UpcomingWindow",
]
