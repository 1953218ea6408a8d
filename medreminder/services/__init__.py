"""Service layer exports."""
from medreminder.services import (
    dose_scheduler,
    config_store,
    alert_dispatcher,
    alarm_engine,
    medication_service,
    dose_service,
    reminder_service,
)

__all__ = [
    "alarm_engine",
    "alert_dispatcher",
    "config_store",
    "dose_scheduler",
    "dose_service",
    "medication_service",
    "reminder_service",
]
