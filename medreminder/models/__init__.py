"""ORM models package export."""

from medreminder.models.app_setting import AppSetting
from medreminder.models.medication import DoseEvent, Medication

__all__ = [
    "AppSetting",
    "DoseEvent",
    "Medication",
]
