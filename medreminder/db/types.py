"""Custom column types."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import String
from sqlalchemy.engine import Dialect
from sqlalchemy.types import TypeDecorator

from medreminder.core.clock import coerce_local


class IsoDateTime(TypeDecorator[datetime]):
    """Naive local timestamp persisted as a fixed-width ISO-8601 string.

    Microseconds are always written so that lexical ordering in SQL matches
    chronological ordering.
    """

    impl = String(32)
    cache_ok = True

    def process_bind_param(self, value: Any, dialect: Dialect) -> str | None:
        if value is None:
            return None
        if isinstance(value, str):
            value = datetime.fromisoformat(value)
        return coerce_local(value).isoformat(timespec="microseconds")

    def process_result_value(self, value: Any, dialect: Dialect) -> datetime | None:
        if value is None:
            return None
        return datetime.fromisoformat(value)
