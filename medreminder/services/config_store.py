"""Key/value persistence for process-wide settings."""

from __future__ import annotations

import copy
import logging
from typing import Any, Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from medreminder.models import AppSetting

logger = logging.getLogger(__name__)


class ConfigStore(Protocol):
    async def get(self, key: str) -> Any | None: ...

    async def set(self, key: str, value: Any) -> None: ...


class SqlConfigStore:
    """Stores JSON values in the ``app_settings`` table, one session per call."""

    def __init__(self, sessionmaker: async_sessionmaker[AsyncSession]) -> None:
        self._sessionmaker = sessionmaker

    async def get(self, key: str) -> Any | None:
        async with self._sessionmaker() as session:
            setting = await session.get(AppSetting, key)
            return None if setting is None else setting.value

    async def set(self, key: str, value: Any) -> None:
        async with self._sessionmaker() as session:
            setting = await session.get(AppSetting, key)
            if setting is None:
                session.add(AppSetting(key=key, value=value))
            else:
                setting.value = value
            try:
                await session.commit()
            except SQLAlchemyError:
                await session.rollback()
                logger.exception("Failed to persist setting %s", key)
                raise


class MemoryConfigStore:
    """Dictionary-backed store for tests and scripts."""

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._values: dict[str, Any] = copy.deepcopy(initial or {})

    async def get(self, key: str) -> Any | None:
        return copy.deepcopy(self._values.get(key))

    async def set(self, key: str, value: Any) -> None:
        self._values[key] = copy.deepcopy(value)


__all__ = ["ConfigStore", "MemoryConfigStore", "SqlConfigStore"]
