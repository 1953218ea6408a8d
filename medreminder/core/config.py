"""Application configuration via pydantic settings."""

from functools import lru_cache
from pathlib import Path

from typing import Any

from pydantic import Field
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Typed application configuration."""

    app_env: str = Field("local", alias="APP_ENV")
    app_name: str = Field("Medication Reminder API", alias="APP_NAME")
    api_v1_prefix: str = "/api/v1"

    database_url: str = Field(
        "sqlite+aiosqlite:///./medreminder.db", alias="DATABASE_URL"
    )
    sync_database_url: str | None = Field(default=None, alias="SYNC_DATABASE_URL")
    auto_create_schema: bool = Field(True, alias="AUTO_CREATE_SCHEMA")

    log_level: str = Field("INFO", alias="LOG_LEVEL")

    alerts_enabled_default: bool = Field(True, alias="ALERTS_ENABLED_DEFAULT")
    sound_emitter: str = Field("log", alias="SOUND_EMITTER")

    cors_allow_origins: list[str] = Field(
        default_factory=lambda: [
            "http://localhost:5173",
            "http://localhost:8081",
        ],
        alias="CORS_ALLOW_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=False, alias="CORS_ALLOW_CREDENTIALS")

    model_config = SettingsConfigDict(
        env_file=Path(__file__).resolve().parents[2] / ".env",
        case_sensitive=False,
    )

    @field_validator("cors_allow_origins", mode="before")
    @classmethod
    def _split_origins(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        return value

    @field_validator("sound_emitter")
    @classmethod
    def _known_emitter(cls, value: str) -> str:
        normalised = value.strip().lower()
        if normalised not in {"log", "bell"}:
            raise ValueError("SOUND_EMITTER must be 'log' or 'bell'")
        return normalised


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""
    return Settings()  # type: ignore[call-arg]
