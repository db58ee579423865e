from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class DatabaseConfig(BaseModel):
    """Database location, timeouts and retry policy."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    path: str = Field(
        default="nestsync.db",
        validation_alias="NESTSYNC_DB_PATH",
        description="SQLite database file, or :memory:",
    )
    operation_timeout: float = Field(
        default=30.0,
        validation_alias="DB_OPERATION_TIMEOUT",
        description="Seconds SQLite waits on a locked database",
    )
    max_retries: int = Field(
        default=3,
        validation_alias="DB_MAX_RETRIES",
        description="Maximum retries when a transaction hits a locked database",
    )
    retry_backoff_base: float = Field(
        default=0.1,
        validation_alias="DB_RETRY_BACKOFF_BASE",
        description="Base delay in seconds for exponential retry backoff",
    )

    @field_validator("path", mode="before")
    @classmethod
    def _validate_path(cls, value: Any) -> str:
        if value in (None, ""):
            return "nestsync.db"
        path = str(value).strip()
        if "\x00" in path:
            msg = "Database path contains invalid characters"
            raise ValueError(msg)
        return path

    @field_validator("operation_timeout", mode="before")
    @classmethod
    def _validate_timeout(cls, value: Any) -> float:
        if value in (None, ""):
            return 30.0
        try:
            parsed = float(str(value))
        except ValueError as exc:
            msg = "Database operation timeout must be a valid number"
            raise ValueError(msg) from exc
        if parsed <= 0:
            msg = "Database operation timeout must be positive"
            raise ValueError(msg)
        if parsed > 3600:
            msg = "Database operation timeout must be 3600 seconds or less"
            raise ValueError(msg)
        return parsed

    @field_validator("max_retries", mode="before")
    @classmethod
    def _validate_retries(cls, value: Any) -> int:
        if value in (None, ""):
            return 3
        try:
            parsed = int(str(value))
        except ValueError as exc:
            msg = "Max retries must be a valid integer"
            raise ValueError(msg) from exc
        if parsed < 0 or parsed > 20:
            msg = "Max retries must be between 0 and 20"
            raise ValueError(msg)
        return parsed

    @field_validator("retry_backoff_base", mode="before")
    @classmethod
    def _validate_backoff(cls, value: Any) -> float:
        if value in (None, ""):
            return 0.1
        try:
            parsed = float(str(value))
        except ValueError as exc:
            msg = "Retry backoff base must be a valid number"
            raise ValueError(msg) from exc
        if parsed < 0:
            msg = "Retry backoff base cannot be negative"
            raise ValueError(msg)
        return parsed
