"""Application and logging configuration models."""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from recvault.shared.constants import Application

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class AppSettings(BaseModel):
    """Application-level settings."""

    name: str = Field(default=Application.NAME, description="Application name")
    version: str = Field(default=Application.VERSION, description="Application version")
    debug: bool = Field(default=False, description="Enable debug mode")


class LoggingSettings(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Logging level")
    file: str | None = Field(default=None, description="Optional JSON log file path")
    console_output: bool = Field(default=True, description="Use rich console output")

    @field_validator("level")
    @classmethod
    def _validate_level(cls, value: str) -> str:
        upper = value.upper()
        if upper not in _LOG_LEVELS:
            msg = f"Invalid log level '{value}', expected one of {_LOG_LEVELS}"
            raise ValueError(msg)
        return upper


class SyncSettings(BaseModel):
    """Watch-history sync behaviour."""

    min_recheck_seconds: float = Field(
        default=0.0,
        ge=0,
        description=(
            "Minimum snapshot age before a delta fetch is attempted; "
            "0 attempts a delta on every request"
        ),
    )


__all__ = ["AppSettings", "LoggingSettings", "SyncSettings"]
