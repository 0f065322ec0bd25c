"""Environment-based configuration using pydantic-settings.

Example:
    >>> from grit.settings import get_settings
    >>> get_settings().logging
    False

    # Or with environment variables:
    # GRIT_LOGGING=true
    # GRIT_LOG_LEVEL=DEBUG
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class GritSettings(BaseSettings):
    """Process-wide defaults, loaded from GRIT_* environment variables or .env."""

    model_config = SettingsConfigDict(
        env_prefix="GRIT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        validate_default=True,
    )

    logging: bool = Field(default=False, description="Default for builder with_logging()")
    log_level: LogLevel = Field(default="INFO", description="Level applied by configure_logging()")

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_level(cls, v: str) -> str:
        return v.upper() if isinstance(v, str) else v


@lru_cache(maxsize=1)
def get_settings() -> GritSettings:
    """Get the global settings instance (cached)."""
    return GritSettings()


def clear_settings_cache() -> None:
    """Clear the settings cache so the next get_settings() rereads the environment."""
    get_settings.cache_clear()


def configure_logging(level: LogLevel | int | None = None) -> logging.Logger:
    """Set the level of the `grit` logger tree (default: settings.log_level)."""
    log = logging.getLogger("grit")
    log.setLevel(level if level is not None else get_settings().log_level)
    return log
