"""Configuration schema and validation for statearchive.

This module defines the configuration schema using Pydantic models so that
every option is validated before it reaches the archive or logging setup.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from statearchive.utils.errors import ConfigurationError, ErrorCode

logger = logging.getLogger(__name__)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class StorageSettings(BaseModel):
    """Options for :class:`statearchive.archive.storage.StateStorage`."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    io_retry_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts made when opening an archive path for reading or writing.",
    )
    io_retry_wait_s: float = Field(
        default=0.1,
        ge=0.0,
        description="Base wait in seconds between open attempts (exponential backoff).",
    )
    sampler_seed: int | None = Field(
        default=None,
        ge=0,
        description="Seed for precomputed samplers. None draws fresh entropy.",
    )


class LoggingSettings(BaseModel):
    """Options for :func:`statearchive.observability.logger.configure_logging`."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    level: str = Field(default="WARNING", description="Minimum level emitted.")
    json_format: bool = Field(default=False, description="Emit one JSON object per record.")

    @field_validator("level", mode="before")
    @classmethod
    def normalize_level(cls, v: Any) -> str:
        """Accept any case and reject unknown level names."""
        if not isinstance(v, str):
            raise ValueError(f"level must be a string, got {type(v).__name__}")
        upper = v.strip().upper()
        if upper not in LOG_LEVELS:
            raise ValueError(f"level must be one of {', '.join(LOG_LEVELS)}, got {v!r}")
        return upper


class ArchiveConfig(BaseModel):
    """Top-level configuration document."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    storage: StorageSettings = Field(default_factory=StorageSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


def config_from_dict(data: dict[str, Any] | None) -> ArchiveConfig:
    """Validate a configuration mapping.

    Raises:
        ConfigurationError: If the mapping does not match the schema
    """
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigurationError(
            ErrorCode.E801_INVALID_CONFIG_FILE,
            f"Configuration root must be a mapping, got {type(data).__name__}",
        )
    try:
        return ArchiveConfig.model_validate(data)
    except ValidationError as e:
        logger.debug("Configuration rejected: %s", e)
        raise ConfigurationError(
            ErrorCode.E803_CONFIG_VALIDATION_FAILED,
            f"Configuration validation failed:\n{e}",
        ) from e


__all__ = [
    "LOG_LEVELS",
    "ArchiveConfig",
    "LoggingSettings",
    "StorageSettings",
    "config_from_dict",
]
