"""Structured error codes and error handling for statearchive.

This module provides a standardized error code system for consistent error
reporting across archive loading, storing and precomputed sampling.

Error codes follow the pattern: E{category}{number}
- E1xx: Archive format errors
- E2xx: State space compatibility errors
- E3xx: Stream/IO errors
- E4xx: Precomputed sampling errors
- E8xx: Configuration errors

Example:
    >>> from statearchive.utils.errors import ErrorCode, ArchiveError
    >>> raise ArchiveError(ErrorCode.E100_FORMAT_ERROR, "Bad archive marker")
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class ErrorCode(Enum):
    """Standardized error codes for statearchive.

    Codes are grouped by category for easier identification.
    """

    # E1xx: Archive format errors
    E100_FORMAT_ERROR = "E100"
    E101_TRUNCATED_HEADER = "E101"
    E102_TRUNCATED_DATA = "E102"

    # E2xx: Compatibility errors
    E200_SIGNATURE_MISMATCH = "E200"

    # E3xx: IO errors
    E300_IO_UNAVAILABLE = "E300"

    # E4xx: Sampling errors
    E400_SAMPLING_ERROR = "E400"
    E401_EMPTY_SAMPLE_SOURCE = "E401"
    E402_INVALID_INDEX_RANGE = "E402"

    # E8xx: Configuration errors
    E800_CONFIG_ERROR = "E800"
    E801_INVALID_CONFIG_FILE = "E801"
    E803_CONFIG_VALIDATION_FAILED = "E803"


# Default messages for error codes
ERROR_MESSAGES: dict[ErrorCode, str] = {
    ErrorCode.E100_FORMAT_ERROR: "The stored data does not start with the correct header",
    ErrorCode.E101_TRUNCATED_HEADER: "Archive header is incomplete",
    ErrorCode.E102_TRUNCATED_DATA: "Unable to read state data. Incorrect file format",
    ErrorCode.E200_SIGNATURE_MISMATCH: "State space signatures do not match",
    ErrorCode.E300_IO_UNAVAILABLE: "Archive stream is not available",
    ErrorCode.E400_SAMPLING_ERROR: "Precomputed sampling error",
    ErrorCode.E401_EMPTY_SAMPLE_SOURCE: "No stored states available to sample from",
    ErrorCode.E402_INVALID_INDEX_RANGE: "Invalid state index range",
    ErrorCode.E800_CONFIG_ERROR: "Configuration error",
    ErrorCode.E801_INVALID_CONFIG_FILE: "Invalid configuration file format",
    ErrorCode.E803_CONFIG_VALIDATION_FAILED: "Configuration validation failed",
}


@dataclass
class ErrorDetails:
    """Structured error details for logging and reports.

    Attributes:
        code: Error code enum value
        message: Human-readable error message
        details: Additional error details
    """

    code: ErrorCode
    message: str
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result: dict[str, Any] = {
            "error_code": self.code.value,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result

    def to_log_dict(self) -> dict[str, Any]:
        """Convert to a flat dictionary suitable for ``extra=`` in log calls."""
        log_dict: dict[str, Any] = {
            "error_code": self.code.value,
            "error_message": self.message,
        }
        for key, value in self.details.items():
            log_dict[f"detail_{key}"] = value
        return log_dict


class ArchiveError(Exception):
    """Base exception class for statearchive errors with structured error codes.

    Example:
        >>> try:
        ...     raise ArchiveError(
        ...         ErrorCode.E102_TRUNCATED_DATA,
        ...         details={"expected": 64, "actual": 12},
        ...     )
        ... except ArchiveError as e:
        ...     print(e.error_details.to_dict())
    """

    default_code: ErrorCode = ErrorCode.E100_FORMAT_ERROR

    def __init__(
        self,
        code: ErrorCode | None = None,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.code = code or self.default_code
        self.message = message or ERROR_MESSAGES.get(self.code, "Unknown error")
        self.error_details = ErrorDetails(
            code=self.code,
            message=self.message,
            details=details or {},
        )
        super().__init__(self.message)

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.message}"

    def log(self, level: int = logging.ERROR, target: logging.Logger | None = None) -> None:
        """Log the error with structured details.

        Args:
            level: Logging level (default: ERROR)
            target: Logger to emit on (default: this module's logger)
        """
        (target or logger).log(level, str(self), extra=self.error_details.to_log_dict())


# ---------------------------------------------------------------------------
# Specific exception classes
# ---------------------------------------------------------------------------


class FormatError(ArchiveError):
    """The archive marker is missing or wrong."""

    default_code = ErrorCode.E100_FORMAT_ERROR

    def __init__(self, message: str | None = None, **kwargs: Any) -> None:
        super().__init__(None, message, **kwargs)


class TruncatedHeaderError(ArchiveError):
    """A header field could not be read in full."""

    default_code = ErrorCode.E101_TRUNCATED_HEADER

    def __init__(
        self,
        message: str | None = None,
        field_name: str | None = None,
        **kwargs: Any,
    ) -> None:
        details: dict[str, Any] = kwargs.pop("details", None) or {}
        if field_name is not None:
            details["field"] = field_name
        super().__init__(None, message, details=details, **kwargs)


class TruncatedDataError(ArchiveError):
    """The state payload is shorter than the header declares."""

    default_code = ErrorCode.E102_TRUNCATED_DATA

    def __init__(
        self,
        message: str | None = None,
        expected: int | None = None,
        actual: int | None = None,
        **kwargs: Any,
    ) -> None:
        details: dict[str, Any] = kwargs.pop("details", None) or {}
        if expected is not None:
            details["expected_bytes"] = expected
        if actual is not None:
            details["actual_bytes"] = actual
        super().__init__(None, message, details=details, **kwargs)


class SignatureMismatchError(ArchiveError):
    """Stored and live state space signatures differ."""

    default_code = ErrorCode.E200_SIGNATURE_MISMATCH

    def __init__(
        self,
        message: str | None = None,
        expected: list[int] | tuple[int, ...] | None = None,
        actual: list[int] | tuple[int, ...] | None = None,
        **kwargs: Any,
    ) -> None:
        details: dict[str, Any] = kwargs.pop("details", None) or {}
        if expected is not None:
            details["expected_signature"] = list(expected)
        if actual is not None:
            details["actual_signature"] = list(actual)
        super().__init__(None, message, details=details, **kwargs)


class IOUnavailableError(ArchiveError):
    """The archive stream is closed, missing, or lacks the needed mode."""

    default_code = ErrorCode.E300_IO_UNAVAILABLE

    def __init__(self, message: str | None = None, **kwargs: Any) -> None:
        super().__init__(None, message, **kwargs)


class SamplingError(ArchiveError):
    """A precomputed sampler cannot produce a state."""

    def __init__(
        self,
        code: ErrorCode = ErrorCode.E400_SAMPLING_ERROR,
        message: str | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(code, message, **kwargs)


class ConfigurationError(ArchiveError):
    """Configuration error."""

    def __init__(
        self,
        code: ErrorCode = ErrorCode.E800_CONFIG_ERROR,
        message: str | None = None,
        config_key: str | None = None,
        **kwargs: Any,
    ) -> None:
        details: dict[str, Any] = kwargs.pop("details", None) or {}
        if config_key is not None:
            details["config_key"] = config_key
        super().__init__(code, message, details=details, **kwargs)


__all__ = [
    "ERROR_MESSAGES",
    "ArchiveError",
    "ConfigurationError",
    "ErrorCode",
    "ErrorDetails",
    "FormatError",
    "IOUnavailableError",
    "SamplingError",
    "SignatureMismatchError",
    "TruncatedDataError",
    "TruncatedHeaderError",
]
