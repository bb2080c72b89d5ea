"""Shared utilities for statearchive."""

from .errors import (
    ArchiveError,
    ConfigurationError,
    ErrorCode,
    ErrorDetails,
    FormatError,
    IOUnavailableError,
    SamplingError,
    SignatureMismatchError,
    TruncatedDataError,
    TruncatedHeaderError,
)

__all__ = [
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
