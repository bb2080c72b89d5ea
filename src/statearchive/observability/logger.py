"""Logging setup for statearchive.

Every module logs through ``logging.getLogger(__name__)``, so all records land
under the ``statearchive`` logger hierarchy. The library itself never installs
handlers; applications call :func:`configure_logging` to get either plain text
or one JSON object per record.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, TextIO

if TYPE_CHECKING:
    from statearchive.config.schema import LoggingSettings

ROOT_LOGGER_NAME = "statearchive"
TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

# Attributes present on every LogRecord; anything else came in through ``extra=``.
_RESERVED_RECORD_ATTRS = frozenset(
    {
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "message",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "thread",
        "threadName",
        "taskName",
        "exc_info",
        "exc_text",
        "stack_info",
    }
)

_HANDLER_MARKER = "_statearchive_handler"


class JSONFormatter(logging.Formatter):
    """Format log records as single-line JSON objects.

    Structured fields passed through ``extra=`` (for example the ``error_code``
    attached by :meth:`ArchiveError.log`) are copied to the top level.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key in _RESERVED_RECORD_ATTRS or key.startswith("_"):
                continue
            log_entry[key] = value

        return json.dumps(log_entry, default=str)


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a logger inside the ``statearchive`` hierarchy."""
    if not name:
        return logging.getLogger(ROOT_LOGGER_NAME)
    if name == ROOT_LOGGER_NAME or name.startswith(ROOT_LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def configure_logging(
    settings: LoggingSettings | None = None,
    stream: TextIO | None = None,
) -> logging.Logger:
    """Attach a single stream handler to the ``statearchive`` logger.

    Calling this again replaces the handler installed by a previous call, so
    repeated configuration never duplicates output.

    Args:
        settings: Level and format options (defaults when None)
        stream: Destination stream (defaults to ``sys.stderr``)

    Returns:
        The configured package logger.
    """
    from statearchive.config.schema import LoggingSettings

    settings = settings or LoggingSettings()
    root = logging.getLogger(ROOT_LOGGER_NAME)

    for handler in list(root.handlers):
        if getattr(handler, _HANDLER_MARKER, False):
            root.removeHandler(handler)
            handler.close()

    handler = logging.StreamHandler(stream)
    setattr(handler, _HANDLER_MARKER, True)
    if settings.json_format:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))

    level = logging.getLevelName(settings.level)
    handler.setLevel(level)
    root.setLevel(level)
    root.addHandler(handler)
    return root


__all__ = [
    "JSONFormatter",
    "ROOT_LOGGER_NAME",
    "configure_logging",
    "get_logger",
]
