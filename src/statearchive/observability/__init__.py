"""Logging helpers for statearchive."""

from .logger import JSONFormatter, ROOT_LOGGER_NAME, configure_logging, get_logger

__all__ = ["JSONFormatter", "ROOT_LOGGER_NAME", "configure_logging", "get_logger"]
