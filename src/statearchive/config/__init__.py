"""Configuration models and loaders for statearchive."""

from .loader import load_config
from .schema import ArchiveConfig, LoggingSettings, StorageSettings, config_from_dict

__all__ = [
    "ArchiveConfig",
    "LoggingSettings",
    "StorageSettings",
    "config_from_dict",
    "load_config",
]
