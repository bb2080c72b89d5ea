"""Configuration loading with validation for statearchive."""

from __future__ import annotations

import os
from pathlib import Path

import yaml

from statearchive.config.schema import ArchiveConfig, config_from_dict
from statearchive.utils.errors import ConfigurationError, ErrorCode

_YAML_SUFFIXES = (".yaml", ".yml")


def load_config(path: str | os.PathLike[str]) -> ArchiveConfig:
    """Load and validate a YAML configuration file.

    An empty file yields the defaults.

    Raises:
        FileNotFoundError: If the file does not exist
        ConfigurationError: On unsupported suffix, bad YAML, or schema violations
    """
    config_path = Path(path)
    if not config_path.is_file():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    if config_path.suffix.lower() not in _YAML_SUFFIXES:
        raise ConfigurationError(
            ErrorCode.E801_INVALID_CONFIG_FILE,
            "Unsupported configuration file format. Only YAML (.yaml, .yml) is supported.",
        )

    try:
        with open(config_path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(
            ErrorCode.E801_INVALID_CONFIG_FILE,
            f"Invalid YAML syntax in '{config_path}': {e}",
        ) from e

    return config_from_dict(data)


__all__ = ["load_config"]
