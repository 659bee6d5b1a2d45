"""
Configuration management module for the budget engine.

This module loads ``config.yaml`` and merges it over the default settings for
the engine, the database and logging.
"""

import copy
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from exceptions import ConfigError

logger = logging.getLogger(__name__)

# Default configuration values
DEFAULT_CONFIG: Dict[str, Any] = {
    "engine": {
        "recurrence_model": "occurrence",
        "rollover": True,
        "status_thresholds": {
            "warning": 85,
            "over": 100,
        },
    },
    "database": {
        "data_dir": "data",
        "path": "budget.db",
    },
    "logging": {
        "level": "INFO",
        "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    },
    "report": {
        "currency_symbol": "€",
    },
}

CONFIG_FILE = "config.yaml"


def _merge(defaults: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge ``overrides`` over ``defaults`` without mutating either."""
    merged = copy.deepcopy(defaults)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(config_path: Optional[Union[str, Path]] = None, required: bool = False) -> Dict[str, Any]:
    """
    Load configuration from a YAML file.

    Args:
        config_path: Path to the config file (defaults to ``config.yaml``)
        required: Raise if the file does not exist instead of using defaults

    Returns:
        Configuration dictionary with defaults for missing values

    Raises:
        ConfigError: If the file is missing (when required), unreadable or
            not a YAML mapping
    """
    path = Path(config_path or CONFIG_FILE)
    if not path.exists():
        if required:
            raise ConfigError("Config file not found", details={"config_path": str(path)})
        logger.debug("Config file %s not found; using defaults", path)
        return copy.deepcopy(DEFAULT_CONFIG)

    try:
        with open(path, "r", encoding="utf-8") as f:
            loaded = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.error(f"Error loading configuration: {e}", exc_info=True)
        raise ConfigError(
            "Failed to read configuration",
            details={"config_path": str(path)},
            original_error=e
        ) from e

    if not isinstance(loaded, dict):
        raise ConfigError("Configuration must be a YAML mapping", details={"config_path": str(path)})

    config = _merge(DEFAULT_CONFIG, loaded)
    logger.info("Configuration loaded successfully from %s", path)
    return config
