"""
Filesystem and connection helpers for the CLI.

Relative paths in the configuration (data directory, database file, log
file) are anchored at the directory holding this module, so running the
CLI from another working directory still finds the same budget database.
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError

logger = logging.getLogger(__name__)

_BASE_DIR = Path(__file__).resolve().parent


def _anchored(path_value: Union[str, Path]) -> Path:
    path = Path(path_value)
    return path if path.is_absolute() else _BASE_DIR / path


def ensure_data_dir(config: Optional[Dict[str, Any]] = None) -> Path:
    """
    Create the configured ``database.data_dir`` if needed.

    Returns:
        Absolute path of the data directory.
    """
    data_dir = _anchored((config or {}).get("database", {}).get("data_dir", "data"))
    try:
        data_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        logger.error("Cannot create data directory '%s': %s", data_dir, exc)
        raise
    return data_dir


def resolve_connection_string(config: Optional[Dict[str, Any]] = None) -> str:
    """
    Pick the SQLAlchemy URL for the budget database.

    ``DB_CONNECTION_STRING`` wins over ``database.connection_string``; without
    either, a SQLite file named by ``database.path`` is placed in the data
    directory. For SQLite file URLs the parent directory is created.
    """
    db_config = (config or {}).get("database", {})
    url = os.environ.get("DB_CONNECTION_STRING") or db_config.get("connection_string")
    if not url:
        db_file = _anchored(ensure_data_dir(config) / db_config.get("path", "budget.db"))
        db_file.parent.mkdir(parents=True, exist_ok=True)
        return f"sqlite:///{db_file.as_posix()}"

    try:
        parsed = make_url(url)
    except ArgumentError:
        logger.debug("Connection string is not a parseable URL; passing it through")
        return url
    if parsed.drivername.startswith("sqlite") and parsed.database not in (None, "", ":memory:"):
        _anchored(parsed.database).parent.mkdir(parents=True, exist_ok=True)
    return url


def resolve_log_path(log_path: Union[str, Path]) -> Path:
    """Absolute log file path, with its directory created."""
    path = _anchored(log_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    return path
