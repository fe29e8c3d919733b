"""Environment-driven logging helpers."""

from __future__ import annotations

import os
from pathlib import Path

from testdeck_common.env import read_bool, read_str
from testdeck_common.path import get_log_dir

VALID_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


def get_log_level(default: str = "INFO") -> str:
    """Return the level from ``TESTDECK_LOG_LEVEL``, falling back to ``default``."""
    value = read_str("TESTDECK_LOG_LEVEL")
    if value is None:
        return default
    level = value.upper()
    if level == "WARN":
        level = "WARNING"
    return level if level in VALID_LEVELS else default


def should_use_json() -> bool:
    return read_bool("TESTDECK_LOG_JSON", False)


def should_use_file_logging() -> bool:
    return not read_bool("TESTDECK_NO_FILE_LOGGING", False)


def get_log_file_path(name: str, log_dir: str | None = None) -> str:
    """Return ``<log dir>/<name>.log``, creating the directory.

    ``TESTDECK_LOG_DIR`` overrides the default ``~/.testdeck/log``.
    """
    directory = Path(log_dir or os.environ.get("TESTDECK_LOG_DIR") or get_log_dir())
    directory.mkdir(parents=True, exist_ok=True)
    return str(directory / f"{name}.log")
