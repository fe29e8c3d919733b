"""Log formatters for testdeck."""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any

DEFAULT_FORMAT = (
    "%(asctime)s %(levelname)-5s [%(provider)s:%(run_id)s] %(name)s: %(message)s"
)

_CONTEXT_DEFAULTS = {"workspace": "-", "provider": "-", "run_id": "-"}


class SafeFormatter(logging.Formatter):
    """Formatter that tolerates records without testdeck context attributes."""

    def __init__(self, fmt: str | None = None, datefmt: str | None = None):
        super().__init__(fmt or DEFAULT_FORMAT, datefmt)

    def format(self, record: logging.LogRecord) -> str:  # noqa: A003
        for attr, default in _CONTEXT_DEFAULTS.items():
            if not hasattr(record, attr):
                setattr(record, attr, default)
        if record.levelname == "WARNING":
            record.levelname = "WARN"
        return super().format(record)


class ColoredFormatter(SafeFormatter):
    """SafeFormatter with ANSI level colors when writing to a terminal."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARN": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(
        self,
        fmt: str | None = None,
        datefmt: str | None = None,
        include_colors: bool = True,
    ):
        super().__init__(fmt, datefmt)
        self.include_colors = include_colors

    def _should_use_colors(self) -> bool:
        if not self.include_colors or os.environ.get("NO_COLOR"):
            return False
        return hasattr(sys.stderr, "isatty") and sys.stderr.isatty()

    def format(self, record: logging.LogRecord) -> str:  # noqa: A003
        message = super().format(record)
        if not self._should_use_colors():
            return message
        color = self.COLORS.get(record.levelname, "")
        return f"{color}{message}{self.RESET}" if color else message


class JSONFormatter(logging.Formatter):
    """Emit one JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:  # noqa: A003
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc)
            .isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for attr in _CONTEXT_DEFAULTS:
            value = getattr(record, attr, None)
            if value not in (None, "-"):
                payload[attr] = value
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)
