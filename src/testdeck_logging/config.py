"""Logger configuration profiles."""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler

from testdeck_logging.filters import RunContextFilter
from testdeck_logging.formatters import ColoredFormatter, JSONFormatter, SafeFormatter
from testdeck_logging.utils import (
    get_log_file_path,
    get_log_level,
    should_use_file_logging,
    should_use_json,
)

PROFILES = ("library", "cli", "test")

MAX_LOG_BYTES = 5 * 1024 * 1024
LOG_BACKUP_COUNT = 3


def _console_formatter() -> logging.Formatter:
    return JSONFormatter() if should_use_json() else ColoredFormatter()


def configure_logger(
    name: str,
    profile: str = "library",
    level: str | None = None,
    log_file: str | None = None,
    to_console: bool = False,
) -> logging.Logger:
    """Configure a logger according to a named profile.

    Parameters
    ----------
    name : str
        Logger name
    profile : str
        ``library`` (context filter, propagate to parent), ``cli`` (rotating
        file plus optional console) or ``test`` (console, DEBUG, propagate)
    level : str, optional
        Explicit level; defaults to ``TESTDECK_LOG_LEVEL``
    log_file : str, optional
        File for the ``cli`` profile; defaults to ``~/.testdeck/log/cli.log``
    to_console : bool
        Also write to stderr (``cli`` profile)

    Returns
    -------
    logging.Logger
        The configured logger

    Raises
    ------
    ValueError
        If the profile is unknown
    """
    if profile not in PROFILES:
        msg = f"Unknown profile: {profile}"
        raise ValueError(msg)

    logger = logging.getLogger(name)
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()
    logger.filters.clear()
    logger.addFilter(RunContextFilter())

    if profile == "test":
        logger.setLevel(level or "DEBUG")
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(SafeFormatter())
        logger.addHandler(handler)
        logger.propagate = True
        return logger

    logger.setLevel(level or get_log_level())

    if profile == "library":
        logger.propagate = True
        return logger

    if should_use_file_logging():
        file_handler = RotatingFileHandler(
            log_file or get_log_file_path("cli"),
            maxBytes=MAX_LOG_BYTES,
            backupCount=LOG_BACKUP_COUNT,
            encoding="utf-8",
        )
        file_handler.setFormatter(
            JSONFormatter() if should_use_json() else SafeFormatter(),
        )
        logger.addHandler(file_handler)
    if to_console:
        console = logging.StreamHandler(sys.stderr)
        console.setFormatter(_console_formatter())
        logger.addHandler(console)
    logger.propagate = False
    return logger


def get_logger(name: str) -> logging.Logger:
    """Return a library logger (propagates to the ``testdeck`` root logger)."""
    logger = logging.getLogger(name)
    if not any(isinstance(f, RunContextFilter) for f in logger.filters):
        logger.addFilter(RunContextFilter())
    return logger


def get_cli_logger(name: str) -> logging.Logger:
    """Return a logger for the command-line front end."""
    return get_logger(name)


def get_test_logger(name: str) -> logging.Logger:
    return configure_logger(name, profile="test")


def setup_cli_logging(
    level: str | None = None,
    verbose: bool = False,
    log_file: str | None = None,
) -> logging.Logger:
    """Configure the package root loggers for a CLI invocation."""
    effective = level or ("DEBUG" if verbose else None)
    root = configure_logger(
        "testdeck",
        profile="cli",
        level=effective,
        log_file=log_file,
        to_console=verbose,
    )
    for child in ("testdeck_cli", "testdeck_common"):
        child_logger = logging.getLogger(child)
        child_logger.handlers = list(root.handlers)
        child_logger.setLevel(root.level)
        child_logger.propagate = False
    return root
