"""Path utilities for consistent path handling across testdeck."""

from __future__ import annotations

from pathlib import Path, PurePosixPath

from testdeck_common.constants import (
    LOG_SUBDIR,
    TESTDECK_HOME_DIR,
    USER_CONFIG_DIR,
    USER_CONFIG_FILE,
)


def get_testdeck_home() -> Path:
    """Get the testdeck home directory (~/.testdeck).

    Returns
    -------
    Path
        The testdeck home directory path
    """
    return Path.home() / TESTDECK_HOME_DIR


def get_log_dir() -> Path:
    """Get the testdeck log directory (~/.testdeck/log).

    Returns
    -------
    Path
        The log directory path
    """
    return get_testdeck_home() / LOG_SUBDIR


def get_user_config_path() -> Path:
    """Get path to the user-level configuration file."""
    return Path.home() / ".config" / USER_CONFIG_DIR / USER_CONFIG_FILE


def normalize_path(path: str | Path) -> Path:
    """Expand ``~`` and resolve a path without requiring it to exist.

    Parameters
    ----------
    path : str | Path
        The path to normalize

    Returns
    -------
    Path
        Absolute, normalized path
    """
    return Path(path).expanduser().resolve(strict=False)


def to_posix_relpath(path: str | Path, root: str | Path | None = None) -> str:
    """Render ``path`` as a posix path relative to ``root``.

    Leading ``./`` segments are stripped, and the root itself renders as ``.``.
    Paths outside ``root`` are returned unchanged (posix-style).

    Parameters
    ----------
    path : str | Path
        Absolute or relative path
    root : str | Path, optional
        Directory the result should be relative to

    Returns
    -------
    str
        Posix relative path
    """
    candidate = Path(path)
    if root is not None and candidate.is_absolute():
        try:
            candidate = candidate.relative_to(Path(root))
        except ValueError:
            pass
    text = PurePosixPath(candidate.as_posix()).as_posix()
    while text.startswith("./"):
        text = text[2:]
    return text or "."
