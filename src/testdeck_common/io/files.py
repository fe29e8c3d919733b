"""Safe file operations for testdeck configuration and reports."""

import contextlib
import json
import tempfile
from collections.abc import Callable
from pathlib import Path
from typing import IO, Any

import yaml


class FileOperationError(Exception):
    """Raised when file operations fail."""


def safe_read_yaml(path: Path) -> dict[str, Any]:
    """Safely read a YAML mapping.

    Parameters
    ----------
    path : Path
        Path to YAML file

    Returns
    -------
    dict[str, Any]
        Parsed YAML data; an empty document yields an empty dict

    Raises
    ------
    FileOperationError
        If the file is missing, unreadable, invalid, or not a mapping
    """
    try:
        if not path.exists():
            msg = f"YAML file does not exist: {path}"
            raise FileOperationError(msg)

        with path.open(encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        msg = f"Invalid YAML in {path}: {e}"
        raise FileOperationError(msg) from e
    except OSError as e:
        msg = f"Cannot read YAML file {path}: {e}"
        raise FileOperationError(msg) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        msg = f"YAML file {path} must contain a mapping, got {type(data).__name__}"
        raise FileOperationError(msg)
    return data


def _atomic_dump(
    path: Path,
    suffix: str,
    dump: Callable[[IO[str]], None],
    errors: tuple[type[BaseException], ...],
) -> None:
    temp_path = None
    try:
        ensure_dir(path.parent)
        with tempfile.NamedTemporaryFile(
            mode="w",
            encoding="utf-8",
            suffix=suffix,
            dir=path.parent,
            delete=False,
        ) as temp_file:
            temp_path = Path(temp_file.name)
            dump(temp_file)
        temp_path.replace(path)
    except errors as e:
        if temp_path is not None:
            with contextlib.suppress(OSError):
                temp_path.unlink(missing_ok=True)
        msg = f"Cannot write {path}: {e}"
        raise FileOperationError(msg) from e


def safe_write_yaml(path: Path, data: dict[str, Any]) -> None:
    """Atomically write a YAML mapping.

    Parameters
    ----------
    path : Path
        Destination file
    data : dict[str, Any]
        Data to write

    Raises
    ------
    FileOperationError
        If file cannot be written
    """
    _atomic_dump(
        path,
        ".yaml",
        lambda f: yaml.safe_dump(data, f, default_flow_style=False, sort_keys=True),
        (OSError, yaml.YAMLError),
    )


def safe_write_json(path: Path, data: Any) -> None:
    """Atomically write a JSON document.

    Parameters
    ----------
    path : Path
        Destination file
    data : Any
        JSON-serialisable data

    Raises
    ------
    FileOperationError
        If file cannot be written
    """
    _atomic_dump(
        path,
        ".json",
        lambda f: json.dump(data, f, indent=2, sort_keys=True),
        (OSError, TypeError, ValueError),
    )


def ensure_dir(path: Path) -> Path:
    """Ensure directory exists, creating it if necessary.

    Raises
    ------
    FileOperationError
        If directory cannot be created
    """
    try:
        path.mkdir(parents=True, exist_ok=True)
        return path
    except OSError as e:
        msg = f"Cannot create directory {path}: {e}"
        raise FileOperationError(msg) from e
