"""Safe file IO helpers."""

from .files import (
    FileOperationError,
    ensure_dir,
    safe_read_yaml,
    safe_write_json,
    safe_write_yaml,
)

__all__ = [
    "FileOperationError",
    "ensure_dir",
    "safe_read_yaml",
    "safe_write_json",
    "safe_write_yaml",
]
