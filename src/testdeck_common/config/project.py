"""Project/user YAML configuration loading for testdeck.

Configuration is layered: built-in defaults, then the user file
(~/.config/testdeck/config.yaml), then the workspace file (.testdeck.yaml). Later
layers are deep-merged over earlier ones.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any

from testdeck_common.constants import PROJECT_CONFIG_FILE
from testdeck_common.io import FileOperationError, safe_read_yaml
from testdeck_common.path import get_user_config_path

DEFAULT_RUN_TIMEOUT_S = 600.0
DEFAULT_DISCOVERY_TIMEOUT_S = 120.0
DEFAULT_DEBOUNCE_S = 0.1
DEFAULT_MAX_BATCH_IDS = 500


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep-merge two dictionaries in place and return ``base``.

    Values from ``override`` take precedence. Nested dicts are merged
    recursively; other values (lists included) are replaced.
    """
    for key, value in override.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            deep_merge(base[key], value)
        else:
            base[key] = value
    return base


def default_config() -> dict[str, Any]:
    """Return the default configuration structure."""
    return {
        "python": sys.executable,
        "run": {"timeout_s": DEFAULT_RUN_TIMEOUT_S},
        "discovery": {"timeout_s": DEFAULT_DISCOVERY_TIMEOUT_S},
        "status": {
            "debounce_s": DEFAULT_DEBOUNCE_S,
            "max_batch_ids": DEFAULT_MAX_BATCH_IDS,
        },
        "providers": {
            "pytest": {"enabled": True, "args": [], "root_directory": "."},
            "unittest": {
                "enabled": False,
                "args": ["-s", ".", "-p", "test*.py"],
                "root_directory": ".",
            },
        },
    }


def load_yaml(path: Path) -> dict[str, Any]:
    """Load a YAML mapping, returning an empty dict when missing or invalid."""
    if not path.exists():
        return {}
    try:
        return safe_read_yaml(path)
    except FileOperationError:
        return {}


def get_project_config_path(workspace_root: Path) -> Path:
    """Get path to the workspace-level configuration file."""
    return workspace_root / PROJECT_CONFIG_FILE


def load_merged_config(workspace_root: Path) -> dict[str, Any]:
    """Load default + user + project YAML config into a single dict."""
    cfg = default_config()

    user_cfg = load_yaml(get_user_config_path())
    if user_cfg:
        deep_merge(cfg, user_cfg)

    project_cfg = load_yaml(get_project_config_path(workspace_root))
    if project_cfg:
        deep_merge(cfg, project_cfg)

    return cfg
