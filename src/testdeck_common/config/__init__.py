"""Layered YAML configuration for testdeck (defaults, user file, project file)."""

from .project import (
    DEFAULT_DEBOUNCE_S,
    DEFAULT_DISCOVERY_TIMEOUT_S,
    DEFAULT_MAX_BATCH_IDS,
    DEFAULT_RUN_TIMEOUT_S,
    deep_merge,
    default_config,
    get_project_config_path,
    load_merged_config,
    load_yaml,
)

__all__ = [
    "DEFAULT_DEBOUNCE_S",
    "DEFAULT_DISCOVERY_TIMEOUT_S",
    "DEFAULT_MAX_BATCH_IDS",
    "DEFAULT_RUN_TIMEOUT_S",
    "deep_merge",
    "default_config",
    "get_project_config_path",
    "load_merged_config",
    "load_yaml",
]
