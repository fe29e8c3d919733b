"""Per-workspace test settings backed by layered YAML configuration."""

from __future__ import annotations

import threading
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any

from testdeck.common.errors import ConfigurationError
from testdeck.models.settings import StatusSettings, TestSettings
from testdeck.providers import get_provider, provider_names
from testdeck_common.config import (
    get_project_config_path,
    load_merged_config,
    load_yaml,
)
from testdeck_common.env import read_float, read_str
from testdeck_common.io import FileOperationError, safe_write_yaml
from testdeck_common.path import normalize_path
from testdeck_logging import get_logger

logger = get_logger(__name__)

ConfigLoader = Callable[[Path], dict[str, Any]]


def _positive_float(value: Any, key: str) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError) as e:
        msg = f"Configuration value {key} must be a number, got {value!r}"
        raise ConfigurationError(msg, details={"key": key}) from e
    if number <= 0:
        msg = f"Configuration value {key} must be positive, got {value!r}"
        raise ConfigurationError(msg, details={"key": key})
    return number


def _string_list(value: Any, key: str) -> tuple[str, ...]:
    if value is None:
        return ()
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        msg = f"Configuration value {key} must be a list of strings"
        raise ConfigurationError(msg, details={"key": key})
    return tuple(value)


class TestConfigSettingsService:
    """Resolve effective settings from defaults, user and project YAML files.

    Environment variables ``TESTDECK_PYTHON``, ``TESTDECK_RUN_TIMEOUT_S`` and
    ``TESTDECK_DISCOVERY_TIMEOUT_S`` override the files.
    """

    __test__ = False

    def __init__(self, config_loader: ConfigLoader = load_merged_config):
        self._load = config_loader
        self._write_lock = threading.RLock()

    def load(self, workspace_root: Path) -> dict[str, Any]:
        cfg = self._load(normalize_path(workspace_root))
        python = read_str("TESTDECK_PYTHON")
        if python:
            cfg["python"] = python
        run_timeout = read_float("TESTDECK_RUN_TIMEOUT_S")
        if run_timeout is not None:
            cfg.setdefault("run", {})["timeout_s"] = run_timeout
        discovery_timeout = read_float("TESTDECK_DISCOVERY_TIMEOUT_S")
        if discovery_timeout is not None:
            cfg.setdefault("discovery", {})["timeout_s"] = discovery_timeout
        return cfg

    def get_settings(self, workspace_root: Path, provider: str) -> TestSettings:
        """Return settings for ``provider`` in ``workspace_root``.

        ``root_directory`` is resolved to an absolute path.

        Raises
        ------
        UnknownProviderError
            If ``provider`` is not registered
        ConfigurationError
            If a configuration value has the wrong type
        """
        tag = get_provider(provider).tag
        workspace = normalize_path(workspace_root)
        cfg = self.load(workspace)
        section = (cfg.get("providers") or {}).get(tag) or {}
        if not isinstance(section, dict):
            msg = f"Configuration section providers.{tag} must be a mapping"
            raise ConfigurationError(msg)

        root_directory = section.get("root_directory") or "."
        return TestSettings(
            provider=tag,
            args=_string_list(section.get("args"), f"providers.{tag}.args"),
            root_directory=str(normalize_path(workspace / root_directory)),
            enabled=bool(section.get("enabled", False)),
            python=str(cfg.get("python") or "python"),
            run_timeout_s=_positive_float(
                (cfg.get("run") or {}).get("timeout_s", 600), "run.timeout_s",
            ),
            discovery_timeout_s=_positive_float(
                (cfg.get("discovery") or {}).get("timeout_s", 120),
                "discovery.timeout_s",
            ),
        )

    def enabled_providers(self, workspace_root: Path) -> list[str]:
        return [
            name
            for name in provider_names()
            if self.get_settings(workspace_root, name).enabled
        ]

    def status_settings(self, workspace_root: Path) -> StatusSettings:
        status = self.load(workspace_root).get("status") or {}
        max_batch = status.get("max_batch_ids", 500)
        if not isinstance(max_batch, int) or max_batch < 1:
            msg = "Configuration value status.max_batch_ids must be a positive integer"
            raise ConfigurationError(msg)
        debounce = status.get("debounce_s", 0.1)
        if not isinstance(debounce, (int, float)) or debounce < 0:
            msg = "Configuration value status.debounce_s must be a non-negative number"
            raise ConfigurationError(msg)
        return StatusSettings(debounce_s=float(debounce), max_batch_ids=max_batch)

    def _update_provider(self, workspace_root: Path, provider: str, **values: Any) -> Path:
        tag = get_provider(provider).tag
        path = get_project_config_path(normalize_path(workspace_root))
        with self._write_lock:
            data = load_yaml(path)
            providers = data.setdefault("providers", {})
            providers.setdefault(tag, {}).update(values)
            try:
                safe_write_yaml(path, data)
            except FileOperationError as e:
                raise ConfigurationError(str(e), details={"path": str(path)}) from e
        logger.info("Updated %s settings in %s: %s", tag, path, sorted(values))
        return path

    def enable(self, workspace_root: Path, provider: str) -> Path:
        return self._update_provider(workspace_root, provider, enabled=True)

    def disable(self, workspace_root: Path, provider: str) -> Path:
        return self._update_provider(workspace_root, provider, enabled=False)

    def update_args(self, workspace_root: Path, provider: str, args: Sequence[str]) -> Path:
        return self._update_provider(workspace_root, provider, args=list(args))
