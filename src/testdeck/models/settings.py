"""Resolved settings passed to providers, runners and the status updater."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class RunMode(str, Enum):
    """What an argument list is built for."""

    DISCOVER = "discover"
    RUN = "run"


@dataclass(frozen=True)
class TestSettings:
    """Effective settings for one (workspace, provider) pair."""

    __test__ = False

    provider: str
    args: tuple[str, ...] = ()
    root_directory: str = "."
    enabled: bool = True
    python: str = "python"
    run_timeout_s: float = 600.0
    discovery_timeout_s: float = 120.0


@dataclass(frozen=True)
class StatusSettings:
    debounce_s: float = 0.1
    max_batch_ids: int = 500
