"""Notifications published by test managers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar

from testdeck.models.results import RunnerState, RunSummary
from testdeck.models.tree import TestStatus


@dataclass(frozen=True)
class StatusUpdateEvent:
    """Statuses of ``test_ids`` changed; ``root_status`` is the new aggregate."""

    terminal: ClassVar[bool] = False

    workspace_root: str
    provider: str
    test_ids: tuple[str, ...]
    root_status: TestStatus

    @property
    def key(self) -> tuple[str, str]:
        return (self.workspace_root, self.provider)


@dataclass(frozen=True)
class RunCompletedEvent:
    terminal: ClassVar[bool] = True

    workspace_root: str
    provider: str
    test_ids: tuple[str, ...]
    root_status: TestStatus
    state: RunnerState
    summary: RunSummary
    error: str | None = None

    @property
    def key(self) -> tuple[str, str]:
        return (self.workspace_root, self.provider)


@dataclass(frozen=True)
class DiscoveryCompletedEvent:
    terminal: ClassVar[bool] = True

    workspace_root: str
    provider: str
    root_status: TestStatus
    node_count: int
    error: str | None = None

    @property
    def key(self) -> tuple[str, str]:
        return (self.workspace_root, self.provider)


TestEvent = StatusUpdateEvent | RunCompletedEvent | DiscoveryCompletedEvent
