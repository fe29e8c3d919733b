"""Run requests, per-test outcomes and run results."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any

from testdeck.models.tree import TestStatus

if TYPE_CHECKING:
    from testdeck.common.errors import IncompleteRunError


class RunnerState(str, Enum):
    """Lifecycle of a single test runner invocation."""

    IDLE = "idle"
    SPAWNING = "spawning"
    STREAMING = "streaming"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (
            RunnerState.COMPLETED,
            RunnerState.CANCELLED,
            RunnerState.FAILED,
        )


class ManagerState(str, Enum):
    """Lifecycle of a TestManager."""

    UNINITIALIZED = "uninitialized"
    DISCOVERING = "discovering"
    READY = "ready"
    RUNNING = "running"


@dataclass(frozen=True)
class RunRequest:
    """Immutable description of one test run.

    ``test_ids`` of ``None`` means every discovered test.
    """

    provider: str
    workspace_root: Path
    test_ids: frozenset[str] | None = None
    debug: bool = False
    args_override: tuple[str, ...] = ()
    failed_only: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "workspace_root", Path(self.workspace_root))
        if self.test_ids is not None and not isinstance(self.test_ids, frozenset):
            object.__setattr__(self, "test_ids", frozenset(self.test_ids))
        if not isinstance(self.args_override, tuple):
            object.__setattr__(self, "args_override", tuple(self.args_override))


@dataclass(frozen=True)
class TestOutcome:
    """Result for one test (or a running marker) reported by a provider."""

    __test__ = False

    test_id: str
    status: TestStatus
    duration: float | None = None
    message: str | None = None
    traceback: str | None = None


@dataclass(frozen=True)
class RunSummary:
    passed: int = 0
    failed: int = 0
    skipped: int = 0
    errors: int = 0
    not_run: int = 0

    @property
    def total(self) -> int:
        return self.passed + self.failed + self.skipped + self.errors + self.not_run

    @property
    def success(self) -> bool:
        return self.failed == 0 and self.errors == 0

    def to_dict(self) -> dict[str, int]:
        return {
            "passed": self.passed,
            "failed": self.failed,
            "skipped": self.skipped,
            "errors": self.errors,
            "not_run": self.not_run,
            "total": self.total,
        }


@dataclass
class RunResult:
    """Outcome of a whole run as observed by the runner and manager."""

    state: RunnerState
    outcomes: list[TestOutcome] = field(default_factory=list)
    summary: RunSummary = field(default_factory=RunSummary)
    exit_code: int | None = None
    process_error: str | None = None
    incomplete: IncompleteRunError | None = None
    reset_ids: list[str] = field(default_factory=list)
    duration: float = 0.0

    @property
    def reported_ids(self) -> list[str]:
        return unique_ids(o.test_id for o in self.outcomes if o.status.is_terminal)

    @property
    def success(self) -> bool:
        return self.state is RunnerState.COMPLETED and self.summary.success

    def to_dict(self) -> dict[str, Any]:
        return {
            "state": self.state.value,
            "summary": self.summary.to_dict(),
            "exit_code": self.exit_code,
            "process_error": self.process_error,
            "incomplete": self.incomplete.test_ids if self.incomplete else [],
            "duration": round(self.duration, 3),
        }


def unique_ids(ids: Iterable[str]) -> list[str]:
    """Return ids in first-seen order without duplicates."""
    return list(dict.fromkeys(ids))
