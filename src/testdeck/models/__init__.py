"""Data model for testdeck."""

from testdeck.models.events import (
    DiscoveryCompletedEvent,
    RunCompletedEvent,
    StatusUpdateEvent,
    TestEvent,
)
from testdeck.models.results import (
    ManagerState,
    RunnerState,
    RunRequest,
    RunResult,
    RunSummary,
    TestOutcome,
)
from testdeck.models.settings import RunMode, StatusSettings, TestSettings
from testdeck.models.tree import (
    NodeKind,
    TestFile,
    TestFolder,
    TestFunction,
    TestNode,
    TestStatus,
    TestSuite,
)

__all__ = [
    "DiscoveryCompletedEvent",
    "ManagerState",
    "NodeKind",
    "RunCompletedEvent",
    "RunMode",
    "RunRequest",
    "RunResult",
    "RunSummary",
    "RunnerState",
    "StatusSettings",
    "StatusUpdateEvent",
    "TestEvent",
    "TestFile",
    "TestFolder",
    "TestFunction",
    "TestNode",
    "TestOutcome",
    "TestSettings",
    "TestStatus",
    "TestSuite",
]
