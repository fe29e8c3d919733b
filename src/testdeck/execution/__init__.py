"""Process execution, debug launch and the test runner."""

from testdeck.execution.debug import DebugLauncher
from testdeck.execution.process import ProcessExecutor, ProcessHandle, kill_process_tree
from testdeck.execution.runner import RunPlan, TestRunner

__all__ = [
    "DebugLauncher",
    "ProcessExecutor",
    "ProcessHandle",
    "RunPlan",
    "TestRunner",
    "kill_process_tree",
]
