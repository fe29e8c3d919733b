"""Root pytest configuration and shared fixtures for the testdeck test suite.

Fake executors stand in for interpreter subprocesses: they record the
command line and either write a JUnit report or stream result messages to
the engine's socket, so runner and manager code paths execute for real.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Awaitable, Callable, Generator, Sequence
from pathlib import Path
from types import SimpleNamespace
from typing import Any
from xml.sax.saxutils import quoteattr

import pytest

from testdeck.common.errors import ProcessLaunchError
from testdeck.common.events import EventEmitter
from testdeck.config.settings import TestConfigSettingsService
from testdeck.execution.debug import DebugLauncher
from testdeck.manager.factory import TestServices
from testdeck.models.tree import TestFolder, TestStatus
from testdeck.providers.pytest import parse_pytest_discovery
from testdeck.providers.unittest import parse_unittest_discovery
from testdeck.tree.ids import relfile_to_module, split_id
from testdeck_common.config import deep_merge, default_config
from testdeck_logging import clear_all_context

Behavior = Callable[[list[str]], Awaitable[tuple[int, str, str]]]

PYTEST_DISCOVERY_DOC: list[dict[str, Any]] = [
    {
        "rootid": ".",
        "root": "/ws",
        "parents": [
            {
                "id": "tests",
                "kind": "folder",
                "name": "tests",
                "relpath": "tests",
                "parentid": ".",
            },
            {
                "id": "tests/test_math.py",
                "kind": "file",
                "name": "test_math.py",
                "relpath": "tests/test_math.py",
                "parentid": "tests",
            },
            {
                "id": "tests/test_math.py::TestAdd",
                "kind": "suite",
                "name": "TestAdd",
                "relpath": "tests/test_math.py",
                "parentid": "tests/test_math.py",
            },
            {
                "id": "tests/test_math.py::test_square",
                "kind": "function",
                "name": "test_square",
                "relpath": "tests/test_math.py",
                "parentid": "tests/test_math.py",
            },
            {
                "id": "tests/unit",
                "kind": "folder",
                "name": "unit",
                "relpath": "tests/unit",
                "parentid": "tests",
            },
            {
                "id": "tests/unit/test_io.py",
                "kind": "file",
                "name": "test_io.py",
                "relpath": "tests/unit/test_io.py",
                "parentid": "tests/unit",
            },
        ],
        "tests": [
            {
                "id": "tests/test_math.py::TestAdd::test_one",
                "name": "test_one",
                "source": "tests/test_math.py:5",
                "markers": [],
                "parentid": "tests/test_math.py::TestAdd",
            },
            {
                "id": "tests/test_math.py::TestAdd::test_two",
                "name": "test_two",
                "source": "tests/test_math.py:8",
                "markers": [],
                "parentid": "tests/test_math.py::TestAdd",
            },
            {
                "id": "tests/test_math.py::test_square[2]",
                "name": "test_square[2]",
                "source": "tests/test_math.py:12",
                "markers": ["parametrize"],
                "parentid": "tests/test_math.py::test_square",
            },
            {
                "id": "tests/test_math.py::test_square[3]",
                "name": "test_square[3]",
                "source": "tests/test_math.py:12",
                "markers": ["parametrize"],
                "parentid": "tests/test_math.py::test_square",
            },
            {
                "id": "tests/unit/test_io.py::test_read",
                "name": "test_read",
                "source": "tests/unit/test_io.py:3",
                "markers": ["slow"],
                "parentid": "tests/unit/test_io.py",
            },
        ],
    },
]

PYTEST_LEAF_IDS = [
    "tests/test_math.py::TestAdd::test_one",
    "tests/test_math.py::TestAdd::test_two",
    "tests/test_math.py::test_square[2]",
    "tests/test_math.py::test_square[3]",
    "tests/unit/test_io.py::test_read",
]

UNITTEST_DISCOVERY_OUTPUT = "\n".join(
    [
        "Ran 0 tests",
        "start",
        "tests.test_a.TestA.test_a\ttests/test_a.py\t4\ttests.test_a",
        "tests.test_a.TestA.test_b\ttests/test_a.py\t7\ttests.test_a",
        "tests.test_a.TestA.test_c\ttests/test_a.py\t10\ttests.test_a",
        "",
    ],
)

UNITTEST_DOTTED_IDS = [
    "tests.test_a.TestA.test_a",
    "tests.test_a.TestA.test_b",
    "tests.test_a.TestA.test_c",
]


def junit_xml(cases: Sequence[tuple[str, TestStatus]], message: str = "boom") -> str:
    """Render a pytest ``xunit1`` style report for stable ids."""
    rows = []
    for test_id, status in cases:
        relfile, qualname = split_id(test_id)
        classname = ".".join([relfile_to_module(relfile), *qualname[:-1]])
        attrs = (
            f"classname={quoteattr(classname)} name={quoteattr(qualname[-1])} "
            f"file={quoteattr(relfile)} time=\"0.010\""
        )
        body = {
            TestStatus.FAIL: f'<failure message="{message}">Traceback: {message}</failure>',
            TestStatus.ERROR: f'<error message="{message}">Traceback: {message}</error>',
            TestStatus.SKIP: '<skipped message="skipped"/>',
        }.get(status, "")
        rows.append(f"<testcase {attrs}>{body}</testcase>")
    return (
        '<?xml version="1.0" encoding="utf-8"?>'
        f'<testsuites><testsuite name="pytest" tests="{len(rows)}">'
        + "".join(rows)
        + "</testsuite></testsuites>"
    )


def option_value(command: Sequence[str], option: str) -> str | None:
    for index, arg in enumerate(command):
        if arg.startswith(option + "="):
            return arg.split("=", 1)[1]
        if arg == option and index + 1 < len(command):
            return command[index + 1]
    return None


class FakeHandle:
    """Stand-in for :class:`ProcessHandle` driven by a coroutine."""

    def __init__(self, command: list[str], behavior: Behavior, pid: int):
        self.command = command
        self.pid = pid
        self.returncode: int | None = None
        self.stdout = ""
        self.stderr = ""
        self.killed = False
        self._task = asyncio.ensure_future(self._run(behavior))

    async def _run(self, behavior: Behavior) -> None:
        try:
            code, out, err = await behavior(self.command)
        except asyncio.CancelledError:
            code, out, err = -15, "", "terminated"
        self.stdout, self.stderr = out, err
        self.returncode = code

    async def communicate(self) -> tuple[str, str]:
        await asyncio.shield(self._task)
        return self.stdout, self.stderr

    async def wait(self) -> int:
        await self.communicate()
        return self.returncode if self.returncode is not None else -1

    async def kill(self) -> None:
        self.killed = True
        if not self._task.done():
            self._task.cancel()
            await asyncio.wait({self._task})


class FakeExecutor:
    """Records spawns and runs the next queued behavior (or the default)."""

    def __init__(self, default: Behavior | None = None):
        self.default = default
        self.queue: list[Behavior | Exception] = []
        self.calls: list[dict[str, Any]] = []
        self.handles: list[FakeHandle] = []

    def push(self, behavior: Behavior | Exception) -> None:
        self.queue.append(behavior)

    async def spawn(self, command, args, cwd, env=None) -> FakeHandle:
        argv = [command, *args]
        self.calls.append({"command": argv, "cwd": Path(cwd), "env": env})
        behavior = self.queue.pop(0) if self.queue else self.default
        assert behavior is not None, f"No behavior queued for {argv}"
        if isinstance(behavior, Exception):
            raise behavior
        handle = FakeHandle(argv, behavior, pid=40000 + len(self.calls))
        self.handles.append(handle)
        return handle


def exits(code: int = 0, stdout: str = "", stderr: str = "") -> Behavior:
    async def behavior(command: list[str]) -> tuple[int, str, str]:
        return code, stdout, stderr

    return behavior


def hangs() -> Behavior:
    async def behavior(command: list[str]) -> tuple[int, str, str]:
        await asyncio.sleep(3600)
        return 0, "", ""

    return behavior


def fails_to_launch(message: str = "No such file or directory: 'python3'") -> Exception:
    """An error the fake executor raises from ``spawn`` instead of starting."""
    return ProcessLaunchError(message, command=["python3"])


def writes_junit(
    cases: Sequence[tuple[str, TestStatus]],
    code: int | None = None,
    raw: str | None = None,
) -> Behavior:
    """Write a JUnit report to the ``--junit-xml`` path of the command."""

    async def behavior(command: list[str]) -> tuple[int, str, str]:
        path = option_value(command, "--junit-xml")
        assert path is not None
        Path(path).write_text(raw if raw is not None else junit_xml(cases), encoding="utf-8")
        failed = any(status.is_failure for _, status in cases)
        exit_code = code if code is not None else int(failed)
        return exit_code, "", "1 failed" if exit_code else ""

    return behavior


def streams(
    messages: Sequence[dict[str, Any]],
    code: int = 0,
    hang_after: bool = False,
) -> Behavior:
    """Connect to ``--port`` and send ``messages`` as JSON lines."""

    async def behavior(command: list[str]) -> tuple[int, str, str]:
        host = option_value(command, "--host") or "127.0.0.1"
        port = int(option_value(command, "--port") or 0)
        _, writer = await asyncio.open_connection(host, port)
        try:
            for message in messages:
                writer.write((json.dumps(message) + "\n").encode("utf-8"))
                await writer.drain()
            if hang_after:
                await asyncio.sleep(3600)
        finally:
            writer.close()
        return code, "", ""

    return behavior


class EventRecorder:
    """Collects events from an :class:`EventEmitter`."""

    def __init__(self, emitter: EventEmitter):
        self.events: list[Any] = []
        self.unsubscribe = emitter.subscribe(self.events.append)

    def of_type(self, kind: type) -> list[Any]:
        return [e for e in self.events if isinstance(e, kind)]


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Clear testdeck environment overrides and logging context."""
    for name in (
        "TESTDECK_PYTHON",
        "TESTDECK_RUN_TIMEOUT_S",
        "TESTDECK_DISCOVERY_TIMEOUT_S",
        "TESTDECK_LOG_LEVEL",
        "TESTDECK_LOG_JSON",
        "TESTDECK_LOG_DIR",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("TESTDECK_NO_FILE_LOGGING", "1")
    yield
    clear_all_context()


@pytest.fixture
def discovery_doc_output() -> str:
    return json.dumps(PYTEST_DISCOVERY_DOC)


@pytest.fixture
def sample_tree(discovery_doc_output: str) -> TestFolder:
    """A freshly parsed pytest tree with five leaves."""
    return parse_pytest_discovery(discovery_doc_output, Path("/ws"))


@pytest.fixture
def unittest_root() -> TestFolder:
    return parse_unittest_discovery(UNITTEST_DISCOVERY_OUTPUT, Path("/ws"))


@pytest.fixture
def config_overrides() -> dict[str, Any]:
    """Per-test configuration layered over the defaults."""
    return {}


@pytest.fixture
def settings_service(config_overrides: dict[str, Any]) -> TestConfigSettingsService:
    """Settings service that never reads user or project files."""

    def loader(workspace_root: Path) -> dict[str, Any]:
        cfg = default_config()
        cfg["python"] = "python3"
        cfg["providers"]["unittest"]["enabled"] = True
        return deep_merge(cfg, json.loads(json.dumps(config_overrides)))

    return TestConfigSettingsService(config_loader=loader)


@pytest.fixture
def fake_executor() -> FakeExecutor:
    return FakeExecutor()


@pytest.fixture
def services(
    settings_service: TestConfigSettingsService,
    fake_executor: FakeExecutor,
) -> TestServices:
    return TestServices(
        settings=settings_service,
        executor=fake_executor,
        debug_launcher=DebugLauncher(
            fake_executor,
            port_allocator=lambda: 5678,
            ready_timeout_s=0,
        ),
    )


@pytest.fixture
def behaviors() -> Any:
    """Factories for fake process behaviors."""

    return SimpleNamespace(
        exits=exits,
        hangs=hangs,
        fails_to_launch=fails_to_launch,
        writes_junit=writes_junit,
        streams=streams,
        junit_xml=junit_xml,
        executor=FakeExecutor,
    )


@pytest.fixture
def record_events() -> Callable[[EventEmitter], EventRecorder]:
    return EventRecorder


@pytest.fixture
def sample_leaf_ids() -> list[str]:
    return list(PYTEST_LEAF_IDS)


@pytest.fixture
def unittest_dotted_ids() -> list[str]:
    return list(UNITTEST_DOTTED_IDS)


@pytest.fixture
def unittest_discovery_output() -> str:
    return UNITTEST_DISCOVERY_OUTPUT
