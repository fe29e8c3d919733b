"""One test-run invocation: spawn, stream results, finish or cancel."""

from __future__ import annotations

import asyncio
import contextlib
import dataclasses
import shutil
import tempfile
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from testdeck.common.errors import IncompleteRunError, ParseError
from testdeck.execution.debug import DebugLauncher
from testdeck.execution.process import ProcessExecutor, ProcessHandle
from testdeck.models.results import RunnerState, RunRequest, RunResult, TestOutcome
from testdeck.models.settings import RunMode, TestSettings
from testdeck.models.tree import TestStatus
from testdeck.providers.base import Provider, ResultChannel
from testdeck.results.socket_server import LOOPBACK_HOST, ResultSocketServer
from testdeck.results.stream import INCOMPLETE_MESSAGE, SocketResultParser
from testdeck.results.xunit import XUnitParser
from testdeck_logging import get_logger

logger = get_logger(__name__)

STREAM_DRAIN_S = 2.0
STOP_TIMEOUT_S = 10.0
STDERR_TAIL_CHARS = 4000

OutcomeCallback = Callable[[TestOutcome], None]


@dataclass(frozen=True)
class RunPlan:
    """What a runner should execute and how to interpret what comes back.

    Attributes
    ----------
    names : Sequence[str] | None
        Framework identifiers to select, ``None`` for everything
    expected_ids : Sequence[str]
        Stable ids of the leaves the run covers
    resolve : Callable[[str], str | None]
        Maps a reported identifier to a stable id
    known_ids : frozenset[str]
        Every stable id in the tree, for JUnit classname disambiguation
    """

    names: Sequence[str] | None
    expected_ids: Sequence[str]
    resolve: Callable[[str], str | None] = field(default=lambda key: key)
    known_ids: frozenset[str] = frozenset()


def _stderr_tail(stderr: str) -> str:
    text = stderr.strip()
    return text[-STDERR_TAIL_CHARS:] if len(text) > STDERR_TAIL_CHARS else text


class TestRunner:
    """Runs one request through a provider's result channel.

    States: ``IDLE -> SPAWNING -> STREAMING -> COMPLETED | CANCELLED | FAILED``.
    Each outcome is handed to ``on_outcome`` as soon as it is known.
    """

    __test__ = False

    def __init__(
        self,
        provider: Provider,
        settings: TestSettings,
        executor: ProcessExecutor,
        debug_launcher: DebugLauncher | None = None,
        xunit_parser: XUnitParser | None = None,
    ):
        self.provider = provider
        self.settings = settings
        self.executor = executor
        self.debug_launcher = debug_launcher or DebugLauncher(executor)
        self.xunit_parser = xunit_parser or XUnitParser()
        self.state = RunnerState.IDLE
        self._handle: ProcessHandle | None = None
        self._stop_requested = False
        self._terminal = asyncio.Event()

    @property
    def stop_requested(self) -> bool:
        return self._stop_requested

    def _transition(self, state: RunnerState) -> None:
        logger.debug("Runner %s -> %s", self.state.value, state.value)
        self.state = state
        if state.is_terminal:
            self._terminal.set()

    async def _spawn(self, request: RunRequest, args: list[str]) -> ProcessHandle:
        cwd = Path(self.settings.root_directory)
        if request.debug:
            return await self.debug_launcher.launch_under_debugger(
                self.settings.python,
                args,
                cwd,
            )
        return await self.executor.spawn(self.settings.python, args, cwd)

    async def run(
        self,
        request: RunRequest,
        plan: RunPlan,
        on_outcome: OutcomeCallback,
    ) -> RunResult:
        """Execute ``plan`` and return once the runner is in a terminal state.

        Raises
        ------
        ProcessLaunchError
            If the test process cannot be started
        """
        if self.state is not RunnerState.IDLE:
            msg = "A TestRunner can only be used for one run"
            raise RuntimeError(msg)

        started = time.monotonic()
        settings = self.settings
        if request.args_override:
            settings = dataclasses.replace(settings, args=request.args_override)
            self.settings = settings

        self._transition(RunnerState.SPAWNING)
        server: ResultSocketServer | None = None
        report_dir: Path | None = None
        try:
            if self.provider.channel is ResultChannel.SOCKET:
                server = ResultSocketServer()
                port = await server.start()
                args = self.provider.arguments.build_args(
                    settings,
                    RunMode.RUN,
                    plan.names,
                    port=port,
                    host=LOOPBACK_HOST,
                )
            else:
                report_dir = Path(tempfile.mkdtemp(prefix="testdeck-junit-"))
                args = self.provider.arguments.build_args(
                    settings,
                    RunMode.RUN,
                    plan.names,
                    junit_path=report_dir / "report.xml",
                )

            try:
                self._handle = await self._spawn(request, args)
            except Exception:
                self._transition(RunnerState.FAILED)
                raise

            if self._stop_requested:
                await self._handle.kill()
            self._transition(RunnerState.STREAMING)

            if server is not None:
                result = await self._run_socket(server, plan, on_outcome)
            else:
                assert report_dir is not None
                result = await self._run_batch(report_dir / "report.xml", plan, on_outcome)
        except asyncio.CancelledError:
            if self._handle is not None:
                await asyncio.shield(self._handle.kill())
            self._transition(RunnerState.CANCELLED)
            raise
        finally:
            if server is not None:
                await server.close()
            if report_dir is not None:
                shutil.rmtree(report_dir, ignore_errors=True)

        result.duration = time.monotonic() - started
        self._transition(result.state)
        logger.info(
            "Run finished: %s (exit code %s, %d outcome(s))",
            result.state.value,
            result.exit_code,
            len(result.outcomes),
        )
        return result

    async def _wait_bounded(self, awaitable: asyncio.Future | asyncio.Task) -> bool:
        """Await within the run timeout; return False on timeout."""
        try:
            await asyncio.wait_for(awaitable, self.settings.run_timeout_s)
        except asyncio.TimeoutError:
            logger.warning(
                "Test run exceeded %.0fs timeout, terminating",
                self.settings.run_timeout_s,
            )
            return False
        return True

    async def _run_socket(
        self,
        server: ResultSocketServer,
        plan: RunPlan,
        on_outcome: OutcomeCallback,
    ) -> RunResult:
        assert self._handle is not None
        handle = self._handle
        parser = SocketResultParser(plan.expected_ids, plan.resolve)
        outcomes: list[TestOutcome] = []

        async def consume() -> None:
            async for message in server.messages():
                for outcome in parser.handle(message):
                    outcomes.append(outcome)
                    on_outcome(outcome)

        async def stream() -> None:
            process_task = asyncio.ensure_future(handle.communicate())
            consume_task = asyncio.ensure_future(consume())
            try:
                await asyncio.wait(
                    {process_task, consume_task},
                    return_when=asyncio.FIRST_COMPLETED,
                )
                if process_task.done() and not consume_task.done():
                    if not server.connected:
                        server.abort()
                    try:
                        await asyncio.wait_for(asyncio.shield(consume_task), STREAM_DRAIN_S)
                    except asyncio.TimeoutError:
                        server.abort()
                await consume_task
                await process_task
            finally:
                for task in (process_task, consume_task):
                    if not task.done():
                        task.cancel()

        completed = await self._wait_bounded(asyncio.ensure_future(stream()))
        if not completed:
            await handle.kill()
            server.abort()
        with contextlib.suppress(asyncio.TimeoutError):
            await asyncio.wait_for(handle.communicate(), STREAM_DRAIN_S)

        reported = sum(1 for o in outcomes if o.status.is_terminal)
        cancelled_by_user = self._stop_requested and completed
        completion = parser.finalize(cancelled=cancelled_by_user)
        for outcome in completion.outcomes:
            outcomes.append(outcome)
            on_outcome(outcome)

        state = self._final_state(completed, handle.returncode, reported)
        return RunResult(
            state=state,
            outcomes=outcomes,
            exit_code=handle.returncode,
            process_error=self._process_error(handle),
            incomplete=completion.incomplete,
            reset_ids=completion.reset_ids,
        )

    async def _run_batch(
        self,
        report_path: Path,
        plan: RunPlan,
        on_outcome: OutcomeCallback,
    ) -> RunResult:
        assert self._handle is not None
        handle = self._handle
        completed = await self._wait_bounded(asyncio.ensure_future(handle.communicate()))
        if not completed:
            await handle.kill()
            with contextlib.suppress(asyncio.TimeoutError):
                await asyncio.wait_for(handle.communicate(), STREAM_DRAIN_S)

        outcomes: list[TestOutcome] = []
        parse_error: ParseError | None = None
        try:
            parsed = self.xunit_parser.parse_file(report_path, plan.known_ids)
        except ParseError as e:
            logger.warning("Could not parse JUnit report: %s", e)
            parse_error = e
            parsed = []
        for outcome in parsed:
            outcomes.append(outcome)
            on_outcome(outcome)

        reported = {o.test_id for o in outcomes}
        pending = [i for i in plan.expected_ids if i not in reported]
        incomplete: IncompleteRunError | None = None
        reset_ids: list[str] = []
        if not completed and pending:
            incomplete = IncompleteRunError(pending)
            for test_id in pending:
                outcome = TestOutcome(test_id, TestStatus.ERROR, message=INCOMPLETE_MESSAGE)
                outcomes.append(outcome)
                on_outcome(outcome)
        elif self._stop_requested:
            reset_ids = pending

        state = self._final_state(completed, handle.returncode, len(parsed))
        if parse_error is not None and completed and not self._stop_requested:
            state = RunnerState.FAILED
        process_error = self._process_error(handle)
        if parse_error is not None:
            process_error = "\n".join(filter(None, [process_error, parse_error.message]))
        return RunResult(
            state=state,
            outcomes=outcomes,
            exit_code=handle.returncode,
            process_error=process_error,
            incomplete=incomplete,
            reset_ids=reset_ids,
        )

    def _final_state(self, completed: bool, exit_code: int | None, reported: int) -> RunnerState:
        if not completed or self._stop_requested:
            return RunnerState.CANCELLED
        if exit_code not in (0, None) and reported == 0:
            return RunnerState.FAILED
        return RunnerState.COMPLETED

    @staticmethod
    def _process_error(handle: ProcessHandle) -> str | None:
        if handle.returncode in (0, None):
            return None
        tail = _stderr_tail(handle.stderr)
        message = f"Test process exited with code {handle.returncode}"
        return f"{message}\n{tail}" if tail else message

    async def stop(self) -> None:
        """Terminate the test process and wait for the terminal state."""
        if self.state.is_terminal or self.state is RunnerState.IDLE:
            return
        self._stop_requested = True
        if self._handle is not None:
            await self._handle.kill()
        with contextlib.suppress(asyncio.TimeoutError):
            await asyncio.wait_for(self._terminal.wait(), STOP_TIMEOUT_S)
