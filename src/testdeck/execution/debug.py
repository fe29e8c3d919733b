"""Launching test processes under debugpy."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable, Mapping, Sequence
from pathlib import Path

from testdeck.execution.process import ProcessExecutor, ProcessHandle
from testdeck.resources.ports import allocate_port, is_port_listening
from testdeck_logging import get_logger

logger = get_logger(__name__)

DEBUG_HOST = "127.0.0.1"
DEBUG_READY_TIMEOUT_S = 10.0
DEBUG_POLL_INTERVAL_S = 0.1


class DebugLauncher:
    """Wrap a python command with ``debugpy --wait-for-client``.

    The chosen port is logged and kept in ``last_port`` so a client can
    attach.
    """

    def __init__(
        self,
        executor: ProcessExecutor | None = None,
        port_allocator: Callable[[], int] = allocate_port,
        ready_timeout_s: float = DEBUG_READY_TIMEOUT_S,
    ):
        self.executor = executor or ProcessExecutor()
        self._allocate_port = port_allocator
        self.ready_timeout_s = ready_timeout_s
        self.last_port: int | None = None

    def debug_args(self, args: Sequence[str], port: int) -> list[str]:
        """Prefix interpreter ``args`` with the debugpy listener options.

        ``-m module`` and script invocations are both supported since debugpy
        accepts the same forms after its own options.
        """
        return [
            "-m",
            "debugpy",
            "--listen",
            f"{DEBUG_HOST}:{port}",
            "--wait-for-client",
            *args,
        ]

    async def wait_until_listening(self, handle: ProcessHandle, port: int) -> bool:
        """Poll until the process tree of ``handle`` listens on ``port``.

        Returns
        -------
        bool
            False if the process exited or the timeout elapsed first
        """
        deadline = time.monotonic() + self.ready_timeout_s
        while time.monotonic() < deadline:
            if handle.returncode is not None:
                return False
            if await asyncio.to_thread(is_port_listening, handle.pid, port):
                return True
            await asyncio.sleep(DEBUG_POLL_INTERVAL_S)
        return False

    async def launch_under_debugger(
        self,
        command: str,
        args: Sequence[str],
        cwd: Path,
        env: Mapping[str, str] | None = None,
    ) -> ProcessHandle:
        port = self._allocate_port()
        self.last_port = port
        handle = await self.executor.spawn(command, self.debug_args(args, port), cwd, env)
        if await self.wait_until_listening(handle, port):
            logger.info("Waiting for debugger to attach on %s:%d", DEBUG_HOST, port)
        else:
            logger.warning("debugpy is not listening on %s:%d yet", DEBUG_HOST, port)
        return handle
