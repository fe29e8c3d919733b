"""Child process spawning and process-tree termination."""

from __future__ import annotations

import asyncio
import contextlib
import os
from collections.abc import Mapping, Sequence
from pathlib import Path

import psutil

from testdeck.common.errors import ProcessLaunchError
from testdeck_logging import get_logger

logger = get_logger(__name__)

TERMINATE_GRACE_S = 3.0


def kill_process_tree(pid: int, timeout: float = TERMINATE_GRACE_S) -> list[int]:
    """Terminate ``pid`` and all its descendants.

    Children are collected first so orphans cannot escape, then everything is
    sent SIGTERM; survivors after ``timeout`` seconds are killed.

    Returns
    -------
    list[int]
        Pids that had to be force-killed
    """
    try:
        parent = psutil.Process(pid)
    except psutil.NoSuchProcess:
        return []

    try:
        procs = [*parent.children(recursive=True), parent]
    except psutil.NoSuchProcess:
        procs = [parent]

    for proc in procs:
        with contextlib.suppress(psutil.NoSuchProcess, psutil.AccessDenied):
            proc.terminate()

    _, alive = psutil.wait_procs(procs, timeout=timeout)
    for proc in alive:
        with contextlib.suppress(psutil.NoSuchProcess, psutil.AccessDenied):
            proc.kill()
    if alive:
        psutil.wait_procs(alive, timeout=timeout)
    return [proc.pid for proc in alive]


class ProcessHandle:
    """Handle on a spawned test process."""

    def __init__(self, process: asyncio.subprocess.Process, command: list[str]):
        self._process = process
        self.command = command
        self.stdout = ""
        self.stderr = ""
        self._communicate_task: asyncio.Task[tuple[bytes, bytes]] | None = None

    @property
    def pid(self) -> int:
        return self._process.pid

    @property
    def returncode(self) -> int | None:
        return self._process.returncode

    async def communicate(self) -> tuple[str, str]:
        """Wait for exit while draining stdout/stderr.

        Safe to await from several places; output is captured once.
        """
        if self._communicate_task is None:
            self._communicate_task = asyncio.ensure_future(self._process.communicate())
        out, err = await asyncio.shield(self._communicate_task)
        self.stdout = (out or b"").decode("utf-8", errors="replace")
        self.stderr = (err or b"").decode("utf-8", errors="replace")
        return self.stdout, self.stderr

    async def wait(self) -> int:
        await self.communicate()
        return self._process.returncode if self._process.returncode is not None else -1

    async def kill(self) -> None:
        """Terminate the process and every descendant."""
        if self._process.returncode is not None:
            return
        logger.debug("Terminating process tree of pid %d", self.pid)
        killed = await asyncio.to_thread(kill_process_tree, self.pid)
        if killed:
            logger.warning("Force-killed pids %s", killed)


class ProcessExecutor:
    """Spawn child processes on the running event loop."""

    async def spawn(
        self,
        command: str,
        args: Sequence[str],
        cwd: Path,
        env: Mapping[str, str] | None = None,
    ) -> ProcessHandle:
        """Start ``command args...`` in ``cwd`` in a new session.

        Raises
        ------
        ProcessLaunchError
            If the command is missing or not executable
        """
        argv = [command, *args]
        full_env = {**os.environ, **(env or {})}
        logger.debug("Spawning %s in %s", argv, cwd)
        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                cwd=str(cwd),
                env=full_env,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                start_new_session=True,
            )
        except (FileNotFoundError, PermissionError, NotADirectoryError) as e:
            raise ProcessLaunchError(str(e), command=argv) from e
        return ProcessHandle(process, argv)
