"""Run a provider's collection step and build the canonical tree."""

from __future__ import annotations

import asyncio
import contextlib
import sys
from collections.abc import Sequence
from pathlib import Path

from testdeck.common.errors import DiscoveryError, ParseError
from testdeck.execution.process import ProcessExecutor
from testdeck.models.tree import TestFolder
from testdeck.providers.base import Provider
from testdeck_common.config import DEFAULT_DISCOVERY_TIMEOUT_S
from testdeck_logging import get_logger

logger = get_logger(__name__)

COLLECT_DRAIN_S = 2.0


class DiscoveryService:
    """Discover tests for one provider.

    Every call launches a fresh collection process and returns a new tree;
    nothing is shared with trees returned earlier.
    """

    def __init__(self, provider: Provider, executor: ProcessExecutor | None = None):
        self.provider = provider
        self.executor = executor or ProcessExecutor()

    async def discover(
        self,
        workspace_root: Path,
        root_directory: Path,
        args: Sequence[str],
        *,
        python: str = sys.executable,
        timeout_s: float = DEFAULT_DISCOVERY_TIMEOUT_S,
    ) -> TestFolder:
        """Collect tests under ``root_directory``.

        Parameters
        ----------
        workspace_root : Path
            Workspace the tests belong to (used for logging)
        root_directory : Path
            Working directory of the collection process; ids are relative to it
        args : Sequence[str]
            Interpreter arguments from the provider's arguments service
        python : str
            Interpreter to run
        timeout_s : float
            Upper bound on the collection process

        Returns
        -------
        TestFolder
            Root of the discovered tree

        Raises
        ------
        DiscoveryError
            If collection exits non-zero, times out, or prints unparsable output
        ProcessLaunchError
            If the interpreter cannot be started
        """
        logger.info(
            "Discovering %s tests in %s",
            self.provider.tag,
            root_directory,
        )
        handle = await self.executor.spawn(python, args, root_directory)
        try:
            stdout, stderr = await asyncio.wait_for(handle.communicate(), timeout_s)
        except asyncio.TimeoutError as e:
            await handle.kill()
            with contextlib.suppress(asyncio.TimeoutError):
                await asyncio.wait_for(handle.communicate(), COLLECT_DRAIN_S)
            msg = f"{self.provider.tag} discovery timed out after {timeout_s:.0f}s"
            raise DiscoveryError(msg, stderr=handle.stderr, exit_code=None) from e

        if handle.returncode != 0:
            msg = f"{self.provider.tag} discovery exited with code {handle.returncode}"
            logger.warning("%s in %s", msg, workspace_root)
            raise DiscoveryError(msg, stderr=stderr, exit_code=handle.returncode)

        try:
            root = self.provider.parse_discovery(stdout, root_directory)
        except ParseError as e:
            raise DiscoveryError(
                f"Unparsable {self.provider.tag} discovery output: {e.message}",
                stderr=stderr,
                exit_code=handle.returncode,
            ) from e

        logger.info(
            "Discovered %d %s test(s)",
            sum(1 for _ in root.leaves()),
            self.provider.tag,
        )
        return root
