"""Tests for DebugLauncher."""

from pathlib import Path
from typing import Any
from unittest.mock import patch

import pytest

from testdeck.execution.debug import DebugLauncher


class TestDebugLauncher:
    """Test debugpy wrapping and readiness polling."""

    def test_debug_args(self) -> None:
        """Test debugpy options precede the original arguments."""
        launcher = DebugLauncher(port_allocator=lambda: 1)

        assert launcher.debug_args(["-m", "pytest", "-q"], 5678) == [
            "-m",
            "debugpy",
            "--listen",
            "127.0.0.1:5678",
            "--wait-for-client",
            "-m",
            "pytest",
            "-q",
        ]

    @pytest.mark.asyncio
    async def test_waits_until_listening(self, fake_executor: Any, behaviors: Any) -> None:
        """Test readiness is reported once the port is listening."""
        fake_executor.push(behaviors.hangs())
        launcher = DebugLauncher(fake_executor, port_allocator=lambda: 5999, ready_timeout_s=5)

        with patch(
            "testdeck.execution.debug.is_port_listening",
            side_effect=[False, True],
        ) as listening:
            handle = await launcher.launch_under_debugger("python3", ["t.py"], Path("/ws"))

        assert listening.call_count == 2
        assert launcher.last_port == 5999
        assert fake_executor.calls[0]["command"][:5] == [
            "python3",
            "-m",
            "debugpy",
            "--listen",
            "127.0.0.1:5999",
        ]
        await handle.kill()

    @pytest.mark.asyncio
    async def test_exited_process_is_not_ready(self, fake_executor: Any, behaviors: Any) -> None:
        """Test polling stops when the process has already exited."""
        fake_executor.push(behaviors.exits(1, stderr="No module named debugpy"))
        launcher = DebugLauncher(fake_executor, port_allocator=lambda: 5999, ready_timeout_s=5)
        handle = await fake_executor.spawn("python3", [], Path("/ws"))
        await handle.wait()

        assert await launcher.wait_until_listening(handle, 5999) is False
