"""Exception hierarchy for testdeck."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any


class TestdeckError(Exception):
    """Base exception for all testdeck errors.

    Parameters
    ----------
    message : str
        Human-readable description
    details : dict, optional
        Structured context for logs and JSON output
    recoverable : bool
        Whether the caller can retry or continue
    """

    __test__ = False

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        recoverable: bool = False,
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.recoverable = recoverable

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": type(self).__name__,
            "message": self.message,
            "details": self.details,
            "recoverable": self.recoverable,
        }


class ConfigurationError(TestdeckError):
    """Invalid or unreadable testdeck configuration."""


class UnknownProviderError(ConfigurationError):
    """A provider tag does not name a registered test framework."""

    def __init__(self, provider: str):
        super().__init__(
            f"Unknown test provider: {provider!r}",
            details={"provider": provider},
        )
        self.provider = provider


class DiscoveryError(TestdeckError):
    """Test collection failed or produced unparsable output."""

    def __init__(self, message: str, stderr: str = "", exit_code: int | None = None):
        super().__init__(
            message,
            details={"stderr": stderr, "exit_code": exit_code},
            recoverable=True,
        )
        self.stderr = stderr
        self.exit_code = exit_code


class ParseError(TestdeckError):
    """A result payload could not be parsed."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, details=details, recoverable=True)


class IncompleteRunError(TestdeckError):
    """A run ended before every expected test reported a terminal status."""

    def __init__(self, test_ids: Iterable[str], reason: str = "did not complete"):
        ids = sorted(test_ids)
        super().__init__(
            f"{len(ids)} test(s) {reason}",
            details={"test_ids": ids, "reason": reason},
            recoverable=True,
        )
        self.test_ids = ids
        self.reason = reason


class ConcurrentRunError(TestdeckError):
    """A run was requested while another run is active on the same manager."""

    def __init__(self, workspace: str, provider: str):
        super().__init__(
            f"A {provider} test run is already in progress for {workspace}",
            details={"workspace": workspace, "provider": provider},
            recoverable=True,
        )


class DuplicateIdError(TestdeckError):
    """Two discovered nodes resolved to the same stable id."""

    def __init__(self, node_id: str):
        super().__init__(
            f"Duplicate test id discovered: {node_id}",
            details={"node_id": node_id},
        )
        self.node_id = node_id


class ProcessLaunchError(TestdeckError):
    """The test process could not be started."""

    def __init__(self, message: str, command: list[str] | None = None):
        super().__init__(message, details={"command": command or []})
        self.command = command or []
