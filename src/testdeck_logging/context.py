"""Context variables stamped onto log records during discovery and runs."""

from __future__ import annotations

import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any

_workspace_var: ContextVar[str | None] = ContextVar("testdeck_workspace", default=None)
_provider_var: ContextVar[str | None] = ContextVar("testdeck_provider", default=None)
_run_id_var: ContextVar[str | None] = ContextVar("testdeck_run_id", default=None)
_log_context_var: ContextVar[dict[str, Any] | None] = ContextVar(
    "testdeck_log_context",
    default=None,
)


def new_run_id() -> str:
    """Return a short random identifier for one discovery or run."""
    return uuid.uuid4().hex[:8]


def set_workspace(workspace: str | None) -> None:
    _workspace_var.set(workspace)


def get_workspace() -> str | None:
    return _workspace_var.get()


def set_provider(provider: str | None) -> None:
    _provider_var.set(provider)


def get_provider() -> str | None:
    return _provider_var.get()


def set_run_id(run_id: str | None) -> None:
    _run_id_var.set(run_id)


def get_run_id() -> str | None:
    return _run_id_var.get()


def set_log_context(**kwargs: Any) -> None:
    """Merge extra key/value pairs into the log context."""
    current = dict(_log_context_var.get() or {})
    current.update(kwargs)
    _log_context_var.set(current)


def get_log_context() -> dict[str, Any]:
    return dict(_log_context_var.get() or {})


def clear_log_context() -> None:
    _log_context_var.set(None)


def clear_all_context() -> None:
    """Reset every testdeck context variable."""
    _workspace_var.set(None)
    _provider_var.set(None)
    _run_id_var.set(None)
    _log_context_var.set(None)


@contextmanager
def run_context(
    workspace: str | None = None,
    provider: str | None = None,
    run_id: str | None = None,
) -> Iterator[str]:
    """Bind workspace/provider/run id for the duration of a block.

    Previous values are restored on exit. Yields the run id in effect, which
    is generated when not supplied.
    """
    effective_run_id = run_id or new_run_id()
    tokens = (
        _workspace_var.set(workspace),
        _provider_var.set(provider),
        _run_id_var.set(effective_run_id),
    )
    try:
        yield effective_run_id
    finally:
        _run_id_var.reset(tokens[2])
        _provider_var.reset(tokens[1])
        _workspace_var.reset(tokens[0])
