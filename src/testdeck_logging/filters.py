"""Logging filters for testdeck."""

from __future__ import annotations

import logging

from testdeck_logging.context import (
    get_log_context,
    get_provider,
    get_run_id,
    get_workspace,
)


class RunContextFilter(logging.Filter):
    """Stamp records with the active workspace, provider and run id.

    Missing values render as ``-`` so format strings never fail.
    """

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: A003
        record.workspace = get_workspace() or "-"
        record.provider = get_provider() or "-"
        record.run_id = get_run_id() or "-"
        for key, value in get_log_context().items():
            if not hasattr(record, key):
                setattr(record, key, value)
        return True

