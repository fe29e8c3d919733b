"""Logging for testdeck: profiles, formatters and run-context stamping."""

from testdeck_logging.config import (
    configure_logger,
    get_cli_logger,
    get_logger,
    get_test_logger,
    setup_cli_logging,
)
from testdeck_logging.context import (
    clear_all_context,
    clear_log_context,
    get_log_context,
    get_provider,
    get_run_id,
    get_workspace,
    new_run_id,
    run_context,
    set_log_context,
)
from testdeck_logging.filters import RunContextFilter
from testdeck_logging.formatters import ColoredFormatter, JSONFormatter, SafeFormatter

__all__ = [
    "ColoredFormatter",
    "JSONFormatter",
    "RunContextFilter",
    "SafeFormatter",
    "clear_all_context",
    "clear_log_context",
    "configure_logger",
    "get_cli_logger",
    "get_log_context",
    "get_logger",
    "get_provider",
    "get_run_id",
    "get_test_logger",
    "get_workspace",
    "new_run_id",
    "run_context",
    "set_log_context",
    "setup_cli_logging",
]
