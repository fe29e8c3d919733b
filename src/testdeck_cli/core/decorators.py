"""Custom click decorators for common CLI patterns."""

import functools
import traceback
from collections.abc import Callable
from typing import Any, TypeVar

import click

from testdeck.common.errors import ConfigurationError, ProcessLaunchError, TestdeckError
from testdeck_cli.core.constants import ExitCode
from testdeck_cli.core.utils import CliOutput
from testdeck_logging import get_cli_logger

logger = get_cli_logger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


def handle_exceptions(func: F) -> F:
    """Convert exceptions into messages and exit codes.

    Parameters
    ----------
    func : Callable
        Function to wrap

    Returns
    -------
    Callable
        Wrapped function
    """

    @functools.wraps(func)
    def wrapper(*args, **kwargs) -> Any:
        try:
            return func(*args, **kwargs)
        except KeyboardInterrupt:
            ctx = click.get_current_context()
            CliOutput.warning("Interrupted")
            ctx.exit(ExitCode.GENERAL_ERROR)
        except click.exceptions.Exit:
            raise
        except click.ClickException:
            raise
        except ConfigurationError as e:
            logger.debug("Configuration error: %s", e.details)
            CliOutput.error(str(e))
            click.get_current_context().exit(ExitCode.CONFIG_ERROR)
        except ProcessLaunchError as e:
            logger.debug("Launch failed for %s", e.command)
            CliOutput.error(str(e))
            click.get_current_context().exit(ExitCode.NOT_FOUND)
        except TestdeckError as e:
            CliOutput.error(str(e))
            click.get_current_context().exit(ExitCode.GENERAL_ERROR)
        except PermissionError as e:
            CliOutput.error(f"Permission denied: {e}")
            click.get_current_context().exit(ExitCode.PERMISSION_ERROR)
        except Exception as e:
            ctx = click.get_current_context()
            CliOutput.error(f"Unexpected error: {e}")
            if getattr(ctx.obj, "verbose", False):
                CliOutput.error(traceback.format_exc())
            else:
                CliOutput.plain("Re-run with -v for full traceback", err=True)
            ctx.exit(ExitCode.GENERAL_ERROR)

    return wrapper  # type: ignore[return-value]
