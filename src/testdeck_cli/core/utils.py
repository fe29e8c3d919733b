"""Output helpers for the testdeck CLI."""

import click

from testdeck_cli.core.constants import Icons


def format_success(msg: str) -> str:
    return click.style(msg, fg="green")


def format_error(msg: str) -> str:
    """Format an error message with red color and icon.

    Parameters
    ----------
    msg : str
        Message to format

    Returns
    -------
    str
        Formatted message
    """
    return click.style(f"{Icons.ERROR} {msg}", fg="red")


def format_warning(msg: str) -> str:
    return click.style(msg, fg="yellow")


class CliOutput:
    """Unified CLI output with consistent formatting.

    Consecutive blank lines are coalesced into one.
    """

    _last_was_blank: bool = False

    @staticmethod
    def _emit(message: str, *, err: bool = False, formatter=None) -> None:
        if not message or message.strip() == "":
            if CliOutput._last_was_blank:
                return
            click.echo("", err=err)
            CliOutput._last_was_blank = True
            return

        rendered = formatter(message) if formatter else message
        click.echo(rendered, err=err)
        CliOutput._last_was_blank = False

    @staticmethod
    def success(message: str) -> None:
        CliOutput._emit(message, formatter=format_success)

    @staticmethod
    def error(message: str, err: bool = True) -> None:
        """Echo an error message to stderr by default.

        Parameters
        ----------
        message : str
            Message to echo
        err : bool
            Whether to send to stderr (default: True)
        """
        CliOutput._emit(message, err=err, formatter=format_error)

    @staticmethod
    def warning(message: str) -> None:
        CliOutput._emit(message, formatter=format_warning)

    @staticmethod
    def plain(message: str, err: bool = False) -> None:
        CliOutput._emit(message, err=err)

    @staticmethod
    def section(title: str, icon: str = "") -> None:
        heading = f"{icon} {title}" if icon else title
        CliOutput._emit("")
        CliOutput._emit(click.style(heading, bold=True))
