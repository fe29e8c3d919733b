"""Main CLI entry point for testdeck.

This module provides the main Click command group; discovery, runs and
configuration are subcommands.
"""

from __future__ import annotations

import sys
from pathlib import Path

import click

from testdeck.manager import (
    TestServices,
    WorkspaceTestManagerService,
    create_default_services,
)
from testdeck_cli import __version__
from testdeck_cli.commands import config, tests
from testdeck_cli.core.constants import LogLevel
from testdeck_cli.core.utils import CliOutput
from testdeck_common.path import normalize_path
from testdeck_logging import get_cli_logger, setup_cli_logging

logger = get_cli_logger(__name__)


class Context:
    """CLI context object for sharing state between commands."""

    def __init__(self, workspaces: list[Path] | None = None) -> None:
        self.verbose: bool = False
        self.workspaces: list[Path] = workspaces or [normalize_path(Path.cwd())]
        self.output = CliOutput
        self._services: TestServices | None = None
        self._workspace_service: WorkspaceTestManagerService | None = None

    @property
    def services(self) -> TestServices:
        """Get the shared collaborators, creating them on first use.

        Returns
        -------
        TestServices
            Settings, executor and debug launcher
        """
        if self._services is None:
            self._services = create_default_services()
        return self._services

    @property
    def workspace_service(self) -> WorkspaceTestManagerService:
        if self._workspace_service is None:
            self._workspace_service = WorkspaceTestManagerService(self.services)
        return self._workspace_service


pass_context = click.make_pass_decorator(Context, ensure=True)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Log to the console at DEBUG level")
@click.option(
    "--log-level",
    type=click.Choice([level.value for level in LogLevel]),
    help="Set logging level",
)
@click.option(
    "--workspace",
    "-w",
    "workspaces",
    multiple=True,
    type=click.Path(file_okay=False, path_type=Path),
    help="Workspace root (repeatable, defaults to the current directory)",
)
@click.version_option(version=__version__, prog_name="testdeck")
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    log_level: str | None,
    workspaces: tuple[Path, ...],
) -> None:
    """Testdeck - discover and run pytest and unittest suites."""
    ctx.ensure_object(Context)
    deck_ctx: Context = ctx.obj
    deck_ctx.verbose = verbose
    if workspaces:
        deck_ctx.workspaces = [normalize_path(w) for w in workspaces]

    setup_cli_logging(level=log_level, verbose=verbose)
    logger.info("testdeck starting for %s", [str(w) for w in deck_ctx.workspaces])


cli.add_command(tests.discover)
cli.add_command(tests.run)
cli.add_command(config.group)


@cli.command()
@click.pass_context
def info(ctx: click.Context) -> None:
    """Show testdeck CLI information."""
    from testdeck_cli.core.constants import Icons

    deck_ctx: Context = ctx.obj
    output = deck_ctx.output
    output.section("testdeck CLI Information", Icons.INFO)
    output.plain(f"testdeck CLI v{__version__}")
    output.plain(f"Python executable: {sys.executable}")
    for workspace in deck_ctx.workspaces:
        output.plain(f"Workspace: {workspace}")


def main() -> None:
    """Serve as the main entry point for the CLI."""
    cli(prog_name="testdeck", complete_var="_TESTDECK_COMPLETE")


if __name__ == "__main__":
    main()
