"""Configuration commands for the testdeck CLI."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click
import yaml

from testdeck.providers import provider_names
from testdeck_cli.core.constants import Icons
from testdeck_cli.core.decorators import handle_exceptions
from testdeck_logging import get_cli_logger

if TYPE_CHECKING:
    from testdeck_cli.cli import Context

logger = get_cli_logger(__name__)

provider_argument = click.argument("provider", type=click.Choice(provider_names()))


@click.group(name="config")
def group() -> None:
    """Manage per-workspace provider settings."""


@group.command()
@click.pass_context
@handle_exceptions
def show(ctx: click.Context) -> None:
    """Show the effective configuration of each workspace."""
    deck_ctx: Context = ctx.obj
    output = deck_ctx.output
    settings = deck_ctx.services.settings
    for workspace in deck_ctx.workspaces:
        output.section(f"Configuration for {workspace}", Icons.CONFIG)
        output.plain(yaml.safe_dump(settings.load(workspace), sort_keys=True).rstrip())
        enabled = settings.enabled_providers(workspace)
        output.plain(f"Enabled providers: {', '.join(enabled) or 'none'}")


@group.command()
@provider_argument
@click.pass_context
@handle_exceptions
def enable(ctx: click.Context, provider: str) -> None:
    """Enable PROVIDER in each workspace."""
    deck_ctx: Context = ctx.obj
    for workspace in deck_ctx.workspaces:
        path = deck_ctx.services.settings.enable(workspace, provider)
        deck_ctx.output.success(f"{Icons.SUCCESS} Enabled {provider} in {path}")


@group.command()
@provider_argument
@click.pass_context
@handle_exceptions
def disable(ctx: click.Context, provider: str) -> None:
    """Disable PROVIDER in each workspace."""
    deck_ctx: Context = ctx.obj
    for workspace in deck_ctx.workspaces:
        path = deck_ctx.services.settings.disable(workspace, provider)
        deck_ctx.output.success(f"{Icons.SUCCESS} Disabled {provider} in {path}")


@group.command(name="set-args", context_settings={"ignore_unknown_options": True})
@provider_argument
@click.argument("args", nargs=-1, type=click.UNPROCESSED)
@click.pass_context
@handle_exceptions
def set_args(ctx: click.Context, provider: str, args: tuple[str, ...]) -> None:
    """Replace the arguments PROVIDER is invoked with.

    \b
    Example:
        testdeck config set-args pytest -- -q tests/
    """
    deck_ctx: Context = ctx.obj
    for workspace in deck_ctx.workspaces:
        path = deck_ctx.services.settings.update_args(workspace, provider, args)
        logger.debug("Arguments for %s: %s", provider, list(args))
        deck_ctx.output.success(f"{Icons.SUCCESS} Updated {provider} arguments in {path}")
