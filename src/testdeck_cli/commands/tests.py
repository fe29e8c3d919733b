"""Discovery and run commands.

Both commands act on every workspace given with ``--workspace`` and on every
enabled provider unless ``--provider`` narrows the selection.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING, Any

import click

from testdeck.manager import TestManager, WorkspaceTestManagerService
from testdeck.models import (
    RunRequest,
    RunResult,
    StatusUpdateEvent,
    TestEvent,
    TestStatus,
)
from testdeck.providers import provider_names
from testdeck.status.updater import StatusUpdaterService
from testdeck_cli.core.constants import ExitCode, Icons
from testdeck_cli.core.decorators import handle_exceptions
from testdeck_cli.core.formatting import format_result, render_tree, status_label
from testdeck_common.io import safe_write_json
from testdeck_logging import get_cli_logger

if TYPE_CHECKING:
    from testdeck_cli.cli import Context

logger = get_cli_logger(__name__)

provider_option = click.option(
    "--provider",
    "-p",
    "providers",
    multiple=True,
    type=click.Choice(provider_names()),
    help="Provider to use (repeatable, defaults to every enabled provider)",
)


def _select_managers(
    deck_ctx: Context,
    providers: tuple[str, ...],
) -> list[TestManager]:
    service = deck_ctx.workspace_service
    managers: list[TestManager] = []
    for workspace in deck_ctx.workspaces:
        if providers:
            managers.extend(service.get_manager(workspace, p) for p in providers)
        else:
            managers.extend(service.get_managers(workspace).values())
    return managers


def _run_async(deck_ctx: Context, coro_factory: Callable[[], Any]) -> Any:
    async def main() -> Any:
        try:
            return await coro_factory()
        finally:
            await deck_ctx.workspace_service.dispose()

    return asyncio.run(main())


class ProgressPrinter:
    """Echo each test as soon as it reaches a terminal status."""

    def __init__(self, managers: list[TestManager]):
        self._managers = {(m.workspace, m.provider.tag): m for m in managers}
        self._reported: set[tuple[str, str, str]] = set()

    def __call__(self, event: TestEvent) -> None:
        if not isinstance(event, StatusUpdateEvent):
            return
        manager = self._managers.get(event.key)
        if manager is None or manager.tree is None:
            return
        for test_id in event.test_ids:
            node = manager.tree.index.get(test_id)
            if node is None or not node.is_leaf or not node.status.is_terminal:
                continue
            seen = (*event.key, test_id)
            if seen in self._reported:
                continue
            self._reported.add(seen)
            click.echo(f"{status_label(node.status)}  {node.id}")


@click.command()
@provider_option
@click.option("--tree/--no-tree", "show_tree", default=True, help="Print the test tree")
@click.option("--json-report", type=click.Path(dir_okay=False, path_type=Path))
@click.pass_context
@handle_exceptions
def discover(
    ctx: click.Context,
    providers: tuple[str, ...],
    show_tree: bool,
    json_report: Path | None,
) -> None:
    """Discover tests and print the resulting tree."""
    deck_ctx: Context = ctx.obj
    output = deck_ctx.output
    managers = _select_managers(deck_ctx, providers)
    if not managers:
        output.warning("No providers enabled; use `testdeck config enable <provider>`")
        ctx.exit(ExitCode.CONFIG_ERROR)

    async def discover_all() -> list[TestManager]:
        await asyncio.gather(*(m.discover_tests() for m in managers))
        return managers

    _run_async(deck_ctx, discover_all)

    failed = False
    report: list[dict[str, Any]] = []
    for manager in managers:
        output.section(f"{manager.provider.tag} @ {manager.workspace}", Icons.TEST)
        error = manager.last_discovery_error
        if error is not None:
            failed = True
            output.error(f"Discovery failed: {error.message}")
            if error.stderr:
                output.plain(error.stderr.rstrip(), err=True)
        tree = manager.tree
        if tree is not None:
            output.plain(f"{len(tree.leaves)} test(s) discovered")
            if show_tree:
                for line in render_tree(tree.root):
                    output.plain(line)
        report.append(
            {
                "workspace": manager.workspace,
                "provider": manager.provider.tag,
                "error": error.message if error else None,
                "tree": tree.root.to_dict() if tree else None,
            },
        )

    if json_report is not None:
        safe_write_json(json_report, report)
        output.plain(f"{Icons.REPORT} Report written to {json_report}")
    if failed:
        ctx.exit(ExitCode.GENERAL_ERROR)


@click.command(context_settings={"ignore_unknown_options": True})
@provider_option
@click.option(
    "--test-id",
    "-t",
    "test_ids",
    multiple=True,
    help="Stable test id or runnable name to run (repeatable)",
)
@click.option("--debug", is_flag=True, help="Run under debugpy and wait for a client")
@click.option(
    "--rerun-failed",
    is_flag=True,
    help="Run the failed and errored tests once more after the first run",
)
@click.option("--json-report", type=click.Path(dir_okay=False, path_type=Path))
@click.option("--quiet", "-q", is_flag=True, help="Do not print per-test progress")
@click.argument("extra_args", nargs=-1, type=click.UNPROCESSED)
@click.pass_context
@handle_exceptions
def run(
    ctx: click.Context,
    providers: tuple[str, ...],
    test_ids: tuple[str, ...],
    debug: bool,
    rerun_failed: bool,
    json_report: Path | None,
    quiet: bool,
    extra_args: tuple[str, ...],
) -> None:
    """Run tests and report the results.

    \b
    Arguments after `--` replace the provider's configured arguments:
        testdeck run -p pytest -- -x -k smoke
    """
    deck_ctx: Context = ctx.obj
    output = deck_ctx.output
    updater = StatusUpdaterService()
    deck_ctx.services.status_updater = updater
    managers = _select_managers(deck_ctx, providers)
    if not managers:
        output.warning("No providers enabled; use `testdeck config enable <provider>`")
        ctx.exit(ExitCode.CONFIG_ERROR)
    if not quiet:
        updater.subscribe(ProgressPrinter(managers))

    def request(manager: TestManager, failed_only: bool = False) -> RunRequest:
        return RunRequest(
            provider=manager.provider.tag,
            workspace_root=manager.workspace_root,
            test_ids=frozenset(test_ids) if test_ids else None,
            debug=debug,
            args_override=extra_args,
            failed_only=failed_only,
        )

    async def run_one(manager: TestManager) -> list[RunResult]:
        results = [await manager.run_tests(request(manager))]
        if rerun_failed and results[0].summary.failed + results[0].summary.errors:
            logger.info("Re-running failed tests for %s", manager.provider.tag)
            results.append(await manager.run_tests(request(manager, failed_only=True)))
        updater.flush()
        return results

    async def run_all() -> list[list[RunResult]]:
        return list(await asyncio.gather(*(run_one(m) for m in managers)))

    all_results = _run_async(deck_ctx, run_all)
    updater.close()

    ok = True
    report: list[dict[str, Any]] = []
    for manager, results in zip(managers, all_results):
        output.section(f"{manager.provider.tag} @ {manager.workspace}", Icons.TEST)
        final = results[-1]
        for attempt, result in enumerate(results, start=1):
            prefix = f"[attempt {attempt}] " if len(results) > 1 else ""
            output.plain(prefix + format_result(manager.provider.tag, result))
        if final.process_error:
            output.warning(final.process_error)
        if final.incomplete is not None:
            output.warning(
                f"{len(final.incomplete.test_ids)} test(s) did not complete",
            )
        if manager.tree is not None:
            for leaf in manager.tree.leaves:
                if leaf.status in (TestStatus.FAIL, TestStatus.ERROR):
                    output.plain(f"{status_label(leaf.status)}  {leaf.id}")
                    if leaf.message:
                        output.plain(f"    {leaf.message}")
        ok = ok and final.success
        report.append(
            {
                "workspace": manager.workspace,
                "provider": manager.provider.tag,
                "runs": [r.to_dict() for r in results],
            },
        )

    if json_report is not None:
        safe_write_json(json_report, report)
        output.plain(f"{Icons.REPORT} Report written to {json_report}")
    if not ok:
        ctx.exit(ExitCode.GENERAL_ERROR)
    output.success(f"{Icons.SUCCESS} All tests passed")
