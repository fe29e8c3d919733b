"""Rendering of trees, status lines and run summaries."""

from __future__ import annotations

import click

from testdeck.models import RunResult, RunSummary, TestNode, TestStatus
from testdeck_cli.core.constants import Icons

STATUS_STYLE: dict[TestStatus, tuple[str, str | None]] = {
    TestStatus.PASS: (Icons.PASS, "green"),
    TestStatus.FAIL: (Icons.FAIL, "red"),
    TestStatus.ERROR: (Icons.FAIL, "red"),
    TestStatus.SKIP: (Icons.SKIPPED, "yellow"),
    TestStatus.RUNNING: (Icons.RUNNING, "cyan"),
}


def status_label(status: TestStatus) -> str:
    icon, color = STATUS_STYLE.get(status, (Icons.NOT_RUN, None))
    return click.style(f"{icon} {status.value}", fg=color)


def render_tree(root: TestNode, max_depth: int | None = None) -> list[str]:
    """Render ``root`` as indented lines, one per node."""
    lines: list[str] = []
    stack: list[tuple[TestNode, int]] = [(root, 0)]
    while stack:
        node, depth = stack.pop()
        if max_depth is not None and depth > max_depth:
            continue
        suffix = ""
        if node.is_leaf and node.duration is not None:
            suffix = f" ({node.duration:.2f}s)"
        lines.append(f"{'  ' * depth}{node.name}  {status_label(node.status)}{suffix}")
        stack.extend((child, depth + 1) for child in reversed(node.children))
    return lines


def format_summary(summary: RunSummary) -> str:
    parts = [
        click.style(f"{summary.passed} passed", fg="green"),
        click.style(f"{summary.failed} failed", fg="red" if summary.failed else None),
        click.style(f"{summary.errors} errors", fg="red" if summary.errors else None),
        f"{summary.skipped} skipped",
        f"{summary.not_run} not run",
    ]
    return ", ".join(parts)


def format_result(provider: str, result: RunResult) -> str:
    return (
        f"{provider}: {result.state.value} in {result.duration:.2f}s | "
        f"{format_summary(result.summary)}"
    )
