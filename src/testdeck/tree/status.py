"""Bottom-up status aggregation."""

from __future__ import annotations

from collections.abc import Iterable

from testdeck.models.results import RunSummary
from testdeck.models.tree import TestFunction, TestNode, TestStatus

STATUS_RANK: dict[TestStatus, int] = {
    TestStatus.ERROR: 5,
    TestStatus.FAIL: 4,
    TestStatus.RUNNING: 3,
    TestStatus.SKIP: 2,
    TestStatus.PASS: 1,
    TestStatus.NOT_RUN: 0,
    TestStatus.DISCOVERED: 0,
    TestStatus.IDLE: 0,
}


def rank(status: TestStatus) -> int:
    return STATUS_RANK[status]


def aggregate(statuses: Iterable[TestStatus]) -> TestStatus:
    """Return the worst status in ``statuses``.

    Rank-0 statuses (and an empty input) aggregate to ``NOT_RUN``.
    """
    worst = TestStatus.NOT_RUN
    for status in statuses:
        if rank(status) > rank(worst):
            worst = status
    return worst


def compute_status(node: TestNode) -> TestStatus:
    """Status a container should display given its children."""
    return aggregate(child.status for child in node.children)


def update_ancestors(node: TestNode) -> list[TestNode]:
    """Recompute every ancestor of ``node`` up to the root.

    Returns
    -------
    list[TestNode]
        Ancestors whose status changed, nearest first
    """
    changed: list[TestNode] = []
    for ancestor in node.ancestors():
        new_status = compute_status(ancestor)
        if new_status is not ancestor.status:
            ancestor.status = new_status
            changed.append(ancestor)
    return changed


def recompute(root: TestNode) -> None:
    """Recompute every container below ``root`` (post-order)."""
    for node in reversed(list(root.walk())):
        if not node.is_leaf:
            node.status = compute_status(node)


def summarize(leaves: Iterable[TestFunction]) -> RunSummary:
    """Count leaf statuses; anything non-terminal counts as not run."""
    counts = {
        TestStatus.PASS: 0,
        TestStatus.FAIL: 0,
        TestStatus.SKIP: 0,
        TestStatus.ERROR: 0,
    }
    not_run = 0
    for leaf in leaves:
        if leaf.status in counts:
            counts[leaf.status] += 1
        else:
            not_run += 1
    return RunSummary(
        passed=counts[TestStatus.PASS],
        failed=counts[TestStatus.FAIL],
        skipped=counts[TestStatus.SKIP],
        errors=counts[TestStatus.ERROR],
        not_run=not_run,
    )
