"""Tests for status aggregation."""

import pytest

from testdeck.models import TestFolder, TestStatus
from testdeck.tree.status import aggregate, recompute, summarize, update_ancestors


class TestAggregate:
    """Test the worst-status rule."""

    @pytest.mark.parametrize(
        ("statuses", "expected"),
        [
            ([], TestStatus.NOT_RUN),
            ([TestStatus.PASS, TestStatus.SKIP], TestStatus.SKIP),
            ([TestStatus.PASS, TestStatus.RUNNING, TestStatus.FAIL], TestStatus.FAIL),
            ([TestStatus.FAIL, TestStatus.ERROR], TestStatus.ERROR),
            ([TestStatus.DISCOVERED, TestStatus.IDLE], TestStatus.NOT_RUN),
            ([TestStatus.PASS, TestStatus.NOT_RUN], TestStatus.PASS),
        ],
    )
    def test_aggregate(self, statuses: list[TestStatus], expected: TestStatus) -> None:
        """Test ranking Error > Fail > Running > Skip > Pass > NotRun."""
        assert aggregate(statuses) is expected


class TestTreeAggregation:
    """Test aggregation over the sample tree."""

    def test_update_ancestors_propagates_to_root(self, sample_tree: TestFolder) -> None:
        """Test a failing leaf turns every ancestor to Fail."""
        leaf = next(n for n in sample_tree.leaves() if n.id.endswith("test_one"))
        leaf.status = TestStatus.FAIL

        changed = update_ancestors(leaf)

        assert [n.id for n in changed] == [
            "tests/test_math.py::TestAdd",
            "tests/test_math.py",
            "tests",
            ".",
        ]
        assert sample_tree.status is TestStatus.FAIL

    def test_update_ancestors_reports_only_changes(self, sample_tree: TestFolder) -> None:
        """Test unchanged ancestors are not reported."""
        leaves = list(sample_tree.leaves())
        leaves[0].status = TestStatus.ERROR
        update_ancestors(leaves[0])
        leaves[1].status = TestStatus.PASS

        assert update_ancestors(leaves[1]) == []

    def test_recompute_whole_tree(self, sample_tree: TestFolder) -> None:
        """Test recompute derives every container from its leaves."""
        for leaf in sample_tree.leaves():
            leaf.status = TestStatus.PASS
        recompute(sample_tree)

        assert all(node.status is TestStatus.PASS for node in sample_tree.walk())

    def test_summarize(self, sample_tree: TestFolder) -> None:
        """Test leaf counting treats non-terminal statuses as not run."""
        leaves = list(sample_tree.leaves())
        leaves[0].status = TestStatus.PASS
        leaves[1].status = TestStatus.FAIL
        leaves[2].status = TestStatus.RUNNING

        summary = summarize(leaves)

        assert (summary.passed, summary.failed, summary.not_run) == (1, 1, 3)
