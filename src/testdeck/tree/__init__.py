"""Tree algorithms: stable ids, status aggregation and visitors."""

from testdeck.tree.status import aggregate, recompute, summarize, update_ancestors
from testdeck.tree.visitors import (
    FlattenedIndex,
    TestFlatteningVisitor,
    TestResultResetVisitor,
    TestTree,
    TestVisitor,
    carry_over_results,
)

__all__ = [
    "FlattenedIndex",
    "TestFlatteningVisitor",
    "TestResultResetVisitor",
    "TestTree",
    "TestVisitor",
    "aggregate",
    "carry_over_results",
    "recompute",
    "summarize",
    "update_ancestors",
]
