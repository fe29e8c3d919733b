"""Tree visitors: flattening into an id index and result reset."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass

from testdeck.common.errors import DuplicateIdError
from testdeck.models.tree import (
    TestFile,
    TestFolder,
    TestFunction,
    TestNode,
    TestStatus,
    TestSuite,
)
from testdeck.tree.ids import normalize_id
from testdeck.tree.status import recompute, update_ancestors


class TestVisitor:
    """Pre-order visitor over the canonical tree.

    Subclasses override the ``visit_*`` hooks they care about.
    """

    __test__ = False

    def traverse(self, node: TestNode) -> None:
        for current in node.walk():
            self._dispatch(current)

    def _dispatch(self, node: TestNode) -> None:
        if isinstance(node, TestFunction):
            self.visit_function(node)
        elif isinstance(node, TestSuite):
            self.visit_suite(node)
        elif isinstance(node, TestFile):
            self.visit_file(node)
        elif isinstance(node, TestFolder):
            self.visit_folder(node)

    def visit_folder(self, node: TestFolder) -> None:
        pass

    def visit_file(self, node: TestFile) -> None:
        pass

    def visit_suite(self, node: TestSuite) -> None:
        pass

    def visit_function(self, node: TestFunction) -> None:
        pass


class FlattenedIndex:
    """Stable id to node mapping for one tree.

    A secondary alias map resolves ``name_to_run`` values (pytest node ids,
    unittest dotted ids) reported by child processes.
    """

    def __init__(self) -> None:
        self._nodes: dict[str, TestNode] = {}
        self._aliases: dict[str, TestNode] = {}
        self._folders: list[TestFolder] = []
        self._files: list[TestFile] = []
        self._suites: list[TestSuite] = []
        self._functions: list[TestFunction] = []

    def add(self, node: TestNode) -> None:
        if node.id in self._nodes:
            raise DuplicateIdError(node.id)
        self._nodes[node.id] = node
        if node.name_to_run and node.name_to_run != node.id:
            self._aliases.setdefault(node.name_to_run, node)

        if isinstance(node, TestFunction):
            self._functions.append(node)
        elif isinstance(node, TestSuite):
            self._suites.append(node)
        elif isinstance(node, TestFile):
            self._files.append(node)
        elif isinstance(node, TestFolder):
            self._folders.append(node)

    def get(self, node_id: str) -> TestNode | None:
        return self._nodes.get(node_id)

    def resolve(self, key: str) -> TestNode | None:
        """Look up a node by stable id, then by alias, then by normalized id."""
        node = self._nodes.get(key) or self._aliases.get(key)
        if node is None:
            node = self._nodes.get(normalize_id(key))
        return node

    def leaves_under(self, keys: Iterable[str]) -> list[TestFunction]:
        """Return the unique leaves below the nodes named by ``keys``.

        Unknown keys are ignored.
        """
        found: dict[str, TestFunction] = {}
        for key in keys:
            node = self.resolve(key)
            if node is None:
                continue
            for leaf in node.leaves():
                found.setdefault(leaf.id, leaf)
        return list(found.values())

    @property
    def folders(self) -> list[TestFolder]:
        return list(self._folders)

    @property
    def files(self) -> list[TestFile]:
        return list(self._files)

    @property
    def suites(self) -> list[TestSuite]:
        return list(self._suites)

    @property
    def functions(self) -> list[TestFunction]:
        return list(self._functions)

    def ids(self) -> list[str]:
        return list(self._nodes)

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def __iter__(self) -> Iterator[TestNode]:
        return iter(self._nodes.values())


class TestFlatteningVisitor(TestVisitor):
    """Build a :class:`FlattenedIndex` with one entry per node."""

    def __init__(self) -> None:
        self._index = FlattenedIndex()

    def _dispatch(self, node: TestNode) -> None:
        self._index.add(node)

    def flatten(self, root: TestNode) -> FlattenedIndex:
        """Index every node under ``root``.

        Raises
        ------
        DuplicateIdError
            If two nodes share a stable id
        """
        self._index = FlattenedIndex()
        self.traverse(root)
        return self._index


class TestResultResetVisitor(TestVisitor):
    """Reset statuses before a run.

    Nodes in the named subtrees (or the whole tree) go back to ``NOT_RUN`` and
    lose message, traceback and duration; everything else is untouched apart
    from ancestor aggregates.
    """

    def __init__(self, status: TestStatus = TestStatus.NOT_RUN) -> None:
        self.status = status
        self._reset: list[str] = []

    def _dispatch(self, node: TestNode) -> None:
        node.clear_result(self.status)
        self._reset.append(node.id)

    def reset(
        self,
        root: TestNode,
        subset_ids: Iterable[str] | None = None,
        index: FlattenedIndex | None = None,
    ) -> list[str]:
        """Reset ``subset_ids`` (or everything) and recompute aggregates.

        Returns
        -------
        list[str]
            Ids of the nodes that were reset
        """
        self._reset = []
        if subset_ids is None:
            self.traverse(root)
            recompute(root)
            return list(self._reset)

        if index is None:
            index = TestFlatteningVisitor().flatten(root)
        targets = [node for key in subset_ids if (node := index.resolve(key))]
        for node in targets:
            self.traverse(node)
        for node in targets:
            update_ancestors(node)
        return list(dict.fromkeys(self._reset))


def carry_over_results(old_index: FlattenedIndex | None, new_root: TestNode) -> int:
    """Copy last outcomes from a previous tree onto a freshly discovered one.

    Only leaves whose id survives rediscovery and whose old status is terminal
    are copied; containers are recomputed afterwards.

    Returns
    -------
    int
        Number of leaves that inherited a result
    """
    if old_index is None:
        return 0
    carried = 0
    for leaf in new_root.leaves():
        old = old_index.get(leaf.id)
        if old is None or not old.status.is_terminal:
            continue
        leaf.status = old.status
        leaf.message = old.message
        leaf.traceback = old.traceback
        leaf.duration = old.duration
        carried += 1
    recompute(new_root)
    return carried


@dataclass(frozen=True)
class TestTree:
    """A discovered tree and its index, replaced as one reference."""

    __test__ = False

    root: TestFolder
    index: FlattenedIndex
    provider: str

    @classmethod
    def build(cls, root: TestFolder, provider: str) -> TestTree:
        return cls(root=root, index=TestFlatteningVisitor().flatten(root), provider=provider)

    @property
    def status(self) -> TestStatus:
        return self.root.status

    @property
    def leaves(self) -> list[TestFunction]:
        return self.index.functions
