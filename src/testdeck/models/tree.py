"""Canonical test tree shared by every provider."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar


class TestStatus(str, Enum):
    """Status of a node in the test tree."""

    __test__ = False

    NOT_RUN = "not_run"
    DISCOVERED = "discovered"
    RUNNING = "running"
    IDLE = "idle"
    PASS = "pass"
    FAIL = "fail"
    SKIP = "skip"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL_STATUSES

    @property
    def is_failure(self) -> bool:
        return self in (TestStatus.FAIL, TestStatus.ERROR)


_TERMINAL_STATUSES = frozenset(
    {TestStatus.PASS, TestStatus.FAIL, TestStatus.SKIP, TestStatus.ERROR},
)


class NodeKind(str, Enum):
    """Kind of tree node."""

    FOLDER = "folder"
    FILE = "file"
    SUITE = "suite"
    FUNCTION = "function"


@dataclass(eq=False)
class TestNode:
    """A node of the canonical test tree.

    Nodes are owned by exactly one parent. ``id`` is the stable id and
    ``name_to_run`` the identifier the provider's framework accepts to select
    the node.
    """

    __test__ = False

    kind: ClassVar[NodeKind]

    id: str
    name: str
    name_to_run: str = ""
    path: str = ""
    status: TestStatus = TestStatus.NOT_RUN
    message: str | None = None
    traceback: str | None = None
    duration: float | None = None
    parent: TestNode | None = field(default=None, repr=False)
    children: list[TestNode] = field(default_factory=list, repr=False)

    @property
    def is_leaf(self) -> bool:
        return False

    def add_child(self, child: TestNode) -> TestNode:
        """Attach ``child`` to this node.

        Raises
        ------
        ValueError
            If the child already belongs to another node, or if attaching it
            would create a cycle
        """
        if child.parent is not None:
            msg = f"Node {child.id!r} already has parent {child.parent.id!r}"
            raise ValueError(msg)
        if child is self or any(a is child for a in self.ancestors()):
            msg = f"Adding {child.id!r} under {self.id!r} would create a cycle"
            raise ValueError(msg)
        child.parent = self
        self.children.append(child)
        return child

    def walk(self) -> Iterator[TestNode]:
        """Yield this node and its descendants in pre-order."""
        stack: list[TestNode] = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def ancestors(self) -> Iterator[TestNode]:
        node = self.parent
        while node is not None:
            yield node
            node = node.parent

    def leaves(self) -> Iterator[TestFunction]:
        for node in self.walk():
            if isinstance(node, TestFunction):
                yield node

    def clear_result(self, status: TestStatus = TestStatus.NOT_RUN) -> None:
        self.status = status
        self.message = None
        self.traceback = None
        self.duration = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "kind": self.kind.value,
            "status": self.status.value,
        }
        if self.duration is not None:
            data["duration"] = self.duration
        if self.message:
            data["message"] = self.message
        if self.children:
            data["children"] = [child.to_dict() for child in self.children]
        return data


@dataclass(eq=False)
class TestFolder(TestNode):
    """Directory or package level container; the tree root is a folder."""

    kind: ClassVar[NodeKind] = NodeKind.FOLDER


@dataclass(eq=False)
class TestFile(TestNode):
    kind: ClassVar[NodeKind] = NodeKind.FILE


@dataclass(eq=False)
class TestSuite(TestNode):
    """Test class or parametrised function group."""

    kind: ClassVar[NodeKind] = NodeKind.SUITE

    line: int | None = None


@dataclass(eq=False)
class TestFunction(TestNode):
    """A single runnable test."""

    kind: ClassVar[NodeKind] = NodeKind.FUNCTION

    line: int | None = None
    markers: tuple[str, ...] = ()

    @property
    def is_leaf(self) -> bool:
        return True

    def add_child(self, child: TestNode) -> TestNode:
        msg = f"Test function {self.id!r} cannot have children"
        raise ValueError(msg)

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["path"] = self.path
        if self.line is not None:
            data["line"] = self.line
        if self.traceback:
            data["traceback"] = self.traceback
        return data
