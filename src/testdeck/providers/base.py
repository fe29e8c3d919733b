"""Provider capability records."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Protocol

from testdeck.models.settings import RunMode, TestSettings
from testdeck.models.tree import TestFolder


class ProviderName(str, Enum):
    """Supported test frameworks."""

    PYTEST = "pytest"
    UNITTEST = "unittest"


class ResultChannel(str, Enum):
    """How a provider's run process reports results."""

    XUNIT = "xunit"
    SOCKET = "socket"


class ArgumentsService(Protocol):
    def build_args(
        self,
        settings: TestSettings,
        mode: RunMode,
        subset: Sequence[str] | None = None,
        *,
        junit_path: Path | None = None,
        port: int | None = None,
        host: str | None = None,
    ) -> list[str]: ...


DiscoveryParser = Callable[[str, Path], TestFolder]


@dataclass(frozen=True)
class Provider:
    """Everything the engine needs to drive one test framework.

    Attributes
    ----------
    name : ProviderName
        Provider tag
    channel : ResultChannel
        Batch JUnit XML file or live socket stream
    arguments : ArgumentsService
        Builds discovery and run argument lists
    parse_discovery : DiscoveryParser
        Turns discovery stdout into a tree rooted at the root directory
    select_leaves : bool
        Whether subsets must be expanded to individual tests before running
    """

    name: ProviderName
    channel: ResultChannel
    arguments: ArgumentsService
    parse_discovery: DiscoveryParser
    select_leaves: bool = False

    @property
    def tag(self) -> str:
        return self.name.value
