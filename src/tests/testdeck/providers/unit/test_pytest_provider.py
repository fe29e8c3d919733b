"""Tests for the pytest provider."""

import json
from pathlib import Path

import pytest

from testdeck.common.errors import ParseError
from testdeck.models import RunMode, TestFolder, TestFunction, TestSettings
from testdeck.providers import PYTEST_PROVIDER, get_provider
from testdeck.providers.base import ResultChannel
from testdeck.providers.pytest import PytestArgumentsService, parse_pytest_discovery
from testdeck.scripts import PYTEST_DISCOVERY_SCRIPT


@pytest.fixture
def settings() -> TestSettings:
    return TestSettings(
        provider="pytest",
        args=("tests", "-x", "-k", "smoke", "--junitxml=old.xml", "--tb", "short"),
        root_directory="/ws",
    )


class TestPytestArguments:
    """Test argument building."""

    def test_discovery_drops_run_only_options(self, settings: TestSettings) -> None:
        """Test discovery keeps selection options but drops execution ones."""
        args = PytestArgumentsService().build_args(settings, RunMode.DISCOVER)

        assert args == [
            str(PYTEST_DISCOVERY_SCRIPT),
            "tests",
            "-k",
            "smoke",
            "--rootdir=/ws",
        ]

    def test_run_sets_report_and_rootdir(self, settings: TestSettings) -> None:
        """Test a full run keeps user options and adds the engine's own."""
        args = PytestArgumentsService().build_args(
            settings,
            RunMode.RUN,
            junit_path=Path("/tmp/r.xml"),
        )

        assert args[:2] == ["-m", "pytest"]
        assert "tests" in args
        assert "--junitxml=old.xml" not in args
        assert args[-4:] == ["--rootdir=/ws", "-o", "junit_family=xunit1", "--junit-xml=/tmp/r.xml"]

    def test_subset_replaces_positionals(self, settings: TestSettings) -> None:
        """Test selected node ids replace configured paths."""
        args = PytestArgumentsService().build_args(
            settings,
            RunMode.RUN,
            ["tests/a.py::test_x"],
            junit_path=Path("/tmp/r.xml"),
        )

        assert "tests" not in args
        assert "tests/a.py::test_x" in args
        assert args[2:7] == ["-x", "-k", "smoke", "--tb", "short"]

    def test_run_requires_report_path(self, settings: TestSettings) -> None:
        """Test a run without a report path is a programming error."""
        with pytest.raises(ValueError, match="junit_path"):
            PytestArgumentsService().build_args(settings, RunMode.RUN)


class TestPytestDiscoveryParsing:
    """Test parse_pytest_discovery."""

    def test_builds_tree(self, sample_tree: TestFolder, sample_leaf_ids: list[str]) -> None:
        """Test every test becomes a leaf with its source location."""
        leaves = list(sample_tree.leaves())

        assert [leaf.id for leaf in leaves] == sample_leaf_ids
        assert sample_tree.name == "ws"
        read = leaves[-1]
        assert isinstance(read, TestFunction)
        assert (read.path, read.line, read.markers) == ("tests/unit/test_io.py", 3, ("slow",))
        assert read.parent.id == "tests/unit/test_io.py"
        assert read.name_to_run == read.id

    def test_parametrised_group(self, sample_tree: TestFolder) -> None:
        """Test parametrised cases hang below a function group node."""
        math_file = sample_tree.children[0].children[0]
        group = math_file.children[1]

        assert group.id == "tests/test_math.py::test_square"
        assert [c.name for c in group.children] == ["test_square[2]", "test_square[3]"]

    def test_empty_collection(self) -> None:
        """Test a session without tests yields a bare root."""
        root = parse_pytest_discovery(json.dumps([{"parents": [], "tests": []}]), Path("/ws"))

        assert root.children == []

    @pytest.mark.parametrize(
        "output",
        [
            "not json",
            '"a string"',
            '[{"parents": [{"id": "x"}]}]',
            '[{"tests": [{"id": "a.py::t", "parentid": "missing.py"}]}]',
            '[{"parents": [{"id": "x", "kind": "weird", "parentid": "."}]}]',
        ],
    )
    def test_malformed_output(self, output: str) -> None:
        """Test malformed documents raise ParseError."""
        with pytest.raises(ParseError):
            parse_pytest_discovery(output, Path("/ws"))


class TestRegistry:
    """Test provider lookup."""

    def test_lookup(self) -> None:
        """Test the pytest provider reports through JUnit XML."""
        assert get_provider("pytest") is PYTEST_PROVIDER
        assert PYTEST_PROVIDER.channel is ResultChannel.XUNIT
        assert PYTEST_PROVIDER.select_leaves is False
