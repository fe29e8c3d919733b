"""unittest provider: argument building and listing parsing."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from testdeck.common.errors import ParseError
from testdeck.models.settings import RunMode, TestSettings
from testdeck.models.tree import TestFile, TestFolder, TestFunction, TestNode, TestSuite
from testdeck.providers.args import ArgumentsHelper
from testdeck.scripts import UNITTEST_DISCOVERY_SCRIPT, UNITTEST_LAUNCHER_SCRIPT
from testdeck.tree.ids import (
    ROOT_ID,
    dotted_to_stable_id,
    make_id,
    module_to_relfile,
    normalize_id,
    parent_folder_ids,
    split_id,
)

START_MARKER = "start"

OPTIONS_WITH_ARGUMENTS = frozenset(
    {
        "-s",
        "-p",
        "-t",
        "-k",
        "--start-directory",
        "--pattern",
        "--top-level-directory",
    },
)
FAILFAST_FLAGS = frozenset({"-f", "--failfast"})


@dataclass(frozen=True)
class DiscoveryOptions:
    start_dir: str = "."
    pattern: str = "test*.py"
    top_level_dir: str | None = None
    failfast: bool = False


def _last(values: list[str]) -> str | None:
    return values[-1] if values else None


def parse_discovery_options(args: Sequence[str]) -> DiscoveryOptions:
    """Read ``-s/-p/-t`` (or ``discover`` positionals) from unittest args."""
    helper = ArgumentsHelper
    positional = helper.get_positional_arguments(args, OPTIONS_WITH_ARGUMENTS)
    if positional and positional[0] == "discover":
        positional = positional[1:]

    start = _last(helper.get_option_values(args, "-s")) or _last(
        helper.get_option_values(args, "--start-directory"),
    )
    pattern = _last(helper.get_option_values(args, "-p")) or _last(
        helper.get_option_values(args, "--pattern"),
    )
    top = _last(helper.get_option_values(args, "-t")) or _last(
        helper.get_option_values(args, "--top-level-directory"),
    )

    if start is None and len(positional) > 0:
        start = positional[0]
    if pattern is None and len(positional) > 1:
        pattern = positional[1]
    if top is None and len(positional) > 2:
        top = positional[2]

    return DiscoveryOptions(
        start_dir=start or ".",
        pattern=pattern or "test*.py",
        top_level_dir=top,
        failfast=any(arg in FAILFAST_FLAGS for arg in args),
    )


def _discovery_script_args(options: DiscoveryOptions) -> list[str]:
    args = ["--start-dir", options.start_dir, "--pattern", options.pattern]
    if options.top_level_dir:
        args += ["--top-level-dir", options.top_level_dir]
    return args


class UnittestArgumentsService:
    """Build argument lists for the unittest listing and launcher scripts."""

    def build_args(
        self,
        settings: TestSettings,
        mode: RunMode,
        subset: Sequence[str] | None = None,
        *,
        junit_path: Path | None = None,
        port: int | None = None,
        host: str | None = None,
    ) -> list[str]:
        options = parse_discovery_options(settings.args)
        if mode is RunMode.DISCOVER:
            return [str(UNITTEST_DISCOVERY_SCRIPT), *_discovery_script_args(options)]

        if port is None:
            msg = "port is required to run unittest"
            raise ValueError(msg)
        args = [
            str(UNITTEST_LAUNCHER_SCRIPT),
            *_discovery_script_args(options),
            "--host",
            host or "127.0.0.1",
            "--port",
            str(port),
        ]
        if options.failfast:
            args.append("--failfast")
        for name in subset or ():
            args += ["--test-id", name]
        return args


def _ensure_chain(
    nodes: dict[str, TestNode],
    root: TestFolder,
    relfile: str,
    module: str,
    qualname: list[str],
) -> TestNode:
    """Create (or reuse) folders, the file and suites for one test."""
    parent: TestNode = root
    for folder_id in parent_folder_ids(relfile):
        node = nodes.get(folder_id)
        if node is None:
            package = folder_id.replace("/", ".")
            node = parent.add_child(
                TestFolder(
                    id=folder_id,
                    name=folder_id.rsplit("/", 1)[-1],
                    name_to_run=package,
                    path=folder_id,
                ),
            )
            nodes[folder_id] = node
        parent = node

    file_node = nodes.get(relfile)
    if file_node is None:
        file_node = parent.add_child(
            TestFile(
                id=relfile,
                name=relfile.rsplit("/", 1)[-1],
                name_to_run=module,
                path=relfile,
            ),
        )
        nodes[relfile] = file_node
    parent = file_node

    for depth in range(1, len(qualname)):
        suite_id = make_id(relfile, *qualname[:depth])
        suite = nodes.get(suite_id)
        if suite is None:
            suite = parent.add_child(
                TestSuite(
                    id=suite_id,
                    name=qualname[depth - 1],
                    name_to_run=".".join([module, *qualname[:depth]]),
                    path=relfile,
                ),
            )
            nodes[suite_id] = suite
        parent = suite
    return parent


def parse_unittest_discovery(output: str, root_directory: Path) -> TestFolder:
    """Build a tree from the listing script's output.

    Lines before ``start`` are ignored. Each following line is
    ``<dotted id>\\t<relative file>\\t<line>\\t<module>``; everything after the
    dotted id is optional.

    Raises
    ------
    ParseError
        If the start marker is missing
    """
    lines = output.splitlines()
    try:
        begin = [line.strip() for line in lines].index(START_MARKER)
    except ValueError as e:
        msg = "unittest discovery output has no start marker"
        raise ParseError(msg) from e

    root = TestFolder(
        id=ROOT_ID,
        name=root_directory.name or str(root_directory),
        name_to_run="",
        path=ROOT_ID,
    )
    nodes: dict[str, TestNode] = {ROOT_ID: root}

    for raw in lines[begin + 1 :]:
        if not raw.strip():
            continue
        fields = raw.rstrip("\r\n").split("\t")
        dotted = fields[0].strip()
        module = fields[3].strip() if len(fields) > 3 and fields[3].strip() else None
        if module is None:
            module = dotted.rsplit(".", 2)[0] if dotted.count(".") >= 2 else dotted
        relfile = normalize_id(fields[1]) if len(fields) > 1 and fields[1] else None
        relfile = relfile or module_to_relfile(module)
        line: int | None = None
        if len(fields) > 2 and fields[2].strip():
            try:
                line = int(fields[2])
            except ValueError:
                line = None

        stable_id = dotted_to_stable_id(dotted, relfile, module)
        _, qualname = split_id(stable_id)
        if not qualname:
            msg = f"Cannot derive a test name from {dotted!r}"
            raise ParseError(msg)
        parent = _ensure_chain(nodes, root, relfile, module, qualname)
        # a repeated id is reported by the flattening visitor
        parent.add_child(
            TestFunction(
                id=stable_id,
                name=qualname[-1],
                name_to_run=dotted,
                path=relfile,
                line=line,
            ),
        )
    return root
