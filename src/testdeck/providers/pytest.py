"""pytest provider: argument building and discovery output parsing."""

from __future__ import annotations

import json
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from testdeck.common.errors import ParseError
from testdeck.models.settings import RunMode, TestSettings
from testdeck.models.tree import TestFile, TestFolder, TestFunction, TestNode, TestSuite
from testdeck.providers.args import ArgumentsHelper
from testdeck.scripts import PYTEST_DISCOVERY_SCRIPT
from testdeck.tree.ids import ROOT_ID, normalize_id

OPTIONS_WITH_ARGUMENTS = frozenset(
    {
        "-c",
        "-k",
        "-m",
        "-n",
        "-o",
        "-p",
        "-r",
        "-W",
        "--basetemp",
        "--confcutdir",
        "--cov",
        "--cov-config",
        "--cov-report",
        "--deselect",
        "--dist",
        "--durations",
        "--ignore",
        "--ignore-glob",
        "--import-mode",
        "--junit-prefix",
        "--junit-xml",
        "--junitxml",
        "--log-cli-level",
        "--log-file",
        "--log-level",
        "--maxfail",
        "--numprocesses",
        "--override-ini",
        "--rootdir",
        "--tb",
        "--timeout",
    },
)

# Options that only make sense when tests actually execute.
RUN_ONLY_WITH_ARGUMENTS = frozenset(
    {
        "-n",
        "--cov",
        "--cov-config",
        "--cov-report",
        "--dist",
        "--durations",
        "--junit-prefix",
        "--junit-xml",
        "--junitxml",
        "--maxfail",
        "--numprocesses",
        "--rootdir",
        "--tb",
        "--timeout",
    },
)
RUN_ONLY_FLAGS = frozenset(
    {
        "-x",
        "--exitfirst",
        "--failed-first",
        "--ff",
        "--last-failed",
        "--lf",
        "--no-cov",
        "--pdb",
        "--setup-only",
        "--setup-show",
        "--stepwise",
        "--sw",
        "--trace",
    },
)

# Options the engine sets itself when running.
ENGINE_WITH_ARGUMENTS = frozenset({"--junit-xml", "--junitxml", "--rootdir"})
ENGINE_FLAGS = frozenset({"--collect-only", "--co"})


class PytestArgumentsService:
    """Build pytest argument lists for discovery and runs."""

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
        """Return the interpreter arguments for ``mode``.

        Parameters
        ----------
        settings : TestSettings
            Resolved settings; ``root_directory`` is absolute
        mode : RunMode
            Discovery or run
        subset : Sequence[str], optional
            pytest node ids replacing the configured positional paths
        junit_path : Path, optional
            Report destination, required for runs

        Returns
        -------
        list[str]
            Arguments to pass after the interpreter
        """
        args = list(settings.args)
        rootdir = f"--rootdir={settings.root_directory}"

        if mode is RunMode.DISCOVER:
            filtered = ArgumentsHelper.filter_arguments(
                args,
                RUN_ONLY_WITH_ARGUMENTS,
                RUN_ONLY_FLAGS | ENGINE_FLAGS,
            )
            return [str(PYTEST_DISCOVERY_SCRIPT), *filtered, rootdir]

        if junit_path is None:
            msg = "junit_path is required to run pytest"
            raise ValueError(msg)
        filtered = ArgumentsHelper.filter_arguments(
            args,
            ENGINE_WITH_ARGUMENTS,
            ENGINE_FLAGS,
        )
        if subset:
            filtered = ArgumentsHelper.remove_positional_arguments(
                filtered,
                OPTIONS_WITH_ARGUMENTS,
            )
            filtered.extend(subset)
        return [
            "-m",
            "pytest",
            *filtered,
            rootdir,
            "-o",
            "junit_family=xunit1",
            f"--junit-xml={junit_path}",
        ]


def _make_parent(kind: str, node_id: str, name: str, relpath: str) -> TestNode:
    if kind == "folder":
        return TestFolder(id=node_id, name=name, name_to_run=node_id, path=relpath)
    if kind == "file":
        return TestFile(id=node_id, name=name, name_to_run=node_id, path=relpath)
    if kind in ("suite", "function"):
        return TestSuite(id=node_id, name=name, name_to_run=node_id, path=relpath)
    msg = f"Unknown pytest discovery node kind: {kind!r}"
    raise ParseError(msg, details={"id": node_id})


def _parse_source(source: str) -> tuple[str, int | None]:
    relfile, sep, line = source.rpartition(":")
    if not sep:
        return normalize_id(source), None
    try:
        return normalize_id(relfile), int(line)
    except ValueError:
        return normalize_id(source), None


def parse_pytest_discovery(output: str, root_directory: Path) -> TestFolder:
    """Build a tree from the discovery script's JSON document.

    Raises
    ------
    ParseError
        If the output is not the expected JSON shape
    """
    try:
        sessions: Any = json.loads(output)
    except json.JSONDecodeError as e:
        msg = f"Invalid pytest discovery output: {e}"
        raise ParseError(msg) from e
    if isinstance(sessions, dict):
        sessions = [sessions]
    if not isinstance(sessions, list):
        msg = "pytest discovery output must be a JSON list"
        raise ParseError(msg)

    root = TestFolder(
        id=ROOT_ID,
        name=root_directory.name or str(root_directory),
        name_to_run=ROOT_ID,
        path=ROOT_ID,
    )
    nodes: dict[str, TestNode] = {ROOT_ID: root}
    links: list[tuple[TestNode, str]] = []

    try:
        for session in sessions:
            for parent in session.get("parents", []):
                node_id = normalize_id(parent["id"])
                if node_id in nodes:
                    continue
                node = _make_parent(
                    parent["kind"],
                    node_id,
                    parent.get("name") or node_id,
                    normalize_id(parent.get("relpath") or node_id),
                )
                nodes[node_id] = node
                links.append((node, normalize_id(parent.get("parentid") or ROOT_ID)))

            for test in session.get("tests", []):
                node_id = normalize_id(test["id"])
                relfile, line = _parse_source(test.get("source", ""))
                leaf = TestFunction(
                    id=node_id,
                    name=test.get("name") or node_id,
                    name_to_run=node_id,
                    path=relfile,
                    line=line,
                    markers=tuple(test.get("markers", [])),
                )
                # a repeated id is reported by the flattening visitor
                nodes.setdefault(node_id, leaf)
                links.append((leaf, normalize_id(test.get("parentid") or ROOT_ID)))
    except (KeyError, TypeError, AttributeError) as e:
        msg = f"Malformed pytest discovery output: {e!r}"
        raise ParseError(msg) from e

    for node, parent_id in links:
        parent_node = nodes.get(parent_id)
        if parent_node is None:
            msg = f"Node {node.id!r} references unknown parent {parent_id!r}"
            raise ParseError(msg)
        try:
            parent_node.add_child(node)
        except ValueError as e:
            raise ParseError(str(e)) from e
    return root
