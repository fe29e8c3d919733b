"""Collect pytest tests and print them as JSON on stdout.

Usage: python pytest_discovery.py [pytest args...]

pytest's own terminal output is redirected to stderr so stdout carries only
the JSON document. Exit code 5 (no tests collected) is reported as success.
"""

import contextlib
import json
import sys

import pytest

NO_TESTS_COLLECTED = 5


def _split_nodeid(nodeid):
    """Split ``file::A::b[x::y]`` into ``("file", ["A", "b[x::y]"])``."""
    bracket = nodeid.find("[")
    head, tail = (nodeid, "") if bracket < 0 else (nodeid[:bracket], nodeid[bracket:])
    parts = head.split("::")
    if tail:
        parts[-1] += tail
    return parts[0], parts[1:]


class DiscoveryCollector:
    """pytest plugin recording collected items as parents and tests."""

    def __init__(self):
        self.rootdir = None
        self.parents = {}
        self.tests = []
        self.errors = []

    def _add_parent(self, node_id, kind, name, relpath, parentid):
        if node_id not in self.parents:
            self.parents[node_id] = {
                "id": node_id,
                "kind": kind,
                "name": name,
                "relpath": relpath,
                "parentid": parentid,
            }
        return node_id

    def pytest_collectreport(self, report):
        if report.failed:
            self.errors.append(f"{report.nodeid}: {report.longreprtext}")

    def pytest_collection_finish(self, session):
        self.rootdir = str(session.config.rootpath)
        for item in session.items:
            self._add_item(item)

    def _add_item(self, item):
        relfile, qualname = _split_nodeid(item.nodeid)
        parentid = "."
        segments = relfile.split("/")
        for depth in range(1, len(segments)):
            folder = "/".join(segments[:depth])
            parentid = self._add_parent(folder, "folder", segments[depth - 1], folder, parentid)
        parentid = self._add_parent(relfile, "file", segments[-1], relfile, parentid)

        for depth in range(1, len(qualname)):
            suite_id = "::".join([relfile, *qualname[:depth]])
            parentid = self._add_parent(
                suite_id, "suite", qualname[depth - 1], relfile, parentid
            )

        originalname = getattr(item, "originalname", None)
        if originalname and originalname != item.name:
            group_id = "::".join([parentid, originalname])
            parentid = self._add_parent(group_id, "function", originalname, relfile, parentid)

        lineno = item.location[1] if item.location else None
        source = relfile if lineno is None else f"{relfile}:{lineno + 1}"
        self.tests.append(
            {
                "id": item.nodeid,
                "name": item.name,
                "source": source,
                "markers": sorted({mark.name for mark in item.iter_markers()}),
                "parentid": parentid,
            }
        )

    def document(self):
        return [
            {
                "rootid": ".",
                "root": self.rootdir,
                "parents": list(self.parents.values()),
                "tests": self.tests,
            }
        ]


def main(argv):
    collector = DiscoveryCollector()
    with contextlib.redirect_stdout(sys.stderr):
        exit_code = int(
            pytest.main(
                ["--collect-only", "-q", "-p", "no:cacheprovider", *argv],
                plugins=[collector],
            )
        )
    for error in collector.errors:
        sys.stderr.write(error + "\n")
    if exit_code == NO_TESTS_COLLECTED:
        exit_code = 0
    sys.stdout.write(json.dumps(collector.document()))
    sys.stdout.write("\n")
    sys.stdout.flush()
    return exit_code


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
