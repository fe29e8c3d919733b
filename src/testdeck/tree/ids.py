"""Stable id derivation shared by all providers.

A stable id is the posix file path relative to the provider root directory,
followed by the qualified test name joined with ``::``::

    tests/test_math.py::TestAdd::test_one
    tests/test_params.py::test_square[2]

Folders and files use their relative path; the root folder is ``.``.
"""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import PurePosixPath

ROOT_ID = "."
SEPARATOR = "::"


def normalize_id(raw: str) -> str:
    """Strip leading ``./`` segments and convert backslashes."""
    text = raw.replace("\\", "/")
    while text.startswith("./"):
        text = text[2:]
    return text or ROOT_ID


def make_id(relfile: str, *qualname: str) -> str:
    """Build the stable id of a file (no qualname) or of a test inside it."""
    base = normalize_id(relfile)
    if not qualname:
        return base
    return SEPARATOR.join([base, *qualname])


def split_id(node_id: str) -> tuple[str, list[str]]:
    """Split a stable id into ``(relfile, qualname parts)``.

    Brackets of a parametrised id are kept intact even if they contain ``::``.
    """
    bracket = node_id.find("[")
    head, tail = (node_id, "") if bracket < 0 else (node_id[:bracket], node_id[bracket:])
    parts = head.split(SEPARATOR)
    if tail:
        parts[-1] += tail
    return parts[0], parts[1:]


def is_descendant(node_id: str, ancestor_id: str) -> bool:
    """Return whether ``node_id`` lies strictly below ``ancestor_id``."""
    if ancestor_id == ROOT_ID:
        return node_id != ROOT_ID
    return node_id.startswith((ancestor_id + SEPARATOR, ancestor_id + "/"))


def parent_folder_ids(relfile: str) -> list[str]:
    """Return the folder ids enclosing ``relfile``, outermost first.

    ``tests/unit/test_a.py`` yields ``["tests", "tests/unit"]``; a file at the
    root yields ``[]``.
    """
    parents = PurePosixPath(normalize_id(relfile)).parents
    return [p.as_posix() for p in reversed(parents) if p.as_posix() != ROOT_ID]


def module_to_relfile(module: str) -> str:
    """``pkg.tests.test_a`` -> ``pkg/tests/test_a.py``."""
    return module.replace(".", "/") + ".py"


def relfile_to_module(relfile: str) -> str:
    path = PurePosixPath(normalize_id(relfile))
    return ".".join(path.with_suffix("").parts)


def dotted_to_stable_id(dotted_id: str, relfile: str, module: str | None = None) -> str:
    """Convert a unittest dotted id into a stable id.

    ``tests.test_a.TestA.test_one`` in ``tests/test_a.py`` becomes
    ``tests/test_a.py::TestA::test_one``.
    """
    module = module or relfile_to_module(relfile)
    remainder = dotted_id
    if module and dotted_id.startswith(module + "."):
        remainder = dotted_id[len(module) + 1 :]
    return make_id(relfile, *remainder.split("."))


def xunit_candidates(
    classname: str,
    name: str,
    file: str | None = None,
) -> Iterator[str]:
    """Yield candidate stable ids for a JUnit ``classname``/``name`` pair.

    The split between module path and class names is ambiguous in JUnit
    output, so every split is produced, longest module first. When the
    report carries a ``file`` attribute the matching split comes first.
    """
    parts = [p for p in classname.split(".") if p]
    seen: set[str] = set()

    if file:
        relfile = normalize_id(file)
        module = relfile_to_module(relfile)
        classes: list[str] = []
        if classname.startswith(module + "."):
            classes = classname[len(module) + 1 :].split(".")
        candidate = make_id(relfile, *classes, name)
        seen.add(candidate)
        yield candidate

    for cut in range(len(parts), 0, -1):
        relfile = "/".join(parts[:cut]) + ".py"
        candidate = make_id(relfile, *parts[cut:], name)
        if candidate not in seen:
            seen.add(candidate)
            yield candidate


def resolve_xunit_id(
    classname: str,
    name: str,
    known_ids: set[str] | frozenset[str] | None = None,
    file: str | None = None,
) -> str:
    """Pick the stable id for a JUnit testcase.

    The first candidate present in ``known_ids`` wins. Without a match the
    module/class split is made at the first capitalised segment.
    """
    if known_ids:
        for candidate in xunit_candidates(classname, name, file):
            if candidate in known_ids:
                return candidate

    if file:
        return next(xunit_candidates(classname, name, file))

    parts = [p for p in classname.split(".") if p]
    cut = next((i for i, part in enumerate(parts) if part[:1].isupper()), len(parts))
    cut = max(cut, 1)
    return make_id("/".join(parts[:cut]) + ".py", *parts[cut:], name)
