"""JUnit XML report parsing."""

from __future__ import annotations

import xml.etree.ElementTree as ET
from collections.abc import Collection
from pathlib import Path

from testdeck.common.errors import ParseError
from testdeck.models.results import TestOutcome
from testdeck.models.tree import TestStatus
from testdeck.tree.ids import resolve_xunit_id
from testdeck.tree.status import rank
from testdeck_logging import get_logger

logger = get_logger(__name__)

REPORT_ROOTS = ("testsuites", "testsuite")


def _duration(value: str | None) -> float | None:
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        return None


def _classify(case: ET.Element) -> tuple[TestStatus, ET.Element | None]:
    for tag, status in (
        ("error", TestStatus.ERROR),
        ("failure", TestStatus.FAIL),
        ("skipped", TestStatus.SKIP),
    ):
        element = case.find(tag)
        if element is not None:
            return status, element
    return TestStatus.PASS, None


class XUnitParser:
    """Convert a JUnit XML report into outcomes, in report order."""

    def parse(
        self,
        xml_blob: str | bytes,
        known_ids: Collection[str] | None = None,
    ) -> list[TestOutcome]:
        """Parse a report.

        Parameters
        ----------
        xml_blob : str | bytes
            Report contents
        known_ids : Collection[str], optional
            Stable ids of the current tree, used to disambiguate the
            module/class split of ``classname``

        Returns
        -------
        list[TestOutcome]
            One outcome per test; empty when the report has no testcases

        Raises
        ------
        ParseError
            If the XML is malformed or not a JUnit report
        """
        try:
            root = ET.fromstring(xml_blob)
        except ET.ParseError as e:
            msg = f"Malformed JUnit XML: {e}"
            raise ParseError(msg) from e
        if root.tag not in REPORT_ROOTS:
            msg = f"Unexpected JUnit root element <{root.tag}>"
            raise ParseError(msg)

        ids = frozenset(known_ids or ())
        outcomes: dict[str, TestOutcome] = {}
        for case in root.iter("testcase"):
            name = case.get("name")
            if not name:
                logger.warning("Skipping JUnit testcase without a name")
                continue
            test_id = resolve_xunit_id(
                case.get("classname", ""),
                name,
                ids,
                file=case.get("file"),
            )
            status, detail = _classify(case)
            outcome = TestOutcome(
                test_id=test_id,
                status=status,
                duration=_duration(case.get("time")),
                message=detail.get("message") if detail is not None else None,
                traceback=(detail.text or None) if detail is not None else None,
            )
            previous = outcomes.get(test_id)
            # setup/teardown errors can repeat a testcase
            if previous is None or rank(outcome.status) > rank(previous.status):
                outcomes[test_id] = outcome
        return list(outcomes.values())

    def parse_file(
        self,
        path: Path,
        known_ids: Collection[str] | None = None,
    ) -> list[TestOutcome]:
        """Parse a report file; a missing or empty file yields no outcomes."""
        try:
            data = path.read_bytes()
        except FileNotFoundError:
            logger.debug("JUnit report %s was not written", path)
            return []
        except OSError as e:
            msg = f"Cannot read JUnit report {path}: {e}"
            raise ParseError(msg) from e
        if not data.strip():
            return []
        return self.parse(data, known_ids)
