"""Tests for JUnit XML parsing."""

from pathlib import Path

import pytest

from testdeck.common.errors import ParseError
from testdeck.models import TestStatus
from testdeck.results.xunit import XUnitParser

REPORT = """<?xml version="1.0" encoding="utf-8"?>
<testsuites>
  <testsuite name="pytest" tests="4">
    <testcase classname="tests.test_math.TestAdd" name="test_one"
              file="tests/test_math.py" time="0.012"/>
    <testcase classname="tests.test_math.TestAdd" name="test_two"
              file="tests/test_math.py" time="0.020">
      <failure message="assert 1 == 2">def test_two():
&gt;       assert 1 == 2</failure>
    </testcase>
    <testcase classname="tests.test_math" name="test_square[2]" time="0.001">
      <skipped message="not today"/>
    </testcase>
    <testcase classname="tests.unit.test_io" name="test_read" time="bad">
      <error message="fixture 'db' not found">E fixture 'db' not found</error>
    </testcase>
  </testsuite>
</testsuites>
"""


class TestXUnitParser:
    """Test XUnitParser.parse."""

    def test_statuses_and_details(self) -> None:
        """Test pass, fail, skip and error cases map onto statuses."""
        outcomes = XUnitParser().parse(REPORT)

        assert [(o.test_id, o.status) for o in outcomes] == [
            ("tests/test_math.py::TestAdd::test_one", TestStatus.PASS),
            ("tests/test_math.py::TestAdd::test_two", TestStatus.FAIL),
            ("tests/test_math.py::test_square[2]", TestStatus.SKIP),
            ("tests/unit/test_io.py::test_read", TestStatus.ERROR),
        ]
        failed = outcomes[1]
        assert failed.message == "assert 1 == 2"
        assert "assert 1 == 2" in failed.traceback
        assert failed.duration == pytest.approx(0.020)
        assert outcomes[3].duration is None

    def test_known_ids_disambiguate(self) -> None:
        """Test a known id wins for an ambiguous classname."""
        report = (
            '<testsuite><testcase classname="pkg.checks.Case" name="test_x"/></testsuite>'
        )
        known = {"pkg/checks/Case.py::test_x"}

        outcomes = XUnitParser().parse(report, known)

        assert outcomes[0].test_id == "pkg/checks/Case.py::test_x"

    def test_repeated_testcase_keeps_worst(self) -> None:
        """Test a teardown error reported after a pass wins."""
        report = (
            "<testsuite>"
            '<testcase classname="tests.test_a" name="test_x" file="tests/test_a.py"/>'
            '<testcase classname="tests.test_a" name="test_x" file="tests/test_a.py">'
            '<error message="teardown failed"/></testcase>'
            "</testsuite>"
        )

        outcomes = XUnitParser().parse(report)

        assert len(outcomes) == 1
        assert outcomes[0].status is TestStatus.ERROR

    def test_zero_testcases(self) -> None:
        """Test a report without testcases yields no outcomes."""
        assert XUnitParser().parse('<testsuites><testsuite tests="0"/></testsuites>') == []

    @pytest.mark.parametrize("blob", ["<testsuites><testsuite>", "<html></html>"])
    def test_malformed(self, blob: str) -> None:
        """Test truncated XML and foreign roots raise ParseError."""
        with pytest.raises(ParseError):
            XUnitParser().parse(blob)


class TestParseFile:
    """Test XUnitParser.parse_file."""

    def test_missing_and_empty_files(self, tmp_path: Path) -> None:
        """Test missing or empty reports mean no outcomes."""
        empty = tmp_path / "empty.xml"
        empty.write_text("  \n")

        assert XUnitParser().parse_file(tmp_path / "missing.xml") == []
        assert XUnitParser().parse_file(empty) == []

    def test_reads_report(self, tmp_path: Path) -> None:
        """Test a report on disk is parsed."""
        path = tmp_path / "report.xml"
        path.write_text(REPORT, encoding="utf-8")

        assert len(XUnitParser().parse_file(path)) == 4
