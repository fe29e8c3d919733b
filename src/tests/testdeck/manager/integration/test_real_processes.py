"""End-to-end runs against real pytest and unittest interpreters."""

import sys
import textwrap
from pathlib import Path
from typing import Any

import pytest

from testdeck.config.settings import TestConfigSettingsService
from testdeck.execution.process import ProcessExecutor
from testdeck.manager.factory import TestServices, create_test_manager
from testdeck.models.results import RunnerState, RunRequest
from testdeck.models.tree import TestStatus
from testdeck_common.config import default_config

SAMPLE = textwrap.dedent(
    """
    import unittest


    class SampleTest(unittest.TestCase):
        def test_ok(self):
            self.assertEqual(1, 1)

        def test_bad(self):
            self.assertEqual(1, 2)

        @unittest.skip("later")
        def test_skip(self):
            pass
    """,
)


@pytest.fixture
def project(tmp_path: Path) -> Path:
    (tmp_path / "test_sample.py").write_text(SAMPLE)
    return tmp_path


@pytest.fixture
def real_services() -> TestServices:
    def loader(workspace_root: Path) -> dict[str, Any]:
        cfg = default_config()
        cfg["python"] = sys.executable
        cfg["providers"]["unittest"]["enabled"] = True
        return cfg

    executor = ProcessExecutor()
    return TestServices(
        settings=TestConfigSettingsService(config_loader=loader),
        executor=executor,
    )


@pytest.mark.integration
class TestRealProcesses:
    """Discover and run a small project with both providers."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("provider", ["pytest", "unittest"])
    async def test_discover_and_run(
        self,
        provider: str,
        project: Path,
        real_services: TestServices,
    ) -> None:
        """Test the same project yields the same stable ids and statuses."""
        manager = create_test_manager(provider, project, None, real_services)

        tree = await manager.discover_tests()
        assert manager.last_discovery_error is None
        assert sorted(leaf.id for leaf in tree.leaves) == [
            "test_sample.py::SampleTest::test_bad",
            "test_sample.py::SampleTest::test_ok",
            "test_sample.py::SampleTest::test_skip",
        ]

        result = await manager.run_tests(RunRequest(provider=provider, workspace_root=project))

        assert result.state is RunnerState.COMPLETED, result.process_error
        statuses = {leaf.name: leaf.status for leaf in manager.tree.leaves}
        assert statuses == {
            "test_ok": TestStatus.PASS,
            "test_bad": TestStatus.FAIL,
            "test_skip": TestStatus.SKIP,
        }
        bad = manager.tree.index.get("test_sample.py::SampleTest::test_bad")
        assert "AssertionError" in (bad.message or "") + (bad.traceback or "")
        assert manager.tree.status is TestStatus.FAIL

    @pytest.mark.asyncio
    @pytest.mark.parametrize("provider", ["pytest", "unittest"])
    async def test_single_test(
        self,
        provider: str,
        project: Path,
        real_services: TestServices,
    ) -> None:
        """Test a single selected test is the only one executed."""
        manager = create_test_manager(provider, project, None, real_services)
        await manager.discover_tests()

        result = await manager.run_tests(
            RunRequest(
                provider=provider,
                workspace_root=project,
                test_ids=["test_sample.py::SampleTest::test_ok"],
            ),
        )

        assert result.success is True
        assert result.summary.total == 1
        statuses = {leaf.name: leaf.status for leaf in manager.tree.leaves}
        assert statuses["test_bad"] is TestStatus.NOT_RUN
