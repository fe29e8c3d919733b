"""Unit tests for the testdeck CLI commands."""

import json
from pathlib import Path
from typing import Any

import pytest
import yaml
from click.testing import CliRunner

from testdeck.common.errors import ProcessLaunchError
from testdeck.models.tree import TestStatus
from testdeck_cli import __version__
from testdeck_cli.cli import Context, cli
from testdeck_cli.core.constants import ExitCode

TWO = "tests/test_math.py::TestAdd::test_two"


@pytest.mark.unit
class TestTopLevel:
    """Test the command group itself."""

    def test_version(self, cli_runner: CliRunner) -> None:
        """Test --version prints the package version."""
        result = cli_runner.invoke(cli, ["--version"])

        assert result.exit_code == 0
        assert f"testdeck, version {__version__}" in result.output

    def test_info(self, cli_runner: CliRunner, tmp_path: Path) -> None:
        """Test info lists the selected workspaces."""
        result = cli_runner.invoke(cli, ["-w", str(tmp_path), "info"])

        assert result.exit_code == 0
        assert f"Workspace: {tmp_path.resolve()}" in result.output


@pytest.mark.unit
class TestConfigCommands:
    """Test the config command group against real files."""

    def test_enable_then_show(self, cli_runner: CliRunner, home: Path, tmp_path: Path) -> None:
        """Test enable writes the project file and show reflects it."""
        workspace = tmp_path / "ws"
        workspace.mkdir()

        enabled = cli_runner.invoke(cli, ["-w", str(workspace), "config", "enable", "unittest"])
        shown = cli_runner.invoke(cli, ["-w", str(workspace), "config", "show"])

        assert enabled.exit_code == 0
        assert (workspace / ".testdeck.yaml").exists()
        assert shown.exit_code == 0
        assert "Enabled providers: pytest, unittest" in shown.output

    def test_set_args(self, cli_runner: CliRunner, home: Path, tmp_path: Path) -> None:
        """Test set-args accepts option-like arguments after --."""
        result = cli_runner.invoke(
            cli,
            ["-w", str(tmp_path), "config", "set-args", "pytest", "--", "-q", "tests/"],
        )

        assert result.exit_code == 0
        data = yaml.safe_load((tmp_path / ".testdeck.yaml").read_text())
        assert data["providers"]["pytest"]["args"] == ["-q", "tests/"]

    def test_unknown_provider(self, cli_runner: CliRunner, tmp_path: Path) -> None:
        """Test click rejects unregistered providers."""
        result = cli_runner.invoke(cli, ["-w", str(tmp_path), "config", "enable", "nose"])

        assert result.exit_code == 2
        assert "nose" in result.output


@pytest.mark.unit
class TestDiscoverCommand:
    """Test testdeck discover."""

    def test_prints_tree(
        self,
        cli_runner: CliRunner,
        deck_context: Context,
        fake_executor: Any,
        behaviors: Any,
        discovery_doc_output: str,
        tmp_path: Path,
    ) -> None:
        """Test the discovered tree is printed and reported."""
        fake_executor.push(behaviors.exits(0, stdout=discovery_doc_output))
        report = tmp_path / "report.json"

        result = cli_runner.invoke(
            cli,
            ["discover", "-p", "pytest", "--json-report", str(report)],
            obj=deck_context,
        )

        assert result.exit_code == 0, result.output
        assert "5 test(s) discovered" in result.output
        assert "test_square[3]" in result.output
        data = json.loads(report.read_text())
        assert data[0]["provider"] == "pytest"
        assert data[0]["error"] is None

    def test_discovery_failure(
        self,
        cli_runner: CliRunner,
        deck_context: Context,
        fake_executor: Any,
        behaviors: Any,
    ) -> None:
        """Test a failing collection exits non-zero with its stderr."""
        fake_executor.push(behaviors.exits(3, stderr="ModuleNotFoundError: foo"))

        result = cli_runner.invoke(cli, ["discover", "-p", "pytest"], obj=deck_context)

        assert result.exit_code == ExitCode.GENERAL_ERROR
        assert "Discovery failed" in result.output
        assert "ModuleNotFoundError: foo" in result.output

    @pytest.mark.parametrize(
        "config_overrides",
        [{"providers": {"pytest": {"enabled": False}, "unittest": {"enabled": False}}}],
    )
    def test_no_enabled_providers(self, cli_runner: CliRunner, deck_context: Context) -> None:
        """Test a workspace without enabled providers is a configuration error."""
        result = cli_runner.invoke(cli, ["discover"], obj=deck_context)

        assert result.exit_code == ExitCode.CONFIG_ERROR
        assert "No providers enabled" in result.output


@pytest.mark.unit
class TestRunCommand:
    """Test testdeck run."""

    def test_all_pass(
        self,
        cli_runner: CliRunner,
        deck_context: Context,
        fake_executor: Any,
        behaviors: Any,
        discovery_doc_output: str,
        sample_leaf_ids: list[str],
    ) -> None:
        """Test a green run exits zero."""
        fake_executor.push(behaviors.exits(0, stdout=discovery_doc_output))
        fake_executor.push(
            behaviors.writes_junit([(i, TestStatus.PASS) for i in sample_leaf_ids]),
        )

        result = cli_runner.invoke(cli, ["run", "-p", "pytest"], obj=deck_context)

        assert result.exit_code == 0, result.output
        assert "5 passed" in result.output
        assert "All tests passed" in result.output
        assert deck_context.services.status_updater is not None

    def test_failures_are_listed(
        self,
        cli_runner: CliRunner,
        deck_context: Context,
        fake_executor: Any,
        behaviors: Any,
        discovery_doc_output: str,
        tmp_path: Path,
    ) -> None:
        """Test failing tests are printed with their message and reported."""
        fake_executor.push(behaviors.exits(0, stdout=discovery_doc_output))
        fake_executor.push(behaviors.writes_junit([(TWO, TestStatus.FAIL)]))
        report = tmp_path / "run.json"

        result = cli_runner.invoke(
            cli,
            ["run", "-p", "pytest", "-q", "-t", TWO, "--json-report", str(report)],
            obj=deck_context,
        )

        assert result.exit_code == ExitCode.GENERAL_ERROR
        assert TWO in result.output
        assert "boom" in result.output
        runs = json.loads(report.read_text())[0]["runs"]
        assert runs[0]["summary"]["failed"] == 1

    def test_extra_args_override(
        self,
        cli_runner: CliRunner,
        deck_context: Context,
        fake_executor: Any,
        behaviors: Any,
        discovery_doc_output: str,
    ) -> None:
        """Test arguments after -- replace the configured ones."""
        fake_executor.push(behaviors.exits(0, stdout=discovery_doc_output))
        fake_executor.push(behaviors.writes_junit([]))

        cli_runner.invoke(
            cli,
            ["run", "-p", "pytest", "-q", "--", "-k", "square"],
            obj=deck_context,
        )

        command = fake_executor.calls[-1]["command"]
        assert command[command.index("-k") + 1] == "square"

    def test_rerun_failed(
        self,
        cli_runner: CliRunner,
        deck_context: Context,
        fake_executor: Any,
        behaviors: Any,
        discovery_doc_output: str,
        sample_leaf_ids: list[str],
    ) -> None:
        """Test --rerun-failed runs only the failures a second time."""
        fake_executor.push(behaviors.exits(0, stdout=discovery_doc_output))
        fake_executor.push(
            behaviors.writes_junit(
                [(i, TestStatus.FAIL if i == TWO else TestStatus.PASS) for i in sample_leaf_ids],
            ),
        )
        fake_executor.push(behaviors.writes_junit([(TWO, TestStatus.PASS)]))

        result = cli_runner.invoke(
            cli,
            ["run", "-p", "pytest", "-q", "--rerun-failed"],
            obj=deck_context,
        )

        assert result.exit_code == 0, result.output
        assert "[attempt 2]" in result.output
        assert TWO in fake_executor.calls[-1]["command"]

    def test_launch_error(self, cli_runner: CliRunner, deck_context: Context) -> None:
        """Test a missing interpreter maps to the not-found exit code."""

        class BrokenExecutor:
            async def spawn(self, command, args, cwd, env=None):
                raise ProcessLaunchError(f"No such file: {command}", command=[command])

        deck_context.services.executor = BrokenExecutor()

        result = cli_runner.invoke(cli, ["run", "-p", "pytest"], obj=deck_context)

        assert result.exit_code == ExitCode.NOT_FOUND
        assert "No such file: python3" in result.output
