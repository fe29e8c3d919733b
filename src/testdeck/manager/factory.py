"""Factories wiring providers and collaborators into managers."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from testdeck.config.settings import TestConfigSettingsService
from testdeck.execution.debug import DebugLauncher
from testdeck.execution.process import ProcessExecutor
from testdeck.manager.test_manager import TestManager
from testdeck.providers import get_provider
from testdeck.providers.base import ProviderName
from testdeck.status.updater import StatusUpdaterService
from testdeck_common.path import normalize_path

if TYPE_CHECKING:
    from testdeck.manager.service import TestManagerService


@dataclass
class TestServices:
    """Collaborators shared by every manager of a process."""

    __test__ = False

    settings: TestConfigSettingsService = field(default_factory=TestConfigSettingsService)
    executor: ProcessExecutor = field(default_factory=ProcessExecutor)
    debug_launcher: DebugLauncher | None = None
    status_updater: StatusUpdaterService | None = None

    def __post_init__(self) -> None:
        if self.debug_launcher is None:
            self.debug_launcher = DebugLauncher(self.executor)


def create_default_services(
    status_updater: StatusUpdaterService | None = None,
) -> TestServices:
    """Build the default collaborators."""
    executor = ProcessExecutor()
    return TestServices(
        settings=TestConfigSettingsService(),
        executor=executor,
        debug_launcher=DebugLauncher(executor),
        status_updater=status_updater,
    )


def create_test_manager(
    provider: str | ProviderName,
    workspace_root: Path,
    root_directory: Path | None,
    services: TestServices,
) -> TestManager:
    """Construct the manager for one (workspace, provider) pair.

    ``root_directory`` defaults to the provider's configured root directory.

    Raises
    ------
    UnknownProviderError
        If ``provider`` is not registered
    """
    record = get_provider(provider)
    workspace = normalize_path(workspace_root)
    if root_directory is None:
        settings = services.settings.get_settings(workspace, record.tag)
        root_directory = Path(settings.root_directory)
    return TestManager(record, workspace, normalize_path(root_directory), services)


def create_test_manager_service(
    workspace_root: Path,
    services: TestServices,
) -> TestManagerService:
    """Entry point for UI layers: the manager service of one workspace."""
    from testdeck.manager.service import TestManagerService

    return TestManagerService(normalize_path(workspace_root), services)
