"""Caching lookup of managers per workspace and provider."""

from __future__ import annotations

import asyncio
import threading
from collections.abc import Callable
from pathlib import Path

from testdeck.manager.factory import (
    TestServices,
    create_test_manager,
    create_test_manager_service,
)
from testdeck.manager.test_manager import TestManager
from testdeck.providers import get_provider
from testdeck_common.path import normalize_path
from testdeck_logging import get_logger

logger = get_logger(__name__)

ManagerFactory = Callable[[str, Path, Path | None, TestServices], TestManager]


class TestManagerService:
    """Managers of one workspace, created lazily and cached per provider."""

    __test__ = False

    def __init__(
        self,
        workspace_root: Path,
        services: TestServices,
        manager_factory: ManagerFactory = create_test_manager,
    ):
        self.workspace_root = normalize_path(workspace_root)
        self.services = services
        self._factory = manager_factory
        self._managers: dict[str, TestManager] = {}
        self._detach: dict[str, Callable[[], None]] = {}
        self._lock = threading.RLock()

    def get_manager(self, provider: str) -> TestManager:
        """Return (creating on first use) the manager for ``provider``.

        Raises
        ------
        UnknownProviderError
            If ``provider`` is not registered
        """
        tag = get_provider(provider).tag
        with self._lock:
            manager = self._managers.get(tag)
            if manager is None:
                manager = self._factory(tag, self.workspace_root, None, self.services)
                self._managers[tag] = manager
                updater = self.services.status_updater
                if updater is not None:
                    self._detach[tag] = updater.attach(manager.events)
                logger.debug("Created %s manager for %s", tag, self.workspace_root)
            return manager

    def get_managers(self) -> dict[str, TestManager]:
        """Return the managers of every enabled provider."""
        enabled = self.services.settings.enabled_providers(self.workspace_root)
        return {tag: self.get_manager(tag) for tag in enabled}

    @property
    def managers(self) -> dict[str, TestManager]:
        with self._lock:
            return dict(self._managers)

    async def dispose(self) -> None:
        """Stop every active run and forget all managers."""
        with self._lock:
            managers = list(self._managers.values())
            detach = list(self._detach.values())
            self._managers.clear()
            self._detach.clear()
        for unsubscribe in detach:
            unsubscribe()
        await asyncio.gather(*(m.dispose() for m in managers))


ServiceFactory = Callable[[Path, TestServices], TestManagerService]


class WorkspaceTestManagerService:
    """Manager services for every workspace root of a multi-root workspace."""

    __test__ = False

    def __init__(
        self,
        services: TestServices,
        service_factory: ServiceFactory = create_test_manager_service,
    ):
        self.services = services
        self._factory = service_factory
        self._services: dict[Path, TestManagerService] = {}
        self._lock = threading.RLock()

    def get_test_manager_service(self, workspace_root: Path) -> TestManagerService:
        key = normalize_path(workspace_root)
        with self._lock:
            service = self._services.get(key)
            if service is None:
                service = self._factory(key, self.services)
                self._services[key] = service
            return service

    def get_managers(self, workspace_root: Path) -> dict[str, TestManager]:
        return self.get_test_manager_service(workspace_root).get_managers()

    def get_manager(self, workspace_root: Path, provider: str) -> TestManager:
        return self.get_test_manager_service(workspace_root).get_manager(provider)

    @property
    def workspaces(self) -> list[Path]:
        with self._lock:
            return list(self._services)

    async def remove_workspace(self, workspace_root: Path) -> bool:
        """Dispose the managers of ``workspace_root``, cancelling active runs.

        Returns
        -------
        bool
            Whether the workspace was known
        """
        key = normalize_path(workspace_root)
        with self._lock:
            service = self._services.pop(key, None)
        if service is None:
            return False
        logger.info("Removing workspace %s", key)
        await service.dispose()
        return True

    async def dispose(self) -> None:
        with self._lock:
            services = list(self._services.values())
            self._services.clear()
        await asyncio.gather(*(s.dispose() for s in services))
