"""Test managers and their lookup services."""

from testdeck.manager.factory import (
    TestServices,
    create_default_services,
    create_test_manager,
    create_test_manager_service,
)
from testdeck.manager.service import TestManagerService, WorkspaceTestManagerService
from testdeck.manager.test_manager import TestManager

__all__ = [
    "TestManager",
    "TestManagerService",
    "TestServices",
    "WorkspaceTestManagerService",
    "create_default_services",
    "create_test_manager",
    "create_test_manager_service",
]
