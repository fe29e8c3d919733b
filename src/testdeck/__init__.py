"""testdeck: discover, run and report pytest and unittest suites.

Typical use::

    services = create_default_services()
    service = create_test_manager_service(workspace_root, services)
    manager = service.get_manager("pytest")
    await manager.discover_tests()
    result = await manager.run_tests(RunRequest("pytest", workspace_root))
"""

from testdeck.manager import (
    TestManager,
    TestManagerService,
    TestServices,
    WorkspaceTestManagerService,
    create_default_services,
    create_test_manager,
    create_test_manager_service,
)
from testdeck.models import RunRequest, RunResult, TestStatus

__version__ = "0.1.0"

__all__ = [
    "RunRequest",
    "RunResult",
    "TestManager",
    "TestManagerService",
    "TestServices",
    "TestStatus",
    "WorkspaceTestManagerService",
    "create_default_services",
    "create_test_manager",
    "create_test_manager_service",
]
