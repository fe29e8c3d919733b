"""Standalone scripts executed with the workspace interpreter."""

from pathlib import Path

SCRIPTS_DIR = Path(__file__).resolve().parent

PYTEST_DISCOVERY_SCRIPT = SCRIPTS_DIR / "pytest_discovery.py"
UNITTEST_DISCOVERY_SCRIPT = SCRIPTS_DIR / "unittest_discovery.py"
UNITTEST_LAUNCHER_SCRIPT = SCRIPTS_DIR / "unittest_launcher.py"
