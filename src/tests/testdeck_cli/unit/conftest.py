"""Fixtures for CLI unit tests."""

import logging
from collections.abc import Generator
from pathlib import Path

import pytest
from click.testing import CliRunner

from testdeck.manager.factory import TestServices
from testdeck_cli.cli import Context


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide Click CLI runner for testing commands."""
    return CliRunner()


@pytest.fixture(autouse=True)
def restore_cli_loggers() -> Generator[None, None, None]:
    """Undo the handlers and propagation changes made by each invocation."""
    saved = {}
    for name in ("testdeck", "testdeck_cli", "testdeck_common"):
        logger = logging.getLogger(name)
        saved[name] = (logger.handlers[:], logger.propagate, logger.level)
    yield
    for name, (handlers, propagate, level) in saved.items():
        logger = logging.getLogger(name)
        for handler in logger.handlers[:]:
            if handler not in handlers:
                handler.close()
        logger.handlers = handlers
        logger.propagate = propagate
        logger.setLevel(level)


@pytest.fixture
def deck_context(services: TestServices) -> Context:
    """CLI context wired to the fake executor."""
    deck = Context([Path("/ws")])
    deck._services = services
    return deck


@pytest.fixture
def home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setattr(Path, "home", classmethod(lambda cls: home))
    return home
