"""Constants for the testdeck CLI."""

from enum import Enum


class LogLevel(str, Enum):
    """Log levels accepted by ``--log-level``."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


class ExitCode:
    """Process exit codes."""

    SUCCESS = 0
    GENERAL_ERROR = 1
    NOT_FOUND = 2
    CONFIG_ERROR = 3
    PERMISSION_ERROR = 4
    TIMEOUT = 124


class Icons:
    """Status glyphs used in CLI output."""

    SUCCESS = "✅"
    ERROR = "❌"
    WARNING = "⚠️"
    INFO = "📄"
    TEST = "🧪"
    FOLDER = "📁"
    CONFIG = "🔧"
    REPORT = "📊"
    SKIPPED = "⏭️"
    RUNNING = "⏳"
    NOT_RUN = "○"
    PASS = "✓"
    FAIL = "✗"
