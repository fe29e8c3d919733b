"""Command-line interface for testdeck."""

__version__ = "0.1.0"
