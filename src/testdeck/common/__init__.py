"""Shared building blocks for the testdeck engine."""
