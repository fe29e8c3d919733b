"""Command groups for the testdeck CLI."""
