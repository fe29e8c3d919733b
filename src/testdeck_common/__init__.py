"""Shared utilities for testdeck packages (IO, config, env, paths)."""
