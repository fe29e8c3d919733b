"""Test settings resolution."""

from testdeck.config.settings import TestConfigSettingsService

__all__ = ["TestConfigSettingsService"]
