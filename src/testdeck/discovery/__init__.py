"""Test discovery."""

from testdeck.discovery.service import DiscoveryService

__all__ = ["DiscoveryService"]
