"""Coalesced status notifications."""

from testdeck.status.updater import StatusUpdaterService

__all__ = ["StatusUpdaterService"]
