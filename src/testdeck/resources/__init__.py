"""Local resources (ports) used by test runs."""

from testdeck.resources.ports import allocate_port, is_port_listening

__all__ = ["allocate_port", "is_port_listening"]
