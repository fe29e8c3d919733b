"""Loopback port helpers."""

from __future__ import annotations

import socket

import psutil

from testdeck_logging import get_logger

logger = get_logger(__name__)


def allocate_port(host: str = "127.0.0.1") -> int:
    """Ask the OS for a free TCP port on ``host``.

    The port is released before returning, so a short race with other
    processes remains possible.
    """
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((host, 0))
        port = sock.getsockname()[1]
    logger.debug("Allocated port %d", port)
    return port


def is_port_listening(pid: int, port: int) -> bool:
    """Check whether ``pid`` or one of its children listens on ``port``."""
    try:
        process = psutil.Process(pid)
        candidates = [process, *process.children(recursive=True)]
    except (psutil.NoSuchProcess, psutil.AccessDenied):
        return False

    for candidate in candidates:
        try:
            for conn in candidate.net_connections(kind="inet"):
                if conn.laddr and conn.laddr.port == port and conn.status == psutil.CONN_LISTEN:
                    return True
        except (psutil.NoSuchProcess, psutil.AccessDenied):
            continue
    return False
