"""Synchronous listener registry used by managers and the status updater."""

from __future__ import annotations

import threading
from collections.abc import Callable
from typing import Generic, TypeVar

from testdeck_logging import get_logger

logger = get_logger(__name__)

E = TypeVar("E")

Listener = Callable[[E], None]


class EventEmitter(Generic[E]):
    """Fan events out to subscribed callbacks.

    A failing listener is logged and skipped; it never affects the emitter or
    the remaining listeners.
    """

    def __init__(self) -> None:
        self._listeners: list[Callable[[E], None]] = []
        self._lock = threading.RLock()

    def subscribe(self, listener: Callable[[E], None]) -> Callable[[], None]:
        """Register ``listener`` and return a callable that unsubscribes it."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def emit(self, event: E) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(event)
            except Exception as e:
                logger.error(
                    "Event listener %r failed on %s: %s",
                    listener,
                    type(event).__name__,
                    e,
                )

    def clear(self) -> None:
        with self._lock:
            self._listeners.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._listeners)
