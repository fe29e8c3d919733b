"""Debounce tree-mutation events into UI-sized status notifications."""

from __future__ import annotations

import asyncio
import threading
from collections.abc import Callable
from dataclasses import dataclass, field

from testdeck.common.events import EventEmitter
from testdeck.models.events import StatusUpdateEvent, TestEvent
from testdeck.models.settings import StatusSettings
from testdeck.models.tree import TestStatus
from testdeck_logging import get_logger

logger = get_logger(__name__)

Key = tuple[str, str]


@dataclass
class _Pending:
    ids: dict[str, None] = field(default_factory=dict)
    root_status: TestStatus = TestStatus.NOT_RUN
    handle: asyncio.TimerHandle | None = None


class StatusUpdaterService:
    """Coalesce status updates per (workspace, provider).

    Updates for one key are merged for at most ``debounce_s`` seconds, or
    until ``max_batch_ids`` ids are pending, then republished as a single
    :class:`StatusUpdateEvent`. Terminal events flush the key's pending update
    first and are always delivered. Without a running event loop every event
    is delivered immediately.
    """

    def __init__(self, settings: StatusSettings | None = None):
        self.settings = settings or StatusSettings()
        self.events: EventEmitter[TestEvent] = EventEmitter()
        self._pending: dict[Key, _Pending] = {}
        self._lock = threading.RLock()
        self._closed = False

    def subscribe(self, listener: Callable[[TestEvent], None]) -> Callable[[], None]:
        return self.events.subscribe(listener)

    def attach(self, emitter: EventEmitter[TestEvent]) -> Callable[[], None]:
        """Observe a manager's emitter; returns the detach callable."""
        return emitter.subscribe(self.notify)

    def notify(self, event: TestEvent) -> None:
        """Accept one event from a manager."""
        if self._closed:
            return
        if event.terminal:
            self._flush_key(event.key)
            self.events.emit(event)
            return
        if not isinstance(event, StatusUpdateEvent):
            msg = f"Cannot coalesce non-terminal {type(event).__name__}"
            raise TypeError(msg)

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None
        if loop is None or self.settings.debounce_s <= 0:
            self._flush_key(event.key)
            self.events.emit(event)
            return

        with self._lock:
            pending = self._pending.setdefault(event.key, _Pending())
            pending.ids.update(dict.fromkeys(event.test_ids))
            pending.root_status = event.root_status
            full = len(pending.ids) >= self.settings.max_batch_ids
            if not full and pending.handle is None:
                pending.handle = loop.call_later(
                    self.settings.debounce_s,
                    self._flush_key,
                    event.key,
                )
        if full:
            self._flush_key(event.key)

    def _flush_key(self, key: Key) -> None:
        with self._lock:
            pending = self._pending.pop(key, None)
        if pending is None:
            return
        if pending.handle is not None:
            pending.handle.cancel()
        if not pending.ids:
            return
        workspace, provider = key
        self.events.emit(
            StatusUpdateEvent(
                workspace_root=workspace,
                provider=provider,
                test_ids=tuple(pending.ids),
                root_status=pending.root_status,
            ),
        )

    def flush(self) -> None:
        """Deliver every pending update now."""
        with self._lock:
            keys = list(self._pending)
        for key in keys:
            self._flush_key(key)

    def close(self) -> None:
        self.flush()
        self._closed = True
        self.events.clear()
