"""Newline-delimited JSON protocol spoken by the unittest launcher.

One UTF-8 JSON object per line::

    {"event": "failed", "id": "tests.test_a.TestA.test_one",
     "duration": 0.01, "message": "AssertionError: 1 != 2", "traceback": "..."}
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any

from testdeck_logging import get_logger

logger = get_logger(__name__)

MAX_MESSAGE_BYTES = 4 * 1024 * 1024
DELIMITER = b"\n"


class ResultEvent(str, Enum):
    STARTED = "started"
    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"
    ERROR = "error"
    END = "end"


@dataclass(frozen=True)
class ResultMessage:
    """One decoded lifecycle event."""

    event: ResultEvent
    test_id: str | None = None
    duration: float | None = None
    message: str | None = None
    traceback: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"event": self.event.value}
        if self.test_id is not None:
            data["id"] = self.test_id
        if self.duration is not None:
            data["duration"] = self.duration
        if self.message is not None:
            data["message"] = self.message
        if self.traceback is not None:
            data["traceback"] = self.traceback
        return data


def parse_message(payload: Any) -> ResultMessage:
    """Validate a decoded JSON object.

    Raises
    ------
    ValueError
        If the object is not a well-formed result message
    """
    if not isinstance(payload, dict):
        msg = f"Expected a JSON object, got {type(payload).__name__}"
        raise ValueError(msg)
    event = ResultEvent(payload.get("event"))
    test_id = payload.get("id")
    if event is not ResultEvent.END and not isinstance(test_id, str):
        msg = f"Event {event.value!r} requires a string id"
        raise ValueError(msg)
    duration = payload.get("duration")
    if duration is not None:
        duration = float(duration)
    return ResultMessage(
        event=event,
        test_id=test_id,
        duration=duration,
        message=payload.get("message"),
        traceback=payload.get("traceback"),
    )


def encode_message(message: ResultMessage) -> bytes:
    """Encode one message as a single frame."""
    return json.dumps(message.to_dict()).encode("utf-8") + DELIMITER


class MessageDecoder:
    """Incremental decoder tolerating arbitrary read boundaries.

    Malformed lines and lines longer than ``max_message_bytes`` are dropped
    and counted in ``dropped``.
    """

    def __init__(self, max_message_bytes: int = MAX_MESSAGE_BYTES):
        self.max_message_bytes = max_message_bytes
        self.dropped = 0
        self._buffer = bytearray()
        self._discarding = False

    def feed(self, data: bytes) -> list[ResultMessage]:
        """Consume ``data`` and return every message completed by it."""
        self._buffer.extend(data)
        messages: list[ResultMessage] = []
        while True:
            newline = self._buffer.find(DELIMITER)
            if newline < 0:
                break
            line = bytes(self._buffer[:newline])
            del self._buffer[: newline + 1]
            if self._discarding:
                self._discarding = False
                continue
            decoded = self._decode_line(line)
            if decoded is not None:
                messages.append(decoded)

        if len(self._buffer) > self.max_message_bytes:
            logger.warning(
                "Discarding result message larger than %d bytes",
                self.max_message_bytes,
            )
            self._buffer.clear()
            self._discarding = True
            self.dropped += 1
        return messages

    def finish(self) -> list[ResultMessage]:
        """Decode a trailing line left without a delimiter at connection close."""
        line = bytes(self._buffer)
        self._buffer.clear()
        discarding, self._discarding = self._discarding, False
        if discarding or not line.strip():
            return []
        decoded = self._decode_line(line)
        return [decoded] if decoded is not None else []

    def _decode_line(self, line: bytes) -> ResultMessage | None:
        if not line.strip():
            return None
        if len(line) > self.max_message_bytes:
            self.dropped += 1
            logger.warning("Dropping oversized result message (%d bytes)", len(line))
            return None
        try:
            return parse_message(json.loads(line.decode("utf-8")))
        except (UnicodeDecodeError, ValueError, TypeError) as e:
            self.dropped += 1
            logger.warning("Dropping malformed result message: %s", e)
            return None
