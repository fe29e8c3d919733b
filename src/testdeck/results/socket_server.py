"""Loopback listener receiving one run's result stream."""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import AsyncIterator

from testdeck.results.protocol import MessageDecoder, ResultEvent, ResultMessage
from testdeck_logging import get_logger

logger = get_logger(__name__)

LOOPBACK_HOST = "127.0.0.1"
READ_CHUNK_BYTES = 64 * 1024
CLOSE_TIMEOUT_S = 2.0


class ResultSocketServer:
    """Accept exactly one connection and expose its decoded messages.

    The server must be started before the child process is spawned so the
    child can never connect before the listener exists.
    """

    def __init__(self, host: str = LOOPBACK_HOST, decoder: MessageDecoder | None = None):
        self.host = host
        self.port: int | None = None
        self.decoder = decoder or MessageDecoder()
        self.end_received = False
        self._server: asyncio.AbstractServer | None = None
        self._queue: asyncio.Queue[ResultMessage | None] = asyncio.Queue()
        self._connected = asyncio.Event()
        self._finished = False

    @property
    def connected(self) -> bool:
        return self._connected.is_set()

    async def start(self) -> int:
        """Bind an ephemeral port and return it."""
        self._server = await asyncio.start_server(self._handle_client, self.host, 0)
        self.port = self._server.sockets[0].getsockname()[1]
        logger.debug("Result listener bound to %s:%s", self.host, self.port)
        return self.port

    async def _handle_client(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
    ) -> None:
        if self._connected.is_set() or self._finished:
            logger.warning("Rejecting extra result connection")
            writer.close()
            with contextlib.suppress(ConnectionError, OSError):
                await writer.wait_closed()
            return

        self._connected.set()
        try:
            while True:
                data = await reader.read(READ_CHUNK_BYTES)
                if not data:
                    break
                self._publish(self.decoder.feed(data))
            self._publish(self.decoder.finish())
        except (ConnectionError, OSError) as e:
            logger.debug("Result connection lost: %s", e)
        finally:
            writer.close()
            with contextlib.suppress(ConnectionError, OSError):
                await writer.wait_closed()
            self._end_stream()

    def _publish(self, messages: list[ResultMessage]) -> None:
        for message in messages:
            if self._finished:
                return
            if message.event is ResultEvent.END:
                self.end_received = True
            self._queue.put_nowait(message)

    def _end_stream(self) -> None:
        if not self._finished:
            self._finished = True
            self._queue.put_nowait(None)

    def abort(self) -> None:
        """End the message stream, e.g. when the child never connected."""
        self._end_stream()

    async def messages(self) -> AsyncIterator[ResultMessage]:
        """Yield messages until the end marker or connection close."""
        while True:
            message = await self._queue.get()
            if message is None:
                return
            yield message
            if message.event is ResultEvent.END:
                return

    async def close(self) -> None:
        self.abort()
        if self._server is None:
            return
        self._server.close()
        with contextlib.suppress(asyncio.TimeoutError):
            await asyncio.wait_for(self._server.wait_closed(), CLOSE_TIMEOUT_S)
        self._server = None

    async def __aenter__(self) -> ResultSocketServer:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()
