"""Result ingestion: JUnit XML batches and the live socket stream."""

from testdeck.results.protocol import (
    MAX_MESSAGE_BYTES,
    MessageDecoder,
    ResultEvent,
    ResultMessage,
    encode_message,
)
from testdeck.results.socket_server import ResultSocketServer
from testdeck.results.stream import SocketResultParser, StreamCompletion
from testdeck.results.xunit import XUnitParser

__all__ = [
    "MAX_MESSAGE_BYTES",
    "MessageDecoder",
    "ResultEvent",
    "ResultMessage",
    "ResultSocketServer",
    "SocketResultParser",
    "StreamCompletion",
    "XUnitParser",
    "encode_message",
]
