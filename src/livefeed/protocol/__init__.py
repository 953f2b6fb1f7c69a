"""
Protocol Module
===============

The contract both sides of the feed agree on.

    - framing: data and heartbeat frames, stream response headers
    - decoder: incremental SSE decoder (ServerSentEvent, SSEDecoder)
    - parsing: ParseResult and parse_message
"""

from livefeed.protocol.framing import (
    ALLOWED_METHOD,
    HEARTBEAT_FRAME,
    STREAM_HEADERS,
    encode_data_frame,
)
from livefeed.protocol.decoder import ServerSentEvent, SSEDecoder
from livefeed.protocol.parsing import ParseResult, parse_message


__all__ = [
    "ALLOWED_METHOD",
    "HEARTBEAT_FRAME",
    "STREAM_HEADERS",
    "encode_data_frame",
    "ServerSentEvent",
    "SSEDecoder",
    "ParseResult",
    "parse_message",
]
