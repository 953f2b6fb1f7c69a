"""
Wire Framing
============

Frame encoding for the event stream.

Frames:
    Data:      "data: <json FeedMessage>\n\n"
    Heartbeat: ": heartbeat\n\n"  (SSE comment, ignored by parsers)

Every frame is terminated by a blank line.
"""

from typing import Dict

from livefeed.models.message import FeedMessage


ALLOWED_METHOD = "GET"

HEARTBEAT_FRAME = ": heartbeat\n\n"

STREAM_HEADERS: Dict[str, str] = {
    "Content-Type": "text/event-stream",
    "Cache-Control": "no-cache, no-transform",
    "Connection": "keep-alive",
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Cache-Control",
    "Access-Control-Allow-Methods": ALLOWED_METHOD,
}


def encode_data_frame(message: FeedMessage) -> str:
    """Encode a message as a single SSE data frame."""
    return f"data: {message.model_dump_json()}\n\n"

