"""
Data Models
===========

Models shared by the emitter and the client.

Models:
    Message:
        - FeedMessage: Schema for messages on the wire

    State:
        - ConnectionState: Client status (connecting, connected, ...)
        - ConnectionPhase: Server connection lifecycle
"""

from livefeed.models.message import FeedMessage, format_instant, parse_instant
from livefeed.models.state import ConnectionPhase, ConnectionState

__all__ = [
    # Message
    "FeedMessage",
    "format_instant",
    "parse_instant",
    # State
    "ConnectionState",
    "ConnectionPhase",
]
