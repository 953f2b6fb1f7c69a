"""
Error Taxonomy
==============

Exceptions shared by the emitter and the client.

Request rejection and parse failures are values, not exceptions
(see emitter.Rejection and protocol.ParseResult). Everything here is
a transport-level failure that one side must contain.
"""


class LiveFeedError(Exception):
    """Base class for livefeed errors."""


class SinkClosedError(LiveFeedError):
    """A frame could not be written because the sink is closed or full."""


class StreamConnectionError(LiveFeedError):
    """The client could not open the event stream."""


class StreamClosedError(LiveFeedError):
    """The server ended an open event stream."""
