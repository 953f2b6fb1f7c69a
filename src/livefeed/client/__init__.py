"""
Client Module
=============

Consumer side of the event stream.

    - StreamClient: connection state machine with bounded backoff
    - ConnectionStore / StoreSnapshot: observable session state
    - RetryPolicy / RetryContext: backoff constants and failure counter
    - EventSourceStream: httpx transport delivering SSE events

Example:
    from livefeed.client import EventSourceStream, StreamClient
    from livefeed.timers import AsyncioScheduler

    client = StreamClient(EventSourceStream.factory(url, http), AsyncioScheduler())
    client.connect()
"""

from livefeed.client.backoff import RetryContext, RetryPolicy
from livefeed.client.client import (
    OPEN_ERROR,
    PARSE_ERROR,
    EventStream,
    StreamClient,
    StreamFactory,
    StreamListener,
)
from livefeed.client.store import ConnectionStore, StoreSnapshot
from livefeed.client.transport import EventSourceStream


__all__ = [
    "StreamClient",
    "StreamFactory",
    "StreamListener",
    "EventStream",
    "PARSE_ERROR",
    "OPEN_ERROR",
    "ConnectionStore",
    "StoreSnapshot",
    "RetryPolicy",
    "RetryContext",
    "EventSourceStream",
]
