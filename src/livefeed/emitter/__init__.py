"""
Emitter Module
==============

Server side of the event stream.

    - StreamEmitter: validates requests, opens streams, drives timers
    - ConnectionHandle: one connection's timers, sink and lifecycle
    - QueueSink: bounded asyncio bridge to the HTTP response body
"""

from livefeed.emitter.emitter import Rejection, StreamEmitter
from livefeed.emitter.handle import ConnectionHandle, TerminationReason
from livefeed.emitter.sink import FrameSink, QueueSink


__all__ = [
    "StreamEmitter",
    "Rejection",
    "ConnectionHandle",
    "TerminationReason",
    "FrameSink",
    "QueueSink",
]
