"""
Frame Sinks
===========

Write side of one stream connection.

A sink receives the response status and headers once, then frames.
Writing to a closed or saturated sink raises SinkClosedError; the
connection handle treats that as a termination signal.

QueueSink is the asyncio-safe bridge between the emitter's timers and
the HTTP response body: timers write, the response relay reads.

Design Rules:
    - establish() is accepted exactly once, before any write
    - Bounded: a full queue means the reader stopped reading
    - close() is idempotent; readers drain what was written, then stop
"""

import asyncio
from typing import Dict, Optional, Protocol

from livefeed.errors import SinkClosedError


class FrameSink(Protocol):
    """Destination for one connection's response."""

    def establish(self, status: int, headers: Dict[str, str]) -> None:
        ...

    def write(self, frame: str) -> None:
        ...

    def close(self) -> None:
        ...


class QueueSink:
    """
    Bounded queue of frames feeding a streaming response.

    Attributes:
        status: Response status set by establish()
        headers: Response headers set by establish()
        closed: Whether close() has been called

    Example:
        sink = QueueSink(maxsize=100)
        handle = emitter.open(sink)

        while (frame := await sink.get()) is not None:
            yield frame
    """

    def __init__(self, maxsize: int = 100) -> None:
        if maxsize < 1:
            raise ValueError("maxsize must be >= 1")

        self._queue: asyncio.Queue[Optional[str]] = asyncio.Queue(maxsize=maxsize)
        self._closed = False
        self.status: Optional[int] = None
        self.headers: Dict[str, str] = {}

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def size(self) -> int:
        return self._queue.qsize()

    def establish(self, status: int, headers: Dict[str, str]) -> None:
        if self.status is not None:
            raise RuntimeError("Response already established")
        self.status = status
        self.headers = dict(headers)

    def write(self, frame: str) -> None:
        if self._closed:
            raise SinkClosedError("Sink is closed")
        if self.status is None:
            raise RuntimeError("write() before establish()")
        try:
            self._queue.put_nowait(frame)
        except asyncio.QueueFull:
            raise SinkClosedError(
                f"Sink is full ({self._queue.maxsize} frames unread)"
            ) from None

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        # Wake a waiting reader. If the queue is full nobody is waiting.
        try:
            self._queue.put_nowait(None)
        except asyncio.QueueFull:
            pass

    async def get(self) -> Optional[str]:
        """
        Next frame, or None once the sink is closed and drained.
        """
        if self._closed and self._queue.empty():
            return None
        return await self._queue.get()
