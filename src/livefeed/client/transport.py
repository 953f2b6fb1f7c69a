"""
EventSource Transport
=====================

httpx-backed event stream for StreamClient.

Each EventSourceStream is one GET request held open as an asyncio
task. It reports to a StreamListener the way a browser EventSource
does: open when the response arrives, message per dispatched event,
error when the stream fails or the server ends it. Unlike a browser
it never reconnects by itself; StreamClient owns retries.

Example:
    async with httpx.AsyncClient(timeout=None) as http:
        client = StreamClient(
            EventSourceStream.factory("http://localhost:8000/api/hello", http),
            AsyncioScheduler(),
        )
        client.connect()
"""

import asyncio
import logging
from typing import Callable, Dict, Optional

import httpx

from livefeed.client.client import StreamListener
from livefeed.errors import StreamClosedError, StreamConnectionError
from livefeed.protocol.decoder import SSEDecoder


logger = logging.getLogger(__name__)


REQUEST_HEADERS: Dict[str, str] = {
    "Accept": "text/event-stream",
    "Cache-Control": "no-cache",
}


class EventSourceStream:
    """
    One open event stream.

    Attributes:
        url: Stream endpoint
        closed: Whether close() has been called
    """

    def __init__(
        self,
        url: str,
        http: httpx.AsyncClient,
        listener: StreamListener,
        log: Optional[logging.Logger] = None,
    ) -> None:
        self.url = url
        self._http = http
        self._listener = listener
        self._logger = log or logger
        self._closed = False
        self._task: asyncio.Task = asyncio.get_running_loop().create_task(
            self._run(), name=f"event_stream:{url}"
        )

    @classmethod
    def factory(
        cls,
        url: str,
        http: httpx.AsyncClient,
        log: Optional[logging.Logger] = None,
    ) -> Callable[[StreamListener], "EventSourceStream"]:
        """Build a StreamFactory opening streams against url."""

        def open_stream(listener: StreamListener) -> "EventSourceStream":
            return cls(url, http, listener, log=log)

        return open_stream

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def task(self) -> asyncio.Task:
        return self._task

    def close(self) -> None:
        """Stop the stream. No callbacks are delivered afterwards."""
        if self._closed:
            return
        self._closed = True
        if not self._task.done():
            self._task.cancel()

    async def _run(self) -> None:
        try:
            await self._consume()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            error: BaseException = e
        else:
            error = StreamClosedError("Server closed the event stream")

        if not self._closed:
            self._listener.on_error(error)

    async def _consume(self) -> None:
        async with self._http.stream("GET", self.url, headers=REQUEST_HEADERS) as response:
            if response.status_code != 200:
                raise StreamConnectionError(
                    f"Unexpected status {response.status_code} from {self.url}"
                )
            content_type = response.headers.get("content-type", "")
            if not content_type.startswith("text/event-stream"):
                raise StreamConnectionError(
                    f"Unexpected content type {content_type!r} from {self.url}"
                )

            if self._closed:
                return
            self._logger.info(f"Connected to event stream: {self.url}")
            self._listener.on_open()

            decoder = SSEDecoder()
            async for line in response.aiter_lines():
                event = decoder.feed_line(line.rstrip("\r\n"))
                if event is None or event.event != "message":
                    continue
                if self._closed:
                    return
                self._listener.on_message(event.data)
