"""
SSE Decoder
===========

Incremental Server-Sent Events decoder.

Follows the line rules browsers apply in EventSource:
    - Lines starting with ":" are comments and are dropped
    - "field: value" strips one leading space from the value
    - "data" lines accumulate, joined with "\n"
    - A blank line dispatches the pending event
    - An event with no data is never dispatched

Example:
    decoder = SSEDecoder()
    for event in decoder.feed(chunk):
        handle(event.data)
"""

from dataclasses import dataclass
from typing import List, Optional


@dataclass(frozen=True, slots=True)
class ServerSentEvent:
    """One dispatched SSE event."""

    data: str
    event: str = "message"
    id: Optional[str] = None
    retry: Optional[int] = None


class SSEDecoder:
    """
    Turns a text stream into ServerSentEvents.

    Accepts either whole lines (feed_line) or arbitrary text chunks
    (feed). Chunks may split lines anywhere; a trailing partial line is
    held until its terminator arrives.
    """

    def __init__(self) -> None:
        self._pending = ""
        self._data: List[str] = []
        self._event = ""
        self._last_id: Optional[str] = None
        self._retry: Optional[int] = None

    @property
    def last_event_id(self) -> Optional[str]:
        return self._last_id

    def feed(self, chunk: str) -> List[ServerSentEvent]:
        """Decode a chunk of text, returning any events it completes."""
        text = self._pending + chunk
        # A trailing "\r" may be the first half of "\r\n"
        if text.endswith("\r"):
            text, self._pending = text[:-1], "\r"
        else:
            self._pending = ""

        lines = text.replace("\r\n", "\n").replace("\r", "\n").split("\n")
        self._pending = lines.pop() + self._pending

        events = []
        for line in lines:
            event = self.feed_line(line)
            if event is not None:
                events.append(event)
        return events

    def feed_line(self, line: str) -> Optional[ServerSentEvent]:
        """
        Process one line (without its terminator).

        Returns:
            The dispatched event when the line is blank and data is
            pending, otherwise None.
        """
        if not line:
            return self._dispatch()

        if line.startswith(":"):
            return None

        field, sep, value = line.partition(":")
        if sep and value.startswith(" "):
            value = value[1:]

        if field == "data":
            self._data.append(value)
        elif field == "event":
            self._event = value
        elif field == "id":
            if "\0" not in value:
                self._last_id = value
        elif field == "retry":
            if value.isdigit():
                self._retry = int(value)
        return None

    def _dispatch(self) -> Optional[ServerSentEvent]:
        data, event, retry = self._data, self._event, self._retry
        self._data, self._event, self._retry = [], "", None

        if not data:
            return None

        return ServerSentEvent(
            data="\n".join(data),
            event=event or "message",
            id=self._last_id,
            retry=retry,
        )
