"""
Stream Emitter
==============

Server side of the feed: one request in, one event stream out.

For each accepted request the emitter:
    1. Hands the sink status 200 and the event-stream headers
    2. Writes the initial "connected" message immediately
    3. Starts the periodic data timer (default every 5 s)
    4. Starts the heartbeat timer (default every 30 s)

Any termination signal ends the connection through its
ConnectionHandle; a failed write from either timer is one of them.

Design Rules:
    - Only GET is accepted; anything else is a 405 Rejection
    - The initial message is always the first frame
    - No state is shared between connections
"""

import logging
import uuid
from dataclasses import dataclass, field
from typing import Dict, Optional

from livefeed.emitter.handle import ConnectionHandle
from livefeed.emitter.sink import FrameSink
from livefeed.models.message import FeedMessage
from livefeed.models.state import ConnectionPhase
from livefeed.protocol.framing import (
    ALLOWED_METHOD,
    HEARTBEAT_FRAME,
    STREAM_HEADERS,
    encode_data_frame,
)
from livefeed.timers import Scheduler


logger = logging.getLogger(__name__)


DEFAULT_INITIAL_MESSAGE = "Hello World - Connected!"
DEFAULT_MESSAGE = "Hello World"


@dataclass(frozen=True)
class Rejection:
    """Response for a request the emitter refuses."""

    status: int
    body: str
    headers: Dict[str, str] = field(default_factory=dict)


class StreamEmitter:
    """
    Opens and drives event streams.

    Attributes:
        data_interval: Seconds between periodic data frames
        heartbeat_interval: Seconds between heartbeat frames

    Example:
        emitter = StreamEmitter(AsyncioScheduler())

        rejection = emitter.accept(request.method)
        if rejection is None:
            handle = emitter.open(sink)
    """

    def __init__(
        self,
        scheduler: Scheduler,
        data_interval_ms: int = 5000,
        heartbeat_interval_ms: int = 30000,
        initial_message: str = DEFAULT_INITIAL_MESSAGE,
        message: str = DEFAULT_MESSAGE,
        log: Optional[logging.Logger] = None,
    ) -> None:
        """
        Initialize stream emitter.

        Args:
            scheduler: Timer and clock source
            data_interval_ms: Period of data frames
            heartbeat_interval_ms: Period of heartbeat frames
            initial_message: Payload of the first frame
            message: Payload of periodic frames
            log: Logger for connection events
        """
        if data_interval_ms <= 0 or heartbeat_interval_ms <= 0:
            raise ValueError("intervals must be > 0")

        self.scheduler = scheduler
        self.data_interval = data_interval_ms / 1000.0
        self.heartbeat_interval = heartbeat_interval_ms / 1000.0
        self.initial_message = initial_message
        self.message = message
        self._logger = log or logger

    def accept(self, method: str) -> Optional[Rejection]:
        """
        Validate the request method.

        Returns:
            None for GET, otherwise a 405 Rejection advertising GET.
        """
        if method == ALLOWED_METHOD:
            return None

        self._logger.info(f"Rejected {method} request to event stream")
        return Rejection(
            status=405,
            body=f"Method {method} Not Allowed",
            headers={"Allow": ALLOWED_METHOD},
        )

    def open(self, sink: FrameSink) -> ConnectionHandle:
        """
        Establish a stream on the sink and start its timers.

        Args:
            sink: Write side of the accepted connection

        Returns:
            The connection's handle. It is already TERMINATED if the
            initial write failed.
        """
        handle = ConnectionHandle(uuid.uuid4().hex[:8], sink, log=self._logger)
        self._logger.info(f"[{handle.connection_id}] Event stream connection received")

        self.establish(handle, sink)

        if not self.emit_initial(handle):
            return handle

        data_timer = self.scheduler.call_every(
            self.data_interval, lambda: self._emit_periodic(handle)
        )
        heartbeat_timer = self.scheduler.call_every(
            self.heartbeat_interval, lambda: self._emit_heartbeat(handle)
        )
        handle.attach_timers(data_timer, heartbeat_timer)
        return handle

    def establish(self, handle: ConnectionHandle, sink: FrameSink) -> None:
        if handle.phase is not ConnectionPhase.IDLE:
            raise RuntimeError(f"Cannot establish a connection in phase {handle.phase.value}")
        sink.establish(200, STREAM_HEADERS)
        handle.phase = ConnectionPhase.ESTABLISHED

    def emit_initial(self, handle: ConnectionHandle) -> bool:
        message = FeedMessage.at(self.initial_message, self.scheduler.now())
        self._logger.debug(f"[{handle.connection_id}] Sending initial data: {message.model_dump()}")
        return handle.write(encode_data_frame(message), "initial")

    def _emit_periodic(self, handle: ConnectionHandle) -> None:
        if handle.terminated:
            return
        message = FeedMessage.at(self.message, self.scheduler.now())
        self._logger.debug(f"[{handle.connection_id}] Sending periodic data: {message.model_dump()}")
        handle.write(encode_data_frame(message), "data")

    def _emit_heartbeat(self, handle: ConnectionHandle) -> None:
        if handle.terminated:
            return
        handle.write(HEARTBEAT_FRAME, "heartbeat")
