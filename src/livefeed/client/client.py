"""
Stream Client
=============

Self-healing consumer of the event stream.

The client opens a stream through an injected factory, turns data
events into FeedMessages, and keeps a ConnectionStore up to date. On
failure it retries with jittered exponential backoff until the retry
budget is spent, then waits for a manual reconnect().

Transitions:
    connect()      -> connecting
    on open        -> connected, retries reset
    on message     -> connected (valid) / error recorded (malformed)
    on error       -> reconnecting + backoff timer, or disconnected
    reconnect()    -> retries reset, connect() now
    teardown()     -> stream closed, timer cancelled

Design Rules:
    - At most one open stream and one pending reconnect timer
    - Callbacks from a superseded stream are ignored
    - A malformed payload is not a connection failure
    - Never retries past the budget; manual recovery is always available
"""

import logging
import random
from typing import Callable, Optional, Protocol

from livefeed.client.backoff import RetryContext, RetryPolicy
from livefeed.client.store import ConnectionStore
from livefeed.models.state import ConnectionState
from livefeed.protocol.parsing import parse_message
from livefeed.timers import Scheduler, TimerHandle


logger = logging.getLogger(__name__)


PARSE_ERROR = "Failed to parse server data"
OPEN_ERROR = "Failed to establish connection"


class EventStream(Protocol):
    """An open (or opening) event stream."""

    def close(self) -> None:
        ...


class StreamListener(Protocol):
    """Callbacks a transport delivers for one stream."""

    def on_open(self) -> None:
        ...

    def on_message(self, data: str) -> None:
        ...

    def on_error(self, error: Optional[BaseException] = None) -> None:
        ...


StreamFactory = Callable[[StreamListener], EventStream]


class _AttemptListener:
    """Routes one stream's callbacks back to the client, tagged with the stream."""

    def __init__(self, client: "StreamClient") -> None:
        self._client = client
        self.stream: Optional[EventStream] = None

    def on_open(self) -> None:
        self._client._handle_open(self)

    def on_message(self, data: str) -> None:
        self._client._handle_message(self, data)

    def on_error(self, error: Optional[BaseException] = None) -> None:
        self._client._handle_error(self, error)


class StreamClient:
    """
    Connection state machine for one client session.

    Attributes:
        store: Observable session state
        policy: Backoff constants

    Example:
        client = StreamClient(
            EventSourceStream.factory(url, http_client),
            AsyncioScheduler(),
        )
        client.connect()
        ...
        client.teardown()
    """

    def __init__(
        self,
        open_stream: StreamFactory,
        scheduler: Scheduler,
        policy: Optional[RetryPolicy] = None,
        rng: Callable[[], float] = random.random,
        log: Optional[logging.Logger] = None,
    ) -> None:
        """
        Initialize stream client.

        Args:
            open_stream: Factory that starts a stream delivering to a listener
            scheduler: Timer and clock source
            policy: Backoff constants (defaults: 10 retries, 1 s base, 30 s cap)
            rng: Uniform [0, 1) source for jitter
            log: Logger for connection events
        """
        self.policy = policy or RetryPolicy()
        self.store = ConnectionStore(max_retries=self.policy.max_retries)

        self._open_stream = open_stream
        self._scheduler = scheduler
        self._rng = rng
        self._logger = log or logger

        self._retry = RetryContext(self.policy)
        self._listener: Optional[_AttemptListener] = None
        self._reconnect_timer: Optional[TimerHandle] = None
        self._attempts = 0

    @property
    def state(self) -> ConnectionState:
        return self.store.state

    @property
    def retry_count(self) -> int:
        return self._retry.retry_count

    @property
    def attempts(self) -> int:
        """Streams opened over the session's lifetime."""
        return self._attempts

    @property
    def reconnect_pending(self) -> bool:
        return self._reconnect_timer is not None

    # =========================================================================
    # Operations
    # =========================================================================

    def connect(self) -> None:
        """
        Open a new stream, replacing any open stream or pending retry.
        """
        self._release()

        self.store._update(
            state=ConnectionState.CONNECTING,
            error=None,
            retry_count=self._retry.retry_count,
        )

        listener = _AttemptListener(self)
        self._listener = listener
        self._attempts += 1

        try:
            listener.stream = self._open_stream(listener)
        except Exception as e:
            self._logger.error(f"Failed to create event stream: {e}")
            self._release()
            self.store._update(state=ConnectionState.DISCONNECTED, error=OPEN_ERROR)
            return

        # The factory may report an error before returning the stream
        if self._listener is not listener:
            listener.stream.close()

    def reconnect(self) -> None:
        """Manual retry: reset the retry budget and connect immediately."""
        self._logger.info("Manual reconnect requested")
        self._retry.reset()
        self.connect()

    def teardown(self) -> None:
        """Close the stream and cancel any pending retry."""
        self._release()

    # =========================================================================
    # Transport callbacks
    # =========================================================================

    def _handle_open(self, listener: _AttemptListener) -> None:
        if listener is not self._listener:
            return

        self._logger.info("Event stream opened")
        self._retry.reset()
        self.store._update(
            state=ConnectionState.CONNECTED,
            retry_count=0,
            error=None,
        )

    def _handle_message(self, listener: _AttemptListener, data: str) -> None:
        if listener is not self._listener:
            return

        result = parse_message(data)
        if not result.ok:
            self._logger.error(f"Failed to parse event data ({result.reason}): {data!r}")
            self.store._update(error=PARSE_ERROR)
            return

        self._logger.debug(f"Message received: {result.message}")
        self.store._update(
            state=ConnectionState.CONNECTED,
            message=result.message,
            last_update=self._scheduler.now(),
            error=None,
        )

    def _handle_error(
        self,
        listener: _AttemptListener,
        error: Optional[BaseException] = None,
    ) -> None:
        if listener is not self._listener or self._reconnect_timer is not None:
            return

        self._logger.warning(f"Event stream error: {error}")
        self._close_stream()

        attempt = self._retry.record_failure()

        if self._retry.exhausted:
            self._logger.error(
                f"Connection failed after {self.policy.max_retries} attempts, "
                f"waiting for manual reconnect"
            )
            self.store._update(
                state=ConnectionState.DISCONNECTED,
                retry_count=self._retry.retry_count,
                error=f"Connection failed after {self.policy.max_retries} attempts",
            )
            return

        delay_ms = self.policy.delay_for(attempt, self._rng)
        self._logger.info(
            f"Reconnecting in {delay_ms:.0f}ms "
            f"(attempt {attempt + 1}/{self.policy.max_retries})"
        )
        self.store._update(
            state=ConnectionState.RECONNECTING,
            retry_count=self._retry.retry_count,
        )
        self._reconnect_timer = self._scheduler.call_later(
            delay_ms / 1000.0, self._fire_reconnect
        )

    def _fire_reconnect(self) -> None:
        self._reconnect_timer = None
        self.connect()

    # =========================================================================
    # Resources
    # =========================================================================

    def _close_stream(self) -> None:
        listener, self._listener = self._listener, None
        if listener is not None and listener.stream is not None:
            try:
                listener.stream.close()
            except Exception as e:
                self._logger.warning(f"Error closing event stream: {e}")

    def _release(self) -> None:
        if self._reconnect_timer is not None:
            self._reconnect_timer.cancel()
            self._reconnect_timer = None
        self._close_stream()
