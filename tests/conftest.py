"""
Test Configuration
==================

Pytest fixtures and test doubles for livefeed.

    - VirtualScheduler: fake clock driving timers deterministically
    - RecordingSink: sink that records writes and can be made to fail
    - FakeTransport: stream factory whose streams are driven by the test
"""

import heapq
import itertools
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional

import pytest

from livefeed.errors import SinkClosedError


T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)


# =============================================================================
# Virtual clock
# =============================================================================

class VirtualTimer:
    """Timer owned by a VirtualScheduler."""

    def __init__(self, callback: Callable[[], None], interval: Optional[float]) -> None:
        self.callback = callback
        self.interval = interval
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    def cancelled(self) -> bool:
        return self._cancelled


class VirtualScheduler:
    """
    Scheduler on a fake clock.

    Nothing runs until advance() is called; timers then fire in due
    order with now() set to their due instant.
    """

    def __init__(self, start: datetime = T0) -> None:
        self.start = start
        self.elapsed = 0.0
        self._heap: List[tuple] = []
        self._seq = itertools.count()
        self.delays: List[float] = []

    def now(self) -> datetime:
        return self.start + timedelta(seconds=self.elapsed)

    def call_later(self, delay: float, callback: Callable[[], None]) -> VirtualTimer:
        timer = VirtualTimer(callback, None)
        self.delays.append(delay)
        self._push(self.elapsed + delay, timer)
        return timer

    def call_every(self, interval: float, callback: Callable[[], None]) -> VirtualTimer:
        timer = VirtualTimer(callback, interval)
        self._push(self.elapsed + interval, timer)
        return timer

    def _push(self, due: float, timer: VirtualTimer) -> None:
        heapq.heappush(self._heap, (due, next(self._seq), timer))

    @property
    def pending(self) -> int:
        return sum(1 for _, _, timer in self._heap if not timer.cancelled())

    def advance(self, seconds: float) -> None:
        target = self.elapsed + seconds
        while self._heap and self._heap[0][0] <= target:
            due, _, timer = heapq.heappop(self._heap)
            if timer.cancelled():
                continue
            self.elapsed = due
            if timer.interval is not None:
                self._push(due + timer.interval, timer)
            timer.callback()
        self.elapsed = target

    def run_next(self) -> None:
        """Advance exactly to the next live timer and fire it."""
        while self._heap and self._heap[0][2].cancelled():
            heapq.heappop(self._heap)
        if not self._heap:
            raise AssertionError("no pending timers")
        self.advance(self._heap[0][0] - self.elapsed)


# =============================================================================
# Server-side sink
# =============================================================================

class RecordingSink:
    """Sink that keeps every frame written to it."""

    def __init__(self) -> None:
        self.status: Optional[int] = None
        self.headers: Dict[str, str] = {}
        self.establish_calls = 0
        self.frames: List[str] = []
        self.close_calls = 0
        self.fail_when: Callable[[str], bool] = lambda frame: False

    def establish(self, status: int, headers: Dict[str, str]) -> None:
        self.establish_calls += 1
        self.status = status
        self.headers = dict(headers)

    def write(self, frame: str) -> None:
        if self.close_calls:
            raise SinkClosedError("sink closed")
        if self.fail_when(frame):
            raise SinkClosedError("write failed")
        self.frames.append(frame)

    def close(self) -> None:
        self.close_calls += 1

    def clear(self) -> None:
        self.frames.clear()


# =============================================================================
# Client-side transport
# =============================================================================

class FakeStream:
    """Stream whose lifecycle the test drives through its listener."""

    def __init__(self, listener) -> None:
        self.listener = listener
        self.closed = False

    def close(self) -> None:
        self.closed = True

    def open(self) -> None:
        self.listener.on_open()

    def send(self, data: str) -> None:
        self.listener.on_message(data)

    def fail(self, error: Optional[BaseException] = None) -> None:
        self.listener.on_error(error or ConnectionError("connection lost"))


class FakeTransport:
    """StreamFactory that records every stream it opens."""

    def __init__(self) -> None:
        self.streams: List[FakeStream] = []
        self.raise_on_open: Optional[Exception] = None

    def __call__(self, listener) -> FakeStream:
        if self.raise_on_open is not None:
            raise self.raise_on_open
        stream = FakeStream(listener)
        self.streams.append(stream)
        return stream

    @property
    def latest(self) -> FakeStream:
        return self.streams[-1]

    @property
    def open_streams(self) -> List[FakeStream]:
        return [s for s in self.streams if not s.closed]


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def scheduler():
    """Virtual scheduler starting at 2024-01-01T00:00:00Z."""
    return VirtualScheduler()


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def valid_payload():
    """A well-formed message payload as sent on the wire."""
    return '{"message":"Hello World","timestamp":"2024-01-01T00:00:05.000Z"}'


@pytest.fixture
def sink_factory():
    """Factory for additional sinks in multi-connection tests."""
    return RecordingSink
