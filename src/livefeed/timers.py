"""
Timers
======

Scheduler abstraction shared by the emitter and the client.

Both sides own timers whose lifetime is tied to a connection: the
emitter's data and heartbeat intervals, the client's backoff wait.
They are created through a Scheduler so that production code runs on
the asyncio event loop while tests drive a virtual clock.

Design Rules:
    - Delays and intervals are in seconds
    - cancel() is idempotent and never raises
    - A repeating timer never re-arms after cancel(), including a
      cancel() issued from inside its own tick
    - now() is the only clock the components read
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable, Optional, Protocol


logger = logging.getLogger(__name__)


class TimerHandle(Protocol):
    """Handle to a scheduled callback."""

    def cancel(self) -> None:
        ...

    def cancelled(self) -> bool:
        ...


class Scheduler(Protocol):
    """
    Source of timers and of the current instant.

    Implemented by:
        - AsyncioScheduler (production)
        - the virtual scheduler fixture in tests
    """

    def now(self) -> datetime:
        ...

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        ...

    def call_every(self, interval: float, callback: Callable[[], None]) -> TimerHandle:
        ...


class RepeatingTimer:
    """
    Fixed-interval timer on an asyncio loop.

    The first tick fires one interval after start. Each tick is
    scheduled from the previous one, like setInterval.
    """

    def __init__(
        self,
        loop: asyncio.AbstractEventLoop,
        interval: float,
        callback: Callable[[], None],
    ) -> None:
        if interval <= 0:
            raise ValueError("interval must be > 0")

        self._loop = loop
        self._interval = interval
        self._callback = callback
        self._cancelled = False
        self._next: Optional[asyncio.TimerHandle] = loop.call_later(interval, self._tick)

    def _tick(self) -> None:
        self._next = None
        if self._cancelled:
            return
        try:
            self._callback()
        except Exception:
            logger.exception("Repeating timer callback failed")
        if not self._cancelled:
            self._next = self._loop.call_later(self._interval, self._tick)

    def cancel(self) -> None:
        self._cancelled = True
        if self._next is not None:
            self._next.cancel()
            self._next = None

    def cancelled(self) -> bool:
        return self._cancelled


class AsyncioScheduler:
    """
    Scheduler backed by the running asyncio event loop.

    Args:
        loop: Event loop to schedule on. Defaults to the running loop
            at the time each timer is created.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self._loop = loop

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        return self._loop or asyncio.get_running_loop()

    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        return self._get_loop().call_later(max(delay, 0.0), callback)

    def call_every(self, interval: float, callback: Callable[[], None]) -> TimerHandle:
        return RepeatingTimer(self._get_loop(), interval, callback)
