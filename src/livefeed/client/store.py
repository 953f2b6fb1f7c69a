"""
Connection Store
================

Observable state of one client session.

The store holds what a presentation layer needs to render the feed:
connection state, the last message, the last error, when the last
message arrived and the retry counter. It is written only by
StreamClient transitions; readers poll snapshot() or subscribe().

Example:
    client = StreamClient(factory, scheduler)
    unsubscribe = client.store.subscribe(lambda snap: render(snap))
"""

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Callable, List, Optional

from livefeed.models.message import FeedMessage
from livefeed.models.state import ConnectionState


logger = logging.getLogger(__name__)


Listener = Callable[["StoreSnapshot"], None]


@dataclass(frozen=True)
class StoreSnapshot:
    """
    Immutable view of the client session.

    Attributes:
        state: Current connection state
        message: Last successfully parsed message
        error: Last reported error, if any
        last_update: Instant the last message was received
        retry_count: Consecutive failures counted so far
        max_retries: Failures tolerated before giving up
    """

    state: ConnectionState = ConnectionState.CONNECTING
    message: Optional[FeedMessage] = None
    error: Optional[str] = None
    last_update: Optional[datetime] = None
    retry_count: int = 0
    max_retries: int = 10

    @property
    def can_retry(self) -> bool:
        """Whether a manual retry should be offered."""
        return self.state is ConnectionState.DISCONNECTED

    @property
    def status_label(self) -> str:
        """
        One-line status for display.

        While reconnecting the label shows the retry attempt being waited
        on, 0-indexed: the first backoff reads "(0/10)".
        """
        if self.state is ConnectionState.CONNECTED:
            return "Live"
        if self.state is ConnectionState.CONNECTING:
            return "Connecting..."
        if self.state is ConnectionState.RECONNECTING:
            attempt = max(self.retry_count - 1, 0)
            return f"Reconnecting... ({attempt}/{self.max_retries})"
        return "Disconnected"


class ConnectionStore:
    """
    Holds the current StoreSnapshot and notifies subscribers on change.
    """

    def __init__(self, max_retries: int = 10) -> None:
        self._snapshot = StoreSnapshot(max_retries=max_retries)
        self._listeners: List[Listener] = []

    def snapshot(self) -> StoreSnapshot:
        return self._snapshot

    @property
    def state(self) -> ConnectionState:
        return self._snapshot.state

    @property
    def message(self) -> Optional[FeedMessage]:
        return self._snapshot.message

    @property
    def error(self) -> Optional[str]:
        return self._snapshot.error

    @property
    def retry_count(self) -> int:
        return self._snapshot.retry_count

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Register a listener called with every new snapshot.

        Returns:
            A function that removes the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _update(self, **changes) -> StoreSnapshot:
        updated = replace(self._snapshot, **changes)
        if updated == self._snapshot:
            return self._snapshot

        self._snapshot = updated
        for listener in list(self._listeners):
            try:
                listener(updated)
            except Exception:
                logger.exception("Store listener failed")
        return updated
