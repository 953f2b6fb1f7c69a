"""
Connection Handle
=================

Per-connection record on the server side.

A handle owns exactly two timers (periodic data, heartbeat) and the
sink they write to. It is the single place where a connection ends:
client close, end-of-stream, sink error and failed writes all arrive
as terminate(reason).

Lifecycle:
    IDLE -> ESTABLISHED -> STREAMING -> TERMINATED

Design Rules:
    - Timers are cancelled exactly once
    - terminate() after termination is a no-op and returns False
    - Nothing is written once TERMINATED
"""

import logging
from typing import Optional

from livefeed.emitter.sink import FrameSink
from livefeed.models.state import ConnectionPhase
from livefeed.timers import TimerHandle


logger = logging.getLogger(__name__)


class TerminationReason:
    """Termination signal names."""

    CLOSE = "close"
    END = "end"
    ERROR = "error"
    WRITE_FAILED = "write-failed"


class ConnectionHandle:
    """
    Timers and sink of one stream connection.

    Attributes:
        connection_id: Short identifier used in log records
        phase: Current lifecycle phase
        reason: First termination reason, once terminated
        frames_written: Frames successfully written
    """

    def __init__(
        self,
        connection_id: str,
        sink: FrameSink,
        log: Optional[logging.Logger] = None,
    ) -> None:
        self.connection_id = connection_id
        self.phase = ConnectionPhase.IDLE
        self.reason: Optional[str] = None
        self.frames_written = 0

        self._sink = sink
        self._logger = log or logger
        self._data_timer: Optional[TimerHandle] = None
        self._heartbeat_timer: Optional[TimerHandle] = None

    @property
    def terminated(self) -> bool:
        return self.phase is ConnectionPhase.TERMINATED

    @property
    def data_timer(self) -> Optional[TimerHandle]:
        return self._data_timer

    @property
    def heartbeat_timer(self) -> Optional[TimerHandle]:
        return self._heartbeat_timer

    def attach_timers(self, data_timer: TimerHandle, heartbeat_timer: TimerHandle) -> None:
        """Take ownership of the two timers and enter STREAMING."""
        if self.terminated:
            data_timer.cancel()
            heartbeat_timer.cancel()
            return
        self._data_timer = data_timer
        self._heartbeat_timer = heartbeat_timer
        self.phase = ConnectionPhase.STREAMING

    def write(self, frame: str, source: str) -> bool:
        """
        Write a frame, terminating the connection if the sink refuses it.

        Args:
            frame: Encoded frame
            source: What is writing ("initial", "data", "heartbeat")

        Returns:
            True if the frame was written.
        """
        if self.terminated:
            return False
        try:
            self._sink.write(frame)
        except Exception as e:
            self._logger.info(
                f"[{self.connection_id}] {source} write failed, cleaning up: {e}"
            )
            self.terminate(TerminationReason.WRITE_FAILED, e)
            return False
        self.frames_written += 1
        return True

    def terminate(self, reason: str, error: Optional[BaseException] = None) -> bool:
        """
        Cancel both timers and close the sink.

        Args:
            reason: Termination signal name
            error: Exception that caused it, if any

        Returns:
            True on the first call, False for every later call.
        """
        if self.terminated:
            return False

        self.phase = ConnectionPhase.TERMINATED
        self.reason = reason

        for timer in (self._data_timer, self._heartbeat_timer):
            if timer is not None:
                timer.cancel()
        self._data_timer = None
        self._heartbeat_timer = None

        self._sink.close()

        summary = f"[{self.connection_id}] Connection terminated ({reason}) after {self.frames_written} frames"
        if error is not None:
            self._logger.info(f"{summary}: {error}")
        else:
            self._logger.info(summary)
        return True
