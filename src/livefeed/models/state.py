"""
Connection State Models
=======================

Enumerations for the two per-connection state machines.

Client (ConnectionState):
    connecting -> connected            on open or first valid message
    connecting/connected -> reconnecting  on failure, retries left
    reconnecting -> connecting         when the backoff timer fires
    any -> disconnected                retries exhausted (exit: manual retry)

Server (ConnectionPhase):
    IDLE -> ESTABLISHED -> STREAMING -> TERMINATED
    TERMINATED is absorbing.
"""

from enum import Enum


class ConnectionState(str, Enum):
    """
    Client-side connection status.

    Attributes:
        CONNECTING: A stream is being opened
        CONNECTED: The stream is open and delivering
        RECONNECTING: Waiting out a backoff delay before the next attempt
        DISCONNECTED: Retries exhausted, waiting for a manual retry
    """

    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"
    DISCONNECTED = "disconnected"


class ConnectionPhase(str, Enum):
    """Server-side lifecycle of one stream connection."""

    IDLE = "IDLE"
    ESTABLISHED = "ESTABLISHED"
    STREAMING = "STREAMING"
    TERMINATED = "TERMINATED"
