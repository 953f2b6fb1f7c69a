"""
livefeed
========

Best-effort live event feed over Server-Sent Events.

This package provides both halves of one small streaming protocol:
the server side that emits a periodic feed with keepalive heartbeats,
and a self-healing client that reconnects with jittered exponential backoff.

Components:
    - protocol: Wire framing, SSE decoding and message parsing
    - timers: Scheduler abstraction (asyncio in production)
    - emitter: Per-connection stream lifecycle on the server
    - client: Connection state machine and httpx EventSource transport
    - main: FastAPI application exposing the stream endpoint

Example:
    from livefeed.config import settings
    from livefeed.client import StreamClient

    # Server is started via the FastAPI application
    # See main.py for entry point
"""

__version__ = "0.1.0"
__author__ = "livefeed contributors"

__all__ = [
    "__version__",
]
