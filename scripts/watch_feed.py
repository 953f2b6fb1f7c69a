#!/usr/bin/env python3
"""
Feed Watch Script
=================

Standalone script to exercise the stream client against a live server.

This script:
    1. Connects a StreamClient to a running livefeed server
    2. Logs every connection-state change and message
    3. Optionally issues a manual reconnect when retries run out
    4. Reports a final summary

Prerequisites:
    - A livefeed server must be running (python -m livefeed.main)
    - Install the package: pip install -e .

Usage:
    python scripts/watch_feed.py --duration 120
    python scripts/watch_feed.py --url http://localhost:8000/api/hello --retry-on-disconnect
"""

import argparse
import asyncio
import logging
import os
import sys
import time

import httpx

from livefeed.client import EventSourceStream, RetryPolicy, StoreSnapshot, StreamClient
from livefeed.config import settings
from livefeed.models.state import ConnectionState
from livefeed.timers import AsyncioScheduler


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%S",
)
logger = logging.getLogger(__name__)


async def watch(url: str, duration: int, retry_on_disconnect: bool) -> dict:
    """
    Watch the feed for a fixed duration.

    Args:
        url: Event stream URL
        duration: Watch duration in seconds
        retry_on_disconnect: Reconnect manually once retries are exhausted

    Returns:
        Final counters
    """
    policy = RetryPolicy(
        max_retries=settings.client.max_retries,
        base_delay_ms=settings.client.base_delay_ms,
        max_delay_ms=settings.client.max_delay_ms,
        jitter_ms=settings.client.jitter_ms,
    )
    counters = {"messages": 0, "disconnects": 0, "manual_retries": 0}
    last = {"state": None, "message": None}

    timeout = httpx.Timeout(None, connect=settings.client.connect_timeout_seconds)
    async with httpx.AsyncClient(timeout=timeout) as http:
        client = StreamClient(
            EventSourceStream.factory(url, http),
            AsyncioScheduler(),
            policy=policy,
        )

        def on_change(snapshot: StoreSnapshot) -> None:
            state_changed = snapshot.state is not last["state"]
            if state_changed:
                logger.info(f"Status: {snapshot.status_label}")
                last["state"] = snapshot.state
            if snapshot.error:
                logger.warning(f"Error: {snapshot.error}")
            if snapshot.message is not None and snapshot.message is not last["message"]:
                last["message"] = snapshot.message
                counters["messages"] += 1
                logger.info(
                    f"Message: {snapshot.message.message} "
                    f"(sent {snapshot.message.timestamp})"
                )
            if state_changed and snapshot.can_retry:
                counters["disconnects"] += 1
                if retry_on_disconnect:
                    counters["manual_retries"] += 1
                    logger.info("Retrying manually")
                    asyncio.get_running_loop().call_soon(client.reconnect)
                else:
                    logger.info("Retries exhausted; rerun with --retry-on-disconnect to retry")

        client.store.subscribe(on_change)
        client.connect()

        start_time = time.time()
        try:
            while time.time() - start_time < duration:
                if client.state is ConnectionState.DISCONNECTED and not retry_on_disconnect:
                    break
                await asyncio.sleep(0.5)
        except KeyboardInterrupt:
            logger.info("Watch interrupted by user")
        finally:
            client.teardown()

    logger.info("=" * 60)
    logger.info("FINAL SUMMARY")
    logger.info("=" * 60)
    logger.info(f"Total runtime: {time.time() - start_time:.1f} seconds")
    logger.info(f"Messages received: {counters['messages']}")
    logger.info(f"Disconnects: {counters['disconnects']}")
    logger.info(f"Manual retries: {counters['manual_retries']}")
    logger.info("=" * 60)
    return counters


def main():
    parser = argparse.ArgumentParser(description="Watch a livefeed event stream")
    parser.add_argument(
        "--url",
        type=str,
        default=os.environ.get("LIVEFEED_CLIENT_URL", settings.client.url),
        help="Event stream URL",
    )
    parser.add_argument(
        "--duration",
        type=int,
        default=120,
        help="Watch duration in seconds (default: 120)",
    )
    parser.add_argument(
        "--retry-on-disconnect",
        action="store_true",
        help="Issue a manual reconnect whenever retries are exhausted",
    )

    args = parser.parse_args()

    result = asyncio.run(watch(
        url=args.url,
        duration=args.duration,
        retry_on_disconnect=args.retry_on_disconnect,
    ))

    sys.exit(0 if result["messages"] > 0 else 1)


if __name__ == "__main__":
    main()
