"""
Transport Tests
===============

EventSourceStream against httpx.MockTransport.
"""

import asyncio

import httpx

from livefeed.client import EventSourceStream, RetryPolicy, StreamClient
from livefeed.errors import StreamClosedError, StreamConnectionError
from livefeed.models.state import ConnectionState
from livefeed.timers import AsyncioScheduler


URL = "http://testserver/api/hello"

BODY = (
    b'data: {"message":"Hello World - Connected!","timestamp":"2024-01-01T00:00:00.000Z"}\n\n'
    b": heartbeat\n\n"
    b'data: {"message":"Hello World","timestamp":"2024-01-01T00:00:05.000Z"}\n\n'
)


class RecordingListener:
    """Listener that keeps every callback."""

    def __init__(self):
        self.calls = []

    def on_open(self):
        self.calls.append(("open", None))

    def on_message(self, data):
        self.calls.append(("message", data))

    def on_error(self, error=None):
        self.calls.append(("error", error))


def event_stream_response(request):
    return httpx.Response(
        200,
        headers={"content-type": "text/event-stream"},
        content=BODY,
    )


async def run_stream(handler, close_immediately=False):
    listener = RecordingListener()
    requests = []

    def recording_handler(request):
        requests.append(request)
        return handler(request)

    async with httpx.AsyncClient(transport=httpx.MockTransport(recording_handler)) as http:
        stream = EventSourceStream(URL, http, listener)
        if close_immediately:
            stream.close()
        await asyncio.gather(stream.task, return_exceptions=True)
    return listener.calls, requests


class TestEventSourceStream:
    """Callbacks delivered for one stream."""

    def test_open_messages_then_closed(self):
        calls, _ = asyncio.run(run_stream(event_stream_response))

        kinds = [kind for kind, _ in calls]
        assert kinds == ["open", "message", "message", "error"]
        assert '"Hello World - Connected!"' in calls[1][1]
        assert isinstance(calls[-1][1], StreamClosedError)

    def test_request_headers(self):
        _, requests = asyncio.run(run_stream(event_stream_response))

        assert requests[0].method == "GET"
        assert requests[0].headers["accept"] == "text/event-stream"
        assert requests[0].headers["cache-control"] == "no-cache"

    def test_non_200_is_an_error_without_open(self):
        calls, _ = asyncio.run(run_stream(lambda request: httpx.Response(503)))

        assert [kind for kind, _ in calls] == ["error"]
        assert isinstance(calls[0][1], StreamConnectionError)
        assert "503" in str(calls[0][1])

    def test_wrong_content_type_is_an_error(self):
        calls, _ = asyncio.run(
            run_stream(lambda request: httpx.Response(200, json={"message": "nope"}))
        )

        assert [kind for kind, _ in calls] == ["error"]
        assert isinstance(calls[0][1], StreamConnectionError)

    def test_network_error_is_reported(self):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        calls, _ = asyncio.run(run_stream(refuse))

        assert [kind for kind, _ in calls] == ["error"]
        assert isinstance(calls[0][1], httpx.ConnectError)

    def test_close_suppresses_callbacks(self):
        calls, _ = asyncio.run(run_stream(event_stream_response, close_immediately=True))

        assert calls == []


class TestClientOverHttp:
    """StreamClient wired to the httpx transport."""

    def test_receives_messages(self):
        async def scenario():
            async with httpx.AsyncClient(
                transport=httpx.MockTransport(event_stream_response)
            ) as http:
                client = StreamClient(
                    EventSourceStream.factory(URL, http),
                    AsyncioScheduler(),
                    policy=RetryPolicy(base_delay_ms=1000, jitter_ms=0),
                )
                client.connect()
                for _ in range(100):
                    if client.state is ConnectionState.RECONNECTING:
                        break
                    await asyncio.sleep(0.01)
                snapshot = client.store.snapshot()
                client.teardown()
                return snapshot

        snapshot = asyncio.run(scenario())

        assert snapshot.message.message == "Hello World"
        assert snapshot.state is ConnectionState.RECONNECTING
        assert snapshot.retry_count == 1

    def test_gives_up_after_budget(self):
        async def scenario():
            async with httpx.AsyncClient(
                transport=httpx.MockTransport(lambda request: httpx.Response(503))
            ) as http:
                client = StreamClient(
                    EventSourceStream.factory(URL, http),
                    AsyncioScheduler(),
                    policy=RetryPolicy(max_retries=3, base_delay_ms=1, max_delay_ms=5, jitter_ms=0),
                )
                client.connect()
                for _ in range(200):
                    if client.state is ConnectionState.DISCONNECTED:
                        break
                    await asyncio.sleep(0.01)
                client.teardown()
                return client

        client = asyncio.run(scenario())

        assert client.state is ConnectionState.DISCONNECTED
        assert client.store.error == "Connection failed after 3 attempts"
        assert client.attempts == 3
