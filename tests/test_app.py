"""
Application Tests
=================

HTTP surface of the feed server and the response relay.

Streaming GETs never finish on their own, so they are exercised by
driving the ASGI app directly and disconnecting after the first frame.
"""

import asyncio
import json

import pytest
from fastapi.testclient import TestClient

from livefeed import main
from livefeed.config import Settings
from livefeed.emitter import QueueSink, StreamEmitter, TerminationReason
from livefeed.main import create_app, relay_frames


@pytest.fixture
def app(monkeypatch, scheduler):
    """App whose emitter runs on the virtual scheduler."""
    monkeypatch.setattr(main, "create_emitter", lambda config: StreamEmitter(scheduler))
    return create_app(Settings())


@pytest.fixture
def http(app):
    return TestClient(app)


async def stream_until_first_frame(app, path="/api/hello"):
    """Issue a GET, wait for one body chunk, then disconnect."""
    messages = []
    first_body = asyncio.Event()
    request_sent = False

    async def receive():
        nonlocal request_sent
        if not request_sent:
            request_sent = True
            return {"type": "http.request", "body": b"", "more_body": False}
        await first_body.wait()
        return {"type": "http.disconnect"}

    async def send(message):
        messages.append(message)
        if message["type"] == "http.response.body" and message.get("body"):
            first_body.set()

    scope = {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": "GET",
        "scheme": "http",
        "path": path,
        "raw_path": path.encode(),
        "root_path": "",
        "query_string": b"",
        "headers": [(b"host", b"testserver"), (b"accept", b"text/event-stream")],
        "client": ("testclient", 50000),
        "server": ("testserver", 80),
    }
    await asyncio.wait_for(app(scope, receive, send), timeout=5)
    return messages


class TestServiceEndpoints:
    """Info and health endpoints."""

    def test_root(self, http):
        response = http.get("/")

        assert response.status_code == 200
        body = response.json()
        assert body["service"] == "livefeed"
        assert body["stream_path"] == "/api/hello"

    def test_health(self, http):
        response = http.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert response.json()["uptime_seconds"] >= 0


class TestMethodRejection:
    """Non-GET requests on the stream route."""

    @pytest.mark.parametrize("method", ["POST", "PUT", "DELETE", "PATCH"])
    def test_405_with_allow_header(self, http, method):
        response = http.request(method, "/api/hello")

        assert response.status_code == 405
        assert response.text == f"Method {method} Not Allowed"
        assert response.headers["allow"] == "GET"

    def test_head_is_rejected(self, http):
        response = http.head("/api/hello")

        assert response.status_code == 405
        assert response.headers["allow"] == "GET"

    def test_rejection_opens_nothing(self, http, scheduler):
        http.post("/api/hello")
        assert scheduler.pending == 0


class TestEventStream:
    """Streaming GET."""

    def test_headers_and_initial_frame(self, app):
        messages = asyncio.run(stream_until_first_frame(app))

        start = messages[0]
        assert start["type"] == "http.response.start"
        assert start["status"] == 200
        headers = {k.decode(): v.decode() for k, v in start["headers"]}
        assert headers["content-type"] == "text/event-stream"
        assert headers["cache-control"] == "no-cache, no-transform"
        assert headers["access-control-allow-origin"] == "*"
        assert headers["access-control-allow-methods"] == "GET"

        body = next(m["body"] for m in messages[1:] if m.get("body")).decode()
        assert body.startswith("data: ")
        assert json.loads(body[len("data: "):])["message"] == "Hello World - Connected!"

    def test_disconnect_stops_timers(self, app, scheduler):
        asyncio.run(stream_until_first_frame(app))

        assert scheduler.pending == 0

    def test_custom_path(self, monkeypatch, scheduler):
        monkeypatch.setattr(main, "create_emitter", lambda config: StreamEmitter(scheduler))
        settings = Settings.model_validate({"emitter": {"path": "/events"}})
        app = create_app(settings)

        messages = asyncio.run(stream_until_first_frame(app, "/events"))

        assert messages[0]["status"] == 200
        assert TestClient(app).post("/events").status_code == 405


class TestRelay:
    """Frames flowing from a QueueSink into the response body."""

    def test_ends_when_sink_closes(self, scheduler):
        async def scenario():
            sink = QueueSink()
            handle = StreamEmitter(scheduler).open(sink)
            scheduler.advance(5)
            sink.close()
            frames = [frame async for frame in relay_frames(sink, handle)]
            return handle, frames

        handle, frames = asyncio.run(scenario())

        assert len(frames) == 2
        assert handle.reason == TerminationReason.END
        assert scheduler.pending == 0

    def test_close_when_body_is_abandoned(self, scheduler):
        async def scenario():
            sink = QueueSink()
            handle = StreamEmitter(scheduler).open(sink)
            relay = relay_frames(sink, handle)
            first = await relay.__anext__()
            await relay.aclose()
            return handle, first

        handle, first = asyncio.run(scenario())

        assert "Hello World - Connected!" in first
        assert handle.reason == TerminationReason.CLOSE
        assert scheduler.pending == 0

    def test_cancelled_reader_closes_connection(self, scheduler):
        async def scenario():
            sink = QueueSink()
            handle = StreamEmitter(scheduler).open(sink)

            async def consume():
                async for _ in relay_frames(sink, handle):
                    pass

            task = asyncio.ensure_future(consume())
            await asyncio.sleep(0.01)
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
            return handle

        handle = asyncio.run(scenario())

        assert handle.reason == TerminationReason.CLOSE

    def test_slow_reader_counts_as_write_failure(self, scheduler):
        async def scenario():
            sink = QueueSink(maxsize=2)
            handle = StreamEmitter(scheduler).open(sink)
            scheduler.advance(10)
            frames = [frame async for frame in relay_frames(sink, handle)]
            return handle, frames

        handle, frames = asyncio.run(scenario())

        assert handle.reason == TerminationReason.WRITE_FAILED
        assert len(frames) == 2
        assert scheduler.pending == 0
