"""
livefeed Main Application
=========================

FastAPI entry point for the event feed server.

Endpoints:
    GET  /           - Service information
    GET  /health     - Liveness probe (is process alive?)
    *    /api/hello  - Event stream (GET only; other methods get 405)

The stream route is registered for every method so that the emitter,
not the router, decides between 405 and a stream.
"""

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse, PlainTextResponse, StreamingResponse

from livefeed.config import Settings, settings, setup_logging
from livefeed.emitter import (
    ConnectionHandle,
    QueueSink,
    StreamEmitter,
    TerminationReason,
)
from livefeed.timers import AsyncioScheduler


logger = logging.getLogger(__name__)


STREAM_ROUTE_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


# =============================================================================
# Stream Relay
# =============================================================================

async def relay_frames(sink: QueueSink, handle: ConnectionHandle) -> AsyncIterator[str]:
    """
    Yield frames written to the sink until the connection ends.

    Maps how the response body stops onto the connection's termination:
        cancelled or closed by the server -> close
        exception                         -> error
        sink closed and drained           -> end
    """
    reason = TerminationReason.END
    error: Optional[BaseException] = None
    try:
        while True:
            frame = await sink.get()
            if frame is None:
                break
            yield frame
    except (asyncio.CancelledError, GeneratorExit):
        reason = TerminationReason.CLOSE
        raise
    except Exception as e:
        reason, error = TerminationReason.ERROR, e
        raise
    finally:
        handle.terminate(reason, error)


def create_emitter(config: Settings) -> StreamEmitter:
    return StreamEmitter(
        AsyncioScheduler(),
        data_interval_ms=config.emitter.data_interval_ms,
        heartbeat_interval_ms=config.emitter.heartbeat_interval_ms,
        initial_message=config.emitter.initial_message,
        message=config.emitter.message,
    )


# =============================================================================
# FastAPI Application
# =============================================================================

def create_app(config: Settings = settings) -> FastAPI:
    """
    Build the application.

    Args:
        config: Settings to build from (defaults to the loaded settings)
    """
    emitter = create_emitter(config)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        app.state.startup_time = time.time()
        logger.info(f"Starting {config.service.name} {config.service.version}")
        logger.info(
            f"Event stream at {config.emitter.path} "
            f"(data every {config.emitter.data_interval_ms}ms, "
            f"heartbeat every {config.emitter.heartbeat_interval_ms}ms)"
        )
        yield
        logger.info("Shutdown complete")

    app = FastAPI(
        title="livefeed",
        description="Best-effort live event feed over Server-Sent Events",
        version=config.service.version,
        lifespan=lifespan,
    )
    app.state.emitter = emitter
    app.state.startup_time = time.time()

    @app.get("/")
    async def root() -> JSONResponse:
        """Service information endpoint."""
        return JSONResponse({
            "service": config.service.name,
            "version": config.service.version,
            "status": "running",
            "stream_path": config.emitter.path,
        })

    @app.get("/health")
    async def health() -> JSONResponse:
        """
        Liveness probe - is the process alive?

        Always returns 200 if the service is running.
        """
        return JSONResponse({
            "status": "healthy",
            "uptime_seconds": round(time.time() - app.state.startup_time, 1),
        })

    async def event_stream(request: Request) -> Response:
        """Event stream endpoint."""
        rejection = emitter.accept(request.method)
        if rejection is not None:
            return PlainTextResponse(
                rejection.body,
                status_code=rejection.status,
                headers=rejection.headers,
            )

        sink = QueueSink(maxsize=config.emitter.queue_size)
        handle = emitter.open(sink)
        return StreamingResponse(
            relay_frames(sink, handle),
            status_code=sink.status or 200,
            headers=sink.headers,
        )

    app.add_api_route(
        config.emitter.path,
        event_stream,
        methods=STREAM_ROUTE_METHODS,
        include_in_schema=False,
    )

    return app


app = create_app()


# =============================================================================
# Main Entry Point
# =============================================================================

def main() -> None:
    import uvicorn

    setup_logging(settings)
    uvicorn.run(
        "livefeed.main:app",
        host=settings.server.host,
        port=settings.server.port,
        reload=False,
    )


if __name__ == "__main__":
    main()
