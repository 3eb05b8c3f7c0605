"""FastAPI application factory for the probe and metrics endpoints.

Usage::

    from slackgenie.api.app import create_app

    app = create_app(watcher=watcher, queue=queue, store=store)

``/healthz`` answers as long as the event loop is alive. ``/readyz`` returns
503 until the initial Pod list has been processed and the reconcile workers
are running. ``/metrics`` renders the default Prometheus registry.
"""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from slackgenie.api.schemas import HealthResponse, ReadinessResponse

_log = structlog.get_logger(component="api.app")


def create_app(watcher: Any = None, queue: Any = None, store: Any = None) -> FastAPI:
    """Create the probe/metrics application.

    Args:
        watcher: PodWatcher; readiness requires ``watcher.synced``.
        queue:   ReconcileQueue; readiness requires ``queue.running``.
        store:   DebounceStore; its size is reported on ``/readyz``.
    """
    from slackgenie import __version__

    app = FastAPI(
        title="slackgenie",
        summary="Kubernetes pod failure alerts for Slack",
        version=__version__,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    app.state.watcher = watcher
    app.state.queue = queue
    app.state.store = store

    @app.get("/healthz", response_model=HealthResponse)
    async def healthz() -> HealthResponse:
        return HealthResponse(status="ok", version=__version__)

    @app.get("/readyz", response_model=ReadinessResponse)
    async def readyz(request: Request) -> JSONResponse:
        state = request.app.state
        synced = bool(getattr(state.watcher, "synced", False))
        running = bool(getattr(state.queue, "running", False))
        body = ReadinessResponse(
            status="ready" if synced and running else "not_ready",
            watch_synced=synced,
            queue_running=running,
            queue_depth=int(getattr(state.queue, "depth", 0)),
            debounce_entries=len(state.store) if state.store is not None else 0,
        )
        return JSONResponse(status_code=200 if synced and running else 503, content=body.model_dump())

    @app.get("/metrics")
    async def metrics() -> Response:
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        _log.error("unhandled_exception", path=str(request.url.path), method=request.method, error=str(exc))
        return JSONResponse(status_code=500, content={"error": "INTERNAL_ERROR", "detail": "An unexpected error occurred."})

    return app
