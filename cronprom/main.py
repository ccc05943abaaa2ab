from __future__ import annotations

"""FastAPI app entry: push endpoint, health check and Prometheus metrics."""

import uuid
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request, Response

from cronprom.schemas.push_io import HealthResponse
from cronprom.services.collector import MetricCollector
from cronprom.services.exposition import CONTENT_TYPE
from cronprom.services.logging import get_logger
from cronprom.version import __version__
from cronprom.web.push import router as push_router


logger = get_logger()


def create_app(collector: MetricCollector) -> FastAPI:
    """Build the app around a fully built collector.

    The registry must be complete before the first request is served, so the
    collector is passed in rather than created lazily.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("startup", metrics=len(collector.registry))
        yield
        logger.info("shutdown")

    app = FastAPI(title="cronprom", version=__version__, lifespan=lifespan)
    app.state.collector = collector
    app.include_router(push_router)

    @app.middleware("http")
    async def add_trace_id(request: Request, call_next):
        trace_id = request.headers.get("X-Trace-Id") or uuid.uuid4().hex
        structlog.contextvars.bind_contextvars(trace_id=trace_id)
        try:
            response = await call_next(request)
        finally:
            structlog.contextvars.clear_contextvars()
        return response

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse()

    @app.get("/metrics")
    async def metrics_endpoint() -> Response:
        return Response(content=collector.snapshot(), media_type=CONTENT_TYPE)

    return app
