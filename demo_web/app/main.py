from __future__ import annotations

import asyncio
import contextlib
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from .api.router import build_router
from .core.context import AppContext
from .observability import otel
from .observability.logging import get_logger
from .observability.metrics import MetricsMiddleware
from .observability.middleware import RequestLoggingMiddleware

logger = get_logger("main")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    ctx: AppContext = app.state.context
    checker = asyncio.create_task(
        ctx.health.run_checkers(ctx.settings.features.health_check_interval_seconds)
    )
    try:
        yield
    finally:
        checker.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await checker

        timeout = ctx.settings.tracing.shutdown_timeout_seconds
        app.state.trace_flushed = await asyncio.to_thread(
            otel.shutdown_tracer_provider, ctx.tracer_provider, timeout
        )


def create_app(ctx: AppContext) -> FastAPI:
    """
    Application factory.

    - Stores the AppContext on ``app.state`` for handlers
    - Registers health, metrics, failure-injection and echo routes, in that order
    - Attaches request logging, metrics and OpenTelemetry tracing
    - Runs the health checker loop for the lifetime of the app and flushes
      traces on shutdown
    """
    features = ctx.settings.features

    # Docs routes would shadow the catch-all echo route.
    app = FastAPI(
        title=ctx.settings.tracing.service_name,
        version=ctx.settings.tracing.service_version,
        openapi_url=None,
        docs_url=None,
        redoc_url=None,
        lifespan=lifespan,
    )
    app.state.context = ctx
    app.state.trace_flushed = True

    app.include_router(build_router(features))

    app.add_middleware(RequestLoggingMiddleware)
    if features.enable_metrics:
        app.add_middleware(MetricsMiddleware)

    # Outermost, so logging and metrics run inside the request span.
    otel.instrument_app(app, ctx.tracer_provider)

    return app
