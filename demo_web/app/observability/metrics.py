from __future__ import annotations

import time
from typing import Awaitable, Callable

from fastapi import APIRouter, Request, Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.routing import Match

REQUEST_COUNTER = Counter(
    "demo_web_http_requests_total",
    "Total HTTP requests handled by the service",
    ["method", "route", "status_code"],
)

REQUEST_LATENCY = Histogram(
    "demo_web_http_request_latency_seconds",
    "Latency of HTTP requests in seconds",
    ["method", "route"],
)

RANDOM_RESULTS = Counter(
    "demo_web_random_results_total",
    "Outcomes of the failure-injection endpoint",
    ["outcome"],
)


def _route_template(request: Request) -> str:
    # Label by route template; raw paths through the catch-all are unbounded.
    for route in request.app.router.routes:
        match, _ = route.matches(request.scope)
        if match == Match.FULL:
            return getattr(route, "path", request.url.path)
    return "unmatched"


class MetricsMiddleware(BaseHTTPMiddleware):
    """
    Middleware that tracks basic HTTP metrics.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        start = time.perf_counter()
        response = await call_next(request)
        latency = time.perf_counter() - start

        route = _route_template(request)

        if route != "/metrics":
            REQUEST_COUNTER.labels(
                method=request.method,
                route=route,
                status_code=response.status_code,
            ).inc()

            REQUEST_LATENCY.labels(
                method=request.method,
                route=route,
            ).observe(latency)

        return response


metrics_router = APIRouter(tags=["metrics"])


@metrics_router.get("/metrics")
async def metrics() -> Response:
    """
    Prometheus metrics endpoint.
    """
    data: bytes = generate_latest()
    return Response(content=data, media_type=CONTENT_TYPE_LATEST)
