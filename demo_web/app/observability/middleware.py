from __future__ import annotations

import sys
import time
import traceback

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from .logging import get_logger

logger = get_logger("request")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Logs each completed request (method, path, status, latency) with the
    trace_id/span_id injected by the logging factory.

    A log sink that raises is reported on stderr, the same way ``logging``
    reports its own handler errors, and the response is still returned.
    """

    async def dispatch(self, request: Request, call_next) -> Response:  # type: ignore[override]
        start = time.perf_counter()
        response = await call_next(request)
        latency_ms = (time.perf_counter() - start) * 1000.0

        try:
            logger.info(
                "Completed request",
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": response.status_code,
                    "latency_ms": round(latency_ms, 3),
                },
            )
        except Exception:
            traceback.print_exc(file=sys.stderr)
        return response
