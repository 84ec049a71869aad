from __future__ import annotations

import time
from typing import Dict, List

from fastapi import APIRouter, Depends, Request, Response

from ...core.context import AppContext
from ...observability.logging import get_logger
from ...schemas.response import EchoResponse, to_strict_json
from ..deps import get_context

logger = get_logger("api.echo")

router = APIRouter(tags=["echo"])


def canonical_header_key(name: str) -> str:
    """``x-forwarded-for`` -> ``X-Forwarded-For``."""
    return "-".join(part[:1].upper() + part[1:].lower() for part in name.split("-"))


def request_target(request: Request) -> str:
    """The request-target as received: raw path plus query string."""
    raw_path = request.scope.get("raw_path")
    path = raw_path.decode("latin-1").split("?", 1)[0] if raw_path else request.scope["path"]
    query = request.scope.get("query_string", b"")
    if query:
        return f"{path}?{query.decode('latin-1')}"
    return path


def collect_headers(request: Request) -> Dict[str, List[str]]:
    """Request headers by canonical name, values in arrival order; Host is left out."""
    headers: Dict[str, List[str]] = {}
    for key, value in request.headers.raw:
        if key.lower() == b"host":
            continue
        name = canonical_header_key(key.decode("latin-1"))
        headers.setdefault(name, []).append(value.decode("latin-1"))
    return headers


@router.get(
    "/{path:path}",
    summary="Echo request metadata back to the caller.",
)
async def echo(request: Request, ctx: AppContext = Depends(get_context)) -> Response:
    with ctx.tracer.start_as_current_span("echo"):
        build = ctx.settings.build
        result = EchoResponse(
            now=time.time_ns() // 1000,
            uri=request_target(request),
            headers=collect_headers(request),
            hostname=ctx.hostname,
            git_hash=build.hash,
            git_branch=build.branch,
        )

        try:
            body = to_strict_json(result)
        except (TypeError, ValueError) as exc:
            logger.error("Failed to encode echo response", extra={"error": str(exc)})
            return Response(status_code=503)

    return Response(content=body, media_type="application/json")
