from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ...core.context import AppContext
from ..deps import get_context

router = APIRouter(tags=["health"])


@router.get(
    "/health",
    summary="Service health check",
)
async def health_check(ctx: AppContext = Depends(get_context)) -> JSONResponse:
    """
    Current snapshot from the periodic health reporter.
    200 when every critical check passes, 503 otherwise.
    """
    status = ctx.health.status
    return JSONResponse(
        content=status.model_dump(mode="json"),
        status_code=200 if status.healthy else 503,
    )
