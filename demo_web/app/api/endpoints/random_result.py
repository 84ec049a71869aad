from __future__ import annotations

import math
import re
import time

from fastapi import APIRouter, Depends, Request, Response

from ...core.context import AppContext
from ...observability.logging import get_logger
from ...observability.metrics import RANDOM_RESULTS
from ...schemas.response import RandomResultResponse, to_strict_json
from ..deps import get_context

logger = get_logger("api.random_result")

router = APIRouter(tags=["chaos"])

DEFAULT_CHANCE = "0.25"

SUCCESS_MESSAGE = "Success!"
FAILURE_MESSAGE = "Random failure!"

_DECIMAL = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?", re.ASCII)
_HEX = re.compile(
    r"[+-]?0[xX](?:[0-9a-fA-F]+\.?[0-9a-fA-F]*|\.[0-9a-fA-F]+)[pP][+-]?\d+",
    re.ASCII,
)
_SPECIAL = re.compile(r"[+-]?inf(?:inity)?|nan", re.IGNORECASE)


def parse_chance(raw: str) -> float:
    """
    Parse a decimal or hexadecimal (``0x1p-2``) float literal.

    Accepts ``inf``/``infinity`` (optionally signed) and ``nan``. Rejects
    surrounding whitespace, digit separators and finite literals that
    overflow a double. Raises ValueError on anything else.
    """
    if _SPECIAL.fullmatch(raw):
        return float(raw)

    if _HEX.fullmatch(raw):
        try:
            return float.fromhex(raw)
        except OverflowError as exc:
            raise ValueError(f"value out of range: {raw!r}") from exc

    if _DECIMAL.fullmatch(raw):
        value = float(raw)
        if math.isinf(value):
            raise ValueError(f"value out of range: {raw!r}")
        return value

    raise ValueError(f"invalid float literal: {raw!r}")


@router.get(
    "/randomResult",
    summary="Fail with the requested probability.",
)
async def random_result(request: Request, ctx: AppContext = Depends(get_context)) -> Response:
    """
    One Bernoulli trial per request.

    ``chance`` is the failure probability (default 0.25); only its first
    occurrence in the query counts. Any float is accepted; values outside
    [0, 1] just bias the trial. The request fails (500) when ``chance`` is
    greater than a sample drawn from [0, 1).
    """
    values = request.query_params.getlist("chance")
    raw = (values[0] if values else "") or DEFAULT_CHANCE
    try:
        chance_val = parse_chance(raw)
    except ValueError:
        logger.info("Unparseable chance", extra={"chance": raw})
        return Response(status_code=422)

    point = ctx.rng.random()

    if chance_val > point:
        status_code, message, outcome = 500, FAILURE_MESSAGE, "failure"
    else:
        status_code, message, outcome = 200, SUCCESS_MESSAGE, "success"

    result = RandomResultResponse(
        now=time.time_ns() // 1000,
        chance=chance_val,
        point=point,
        message=message,
    )

    try:
        body = to_strict_json(result)
    except ValueError as exc:
        logger.error("Failed to encode random result", extra={"error": str(exc)})
        return Response(status_code=503)

    RANDOM_RESULTS.labels(outcome=outcome).inc()
    return Response(content=body, status_code=status_code, media_type="application/json")
