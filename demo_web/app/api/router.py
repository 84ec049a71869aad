from __future__ import annotations

from fastapi import APIRouter

from ..core.config import FeatureSettings
from ..observability.metrics import metrics_router
from .endpoints.echo import router as echo_router
from .endpoints.health import router as health_router
from .endpoints.random_result import router as random_result_router


def build_router(features: FeatureSettings) -> APIRouter:
    """
    Assemble the HTTP surface.

    Order matters: routes are matched first-registered-first, and the echo
    route's ``/{path:path}`` matches everything, so it goes last.
    """
    router = APIRouter()

    router.include_router(health_router)
    if features.enable_metrics:
        router.include_router(metrics_router)
    if features.enable_random_result:
        router.include_router(random_result_router)
    router.include_router(echo_router)

    return router
