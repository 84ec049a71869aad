from __future__ import annotations

import random
import socket
from dataclasses import dataclass, field
from typing import Optional

from opentelemetry import trace
from opentelemetry.sdk.trace import SpanProcessor, TracerProvider

from ..health.reporter import HealthReporter
from ..observability.otel import build_tracer_provider
from .config import Settings


class StartupError(RuntimeError):
    """Raised when the process cannot be brought up; the entry point exits 1."""


@dataclass
class AppContext:
    """
    Process-wide state built once at startup and handed to ``create_app()``.

    Handlers read it through ``request.app.state.context``; nothing here is
    mutated per request.
    """

    settings: Settings
    hostname: str
    tracer_provider: TracerProvider
    health: HealthReporter = field(default_factory=HealthReporter)
    rng: random.Random = field(default_factory=random.Random)

    @property
    def tracer(self) -> trace.Tracer:
        return self.tracer_provider.get_tracer("demo_web")


def build_context(
    settings: Settings,
    hostname: Optional[str] = None,
    rng: Optional[random.Random] = None,
    span_processor: Optional[SpanProcessor] = None,
    install_global: bool = False,
) -> AppContext:
    """
    Resolve the hostname, build the tracer provider and a fresh health reporter.

    ``install_global`` registers the provider as the OpenTelemetry global,
    which only the real process entry point should do.
    """
    if hostname is None:
        try:
            hostname = socket.gethostname()
        except OSError as exc:
            raise StartupError(f"hostname lookup failed: {exc}") from exc

    try:
        tracer_provider = build_tracer_provider(settings.tracing, span_processor)
    except Exception as exc:
        raise StartupError(f"tracer provider construction failed: {exc}") from exc

    if install_global:
        trace.set_tracer_provider(tracer_provider)

    return AppContext(
        settings=settings,
        hostname=hostname,
        tracer_provider=tracer_provider,
        rng=rng or random.Random(),
    )
