from __future__ import annotations

from fastapi import FastAPI
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import SERVICE_NAME, SERVICE_VERSION, Resource
from opentelemetry.sdk.trace import SpanProcessor, TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, SpanExporter
from opentelemetry.sdk.trace.sampling import ALWAYS_ON

from ..core.config import TracingSettings
from .logging import get_logger

logger = get_logger("otel")


def _build_exporter(cfg: TracingSettings) -> SpanExporter:
    if cfg.protocol == "grpc":
        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import (
            OTLPSpanExporter as GrpcSpanExporter,
        )

        return GrpcSpanExporter(endpoint=cfg.endpoint, insecure=True)

    from opentelemetry.exporter.otlp.proto.http.trace_exporter import (
        OTLPSpanExporter as HttpSpanExporter,
    )

    return HttpSpanExporter(endpoint=cfg.endpoint)


def build_tracer_provider(
    cfg: TracingSettings, span_processor: SpanProcessor | None = None
) -> TracerProvider:
    """
    Build the process tracer provider.

    Every span is sampled. When ``cfg.endpoint`` is empty no exporter is
    attached and spans are only kept in-process (log correlation still works).
    ``span_processor`` lets callers attach their own processor, e.g. an
    in-memory exporter.
    """
    resource = Resource(
        attributes={
            SERVICE_NAME: cfg.service_name,
            SERVICE_VERSION: cfg.service_version,
        }
    )

    tracer_provider = TracerProvider(resource=resource, sampler=ALWAYS_ON)

    if cfg.endpoint:
        tracer_provider.add_span_processor(BatchSpanProcessor(_build_exporter(cfg)))
        logger.info(
            "Trace export enabled",
            extra={"endpoint": cfg.endpoint, "protocol": cfg.protocol},
        )
    else:
        logger.info("Trace export disabled")

    if span_processor is not None:
        tracer_provider.add_span_processor(span_processor)

    return tracer_provider


def instrument_app(app: FastAPI, tracer_provider: TracerProvider) -> None:
    """
    Create a server span per request, named after the matched route, with
    inbound trace context extracted from the request headers.
    """
    FastAPIInstrumentor.instrument_app(app, tracer_provider=tracer_provider)


def shutdown_tracer_provider(tracer_provider: TracerProvider, timeout_seconds: float) -> bool:
    """
    Flush pending spans within ``timeout_seconds`` and shut the provider down.

    Returns False if the flush did not complete in time.
    """
    flushed = tracer_provider.force_flush(timeout_millis=int(timeout_seconds * 1000))
    tracer_provider.shutdown()
    if not flushed:
        logger.critical(
            "Trace flush did not complete before timeout",
            extra={"timeout_seconds": timeout_seconds},
        )
    return flushed
