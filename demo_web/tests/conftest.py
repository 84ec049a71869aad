from typing import Any, Optional

import pytest
from fastapi.testclient import TestClient
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from demo_web.app.core.config import Settings, get_settings
from demo_web.app.core.context import AppContext, build_context
from demo_web.app.main import create_app

_ENV_VARS = (
    "GIT_BRANCH",
    "GIT_HASH",
    "JAEGER_TRACE_URL",
    "DEMO_WEB_ENABLE_RANDOM_RESULT",
    "DEMO_WEB_ENABLE_METRICS",
    "DEMO_WEB_PORT",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def span_exporter() -> InMemorySpanExporter:
    return InMemorySpanExporter()


@pytest.fixture
def make_context(span_exporter):
    def _make(rng: Optional[Any] = None, **settings_kwargs: Any) -> AppContext:
        settings = Settings(_env_file=None, **settings_kwargs)
        return build_context(
            settings,
            hostname="testhost",
            rng=rng,
            span_processor=SimpleSpanProcessor(span_exporter),
        )

    return _make


@pytest.fixture
def make_client(make_context):
    def _make(ctx: Optional[AppContext] = None, **kwargs: Any) -> TestClient:
        return TestClient(create_app(ctx or make_context(**kwargs)))

    return _make
