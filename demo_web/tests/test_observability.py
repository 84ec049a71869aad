import io
import json
import logging
from types import SimpleNamespace

from opentelemetry.sdk.trace import TracerProvider

from demo_web.app.observability import otel
from demo_web.app.observability.logging import JsonFormatter


def test_json_formatter_emits_extra_fields():
    record = logging.LogRecord(
        "demo_web.request", logging.INFO, __file__, 1, "Completed %s", ("request",), None
    )
    record.path = "/foo"
    record.status_code = 200
    record.trace_id = None
    record.span_id = None

    line = json.loads(JsonFormatter().format(record))
    assert line["message"] == "Completed request"
    assert line["level"] == "INFO"
    assert line["path"] == "/foo"
    assert line["status_code"] == 200
    assert "trace_id" not in line


def test_request_logging_middleware_logs_each_request(make_client, caplog):
    with caplog.at_level(logging.INFO, logger="demo_web.request"):
        make_client().get("/randomResult?chance=abc")

    records = [r for r in caplog.records if r.name == "demo_web.request"]
    assert len(records) == 1
    assert records[0].method == "GET"
    assert records[0].path == "/randomResult"
    assert records[0].status_code == 422
    assert records[0].latency_ms >= 0


def test_metrics_endpoint_exposes_random_outcomes(make_client):
    client = make_client()
    client.get("/randomResult?chance=0")

    resp = client.get("/metrics")
    assert resp.status_code == 200
    assert 'demo_web_random_results_total{outcome="success"}' in resp.text
    assert "demo_web_http_requests_total" in resp.text


def test_metrics_can_be_disabled(make_client):
    resp = make_client(enable_metrics=False).get("/metrics")
    assert resp.status_code == 200
    assert resp.json()["uri"] == "/metrics"


def test_no_exporter_without_endpoint(make_context):
    ctx = make_context()
    assert ctx.settings.tracing.endpoint == ""
    assert otel.shutdown_tracer_provider(ctx.tracer_provider, 1.0) is True


def test_shutdown_reports_flush_timeout(monkeypatch):
    provider = TracerProvider()
    monkeypatch.setattr(provider, "force_flush", lambda timeout_millis: False)
    assert otel.shutdown_tracer_provider(provider, 0.1) is False


class _RaisingHandler(logging.Handler):
    def emit(self, record):
        raise RuntimeError("log sink unavailable")


class _RaisingFormatter(logging.Formatter):
    def format(self, record):
        raise RuntimeError("cannot format")


def _attach(handler):
    request_logger = logging.getLogger("demo_web.request")
    previous_level = request_logger.level
    request_logger.setLevel(logging.INFO)
    request_logger.addHandler(handler)

    def _detach():
        request_logger.removeHandler(handler)
        request_logger.setLevel(previous_level)

    return _detach


def test_raising_log_sink_does_not_drop_response(make_client):
    client = make_client(rng=SimpleNamespace(random=lambda: 0.9))
    detach = _attach(_RaisingHandler())
    try:
        resp = client.get("/randomResult?chance=0.5")
    finally:
        detach()

    assert resp.status_code == 200
    body = resp.json()
    assert body["message"] == "Success!"
    assert body["point"] == 0.9


def test_raising_log_formatter_does_not_drop_response(make_client):
    handler = logging.StreamHandler(io.StringIO())
    handler.setFormatter(_RaisingFormatter())
    client = make_client()
    detach = _attach(handler)
    try:
        resp = client.get("/foo/bar", headers={"X-Test": "1"})
    finally:
        detach()

    assert resp.status_code == 200
    assert resp.json()["uri"] == "/foo/bar"
    assert resp.json()["headers"]["X-Test"] == ["1"]
