from opentelemetry.trace import SpanKind

TRACE_ID = "4bf92f3577b34da6a3ce929d0e0e4736"
PARENT_SPAN_ID = "00f067aa0ba902b7"


def _server_spans(exporter):
    return [s for s in exporter.get_finished_spans() if s.kind == SpanKind.SERVER]


def test_each_request_gets_a_server_span(make_client, span_exporter):
    make_client().get("/foo/bar")

    server = _server_spans(span_exporter)
    assert len(server) == 1
    assert "/{path:path}" in server[0].name


def test_echo_span_is_child_of_request_span(make_client, span_exporter):
    make_client().get("/foo")

    spans = span_exporter.get_finished_spans()
    echo_span = next(s for s in spans if s.name == "echo")
    server = _server_spans(span_exporter)[0]
    assert echo_span.context.trace_id == server.context.trace_id


def test_inbound_trace_context_is_propagated(make_client, span_exporter):
    make_client().get(
        "/health",
        headers={"traceparent": f"00-{TRACE_ID}-{PARENT_SPAN_ID}-01"},
    )

    server = _server_spans(span_exporter)[0]
    assert f"{server.context.trace_id:032x}" == TRACE_ID
    assert f"{server.parent.span_id:016x}" == PARENT_SPAN_ID
    assert "/health" in server.name


def test_resource_names_the_service(make_client, span_exporter):
    make_client(service_name="demo-web-test").get("/x")
    server = _server_spans(span_exporter)[0]
    assert server.resource.attributes["service.name"] == "demo-web-test"
    assert server.resource.attributes["service.version"] == "1.0.0"
