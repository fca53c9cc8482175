from opentelemetry import baggage, context

from upline_commons.observability import tracing


def test_configure_tracing_is_noop_without_endpoint(monkeypatch) -> None:
    monkeypatch.delenv("OTEL_EXPORTER_OTLP_ENDPOINT", raising=False)
    monkeypatch.delenv("OTEL_EXPORTER_OTLP_TRACES_ENDPOINT", raising=False)
    monkeypatch.delenv("OTEL_TRACES_EXPORTER", raising=False)
    monkeypatch.setattr(tracing, "_TRACING_CONFIGURED", False)

    tracing.configure_tracing(service_name="upline-ledger")

    assert tracing._TRACING_CONFIGURED is True


def test_configure_tracing_requires_endpoint_when_exporter_requested(monkeypatch) -> None:
    monkeypatch.delenv("OTEL_EXPORTER_OTLP_ENDPOINT", raising=False)
    monkeypatch.delenv("OTEL_EXPORTER_OTLP_TRACES_ENDPOINT", raising=False)
    monkeypatch.setenv("OTEL_TRACES_EXPORTER", "otlp")
    monkeypatch.setattr(tracing, "_TRACING_CONFIGURED", False)

    try:
        tracing.configure_tracing(service_name="upline-ledger")
    except RuntimeError as exc:
        assert "OTLP endpoint missing" in str(exc)
    else:  # pragma: no cover
        raise AssertionError("expected RuntimeError")


def test_attach_baggage_is_visible_until_detached() -> None:
    token = tracing.attach_baggage({"request_id": "r-1"})
    try:
        assert baggage.get_baggage("request_id") == "r-1"
    finally:
        context.detach(token)

    assert baggage.get_baggage("request_id") is None
