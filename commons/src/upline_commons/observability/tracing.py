"""Shared tracing helpers (OpenTelemetry bootstrap and tracer lookup)."""

from __future__ import annotations

import os
import threading
from contextvars import Token

from opentelemetry import baggage, context, trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

_CONFIGURE_LOCK = threading.Lock()
_TRACING_CONFIGURED = False


def configure_tracing(*, service_name: str) -> None:
    """Configure OpenTelemetry tracing when an OTLP endpoint is provided.

    Without ``OTEL_EXPORTER_OTLP_ENDPOINT`` (or the traces-specific variant)
    this is a no-op. Requesting an exporter without an endpoint fails loudly.
    """

    global _TRACING_CONFIGURED
    with _CONFIGURE_LOCK:
        if _TRACING_CONFIGURED:
            return

        traces_exporter = (os.getenv("OTEL_TRACES_EXPORTER") or "").strip().lower()
        endpoint = os.getenv("OTEL_EXPORTER_OTLP_TRACES_ENDPOINT") or os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT")
        if traces_exporter == "none" or (not endpoint and not traces_exporter):
            _TRACING_CONFIGURED = True
            return
        if not endpoint:
            raise RuntimeError(
                "Tracing enabled but OTLP endpoint missing: set OTEL_EXPORTER_OTLP_ENDPOINT "
                "(or OTEL_EXPORTER_OTLP_TRACES_ENDPOINT), or set OTEL_TRACES_EXPORTER=none."
            )

        resolved_service_name = (os.getenv("OTEL_SERVICE_NAME") or service_name).strip()
        if not resolved_service_name:
            raise RuntimeError("service_name must be a non-empty string")

        provider = TracerProvider(resource=Resource.create({"service.name": resolved_service_name}))
        provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter()))
        trace.set_tracer_provider(provider)
        _TRACING_CONFIGURED = True


def get_tracer(name: str) -> trace.Tracer:
    """Return a tracer from the globally configured provider (no-op when unset)."""

    return trace.get_tracer(name)


def attach_baggage(values: dict[str, str]) -> Token[context.Context]:
    """Attach baggage values to the current context; returns a detach token."""

    ctx = context.get_current()
    for key, value in values.items():
        ctx = baggage.set_baggage(key, value, context=ctx)
    return context.attach(ctx)


__all__ = ["attach_baggage", "configure_tracing", "get_tracer"]
