from __future__ import annotations

from typing import Any

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    ConsoleSpanExporter,
    SimpleSpanProcessor,
)
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from leadops.core.config import Settings, get_settings
from leadops.middleware.correlation_id import CORRELATION_HEADER, is_acceptable_correlation_id


_exporters_attached = False
_provider: TracerProvider | None = None


def _resource(service_name: str, settings: Settings) -> Resource:
    return Resource.create(
        {
            "service.name": service_name,
            "service.version": settings.app_version,
            "deployment.environment": settings.app_env,
        }
    )


def _get_or_create_provider(service_name: str, settings: Settings) -> TracerProvider:
    global _provider

    if _provider is None:
        _provider = TracerProvider(resource=_resource(service_name, settings))
        trace.set_tracer_provider(_provider)
    return _provider


def setup_otel(service_name: str, settings: Settings | None = None) -> TracerProvider | None:
    """Install the process tracer provider and attach the configured exporters once."""
    global _exporters_attached

    settings = settings or get_settings()
    if not settings.otel_enabled:
        return None

    provider = _get_or_create_provider(service_name, settings)
    if _exporters_attached:
        return provider

    if settings.otel_exporter_otlp_endpoint:
        provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=settings.otel_exporter_otlp_endpoint)))
    if settings.otel_console_exporter:
        provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))

    _exporters_attached = True
    return provider


def setup_inmemory_otel(service_name: str = "leadops-api") -> InMemorySpanExporter:
    provider = _get_or_create_provider(service_name, get_settings())
    exporter = InMemorySpanExporter()
    provider.add_span_processor(SimpleSpanProcessor(exporter))
    return exporter


def get_tracer(name: str) -> trace.Tracer:
    return trace.get_tracer(name)


def get_fastapi_server_request_hook():
    def server_request_hook(span, scope: dict[str, Any]) -> None:  # type: ignore[no-untyped-def]
        if span is None or not span.is_recording():
            return
        headers = dict(scope.get("headers", []))
        raw = headers.get(CORRELATION_HEADER.encode("latin-1"))
        if raw:
            value = raw.decode("latin-1")
            if is_acceptable_correlation_id(value):
                span.set_attribute("correlation_id", value)

    return server_request_hook
