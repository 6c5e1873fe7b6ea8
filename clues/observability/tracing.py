"""
OpenTelemetry tracing setup.

Spans are always created through the OpenTelemetry API. Until
``setup_tracing`` installs an SDK provider they are non-recording no-ops.
"""

from typing import Any

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from opentelemetry.trace import Tracer

from clues import __version__
from clues.config import get_settings

# Global tracer instance
_tracer: Tracer | None = None


def setup_tracing(enable_console_export: bool = False) -> Tracer:
    """
    Set up OpenTelemetry tracing.

    Spans go to the OTLP collector at ``otel_exporter_otlp_endpoint``; an
    empty endpoint turns that exporter off.

    Args:
        enable_console_export: If True, also export spans to console.

    Returns:
        Tracer: The tracer instance.
    """
    global _tracer

    settings = get_settings()

    resource = Resource.create(
        {
            "service.name": settings.otel_service_name,
            "service.version": __version__,
        }
    )

    provider = TracerProvider(resource=resource)

    if settings.otel_exporter_otlp_endpoint:
        otlp_exporter = OTLPSpanExporter(
            endpoint=settings.otel_exporter_otlp_endpoint,
            insecure=True,
        )
        provider.add_span_processor(BatchSpanProcessor(otlp_exporter))

    if enable_console_export:
        provider.add_span_processor(
            BatchSpanProcessor(ConsoleSpanExporter())
        )

    trace.set_tracer_provider(provider)

    _tracer = provider.get_tracer(settings.otel_service_name, __version__)

    return _tracer


def get_tracer() -> Tracer:
    """
    Get the tracer instance.

    Falls back to a tracer from the globally installed provider (a no-op one
    unless something else configured OpenTelemetry) when ``setup_tracing``
    has not been called.
    """
    if _tracer is None:
        return trace.get_tracer(get_settings().otel_service_name)
    return _tracer


def set_span_attributes(**attributes: Any) -> None:
    """
    Attach attributes to the current span, skipping None values.

    Args:
        **attributes: Span attributes.
    """
    current_span = trace.get_current_span()
    if not current_span.is_recording():
        return
    for key, value in attributes.items():
        if value is not None:
            current_span.set_attribute(f"clues.{key}", str(value))
