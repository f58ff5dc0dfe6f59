"""
OpenTelemetry tracing setup.
"""

from typing import Any

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from opentelemetry.trace import Span, Tracer

from drainqueue import __version__
from drainqueue.config import get_settings


def setup_tracing(enable_console_export: bool = False) -> Tracer:
    """
    Install an SDK tracer provider as the global provider.

    Applications that already configure OpenTelemetry do not need this;
    the queue picks up whatever global provider is set.

    Args:
        enable_console_export: If True, also export spans to console.

    Returns:
        Tracer: The tracer instance.
    """
    settings = get_settings()

    resource = Resource.create(
        {
            "service.name": settings.otel_service_name,
            "service.version": __version__,
        }
    )

    provider = TracerProvider(resource=resource)

    if enable_console_export:
        provider.add_span_processor(
            BatchSpanProcessor(ConsoleSpanExporter())
        )

    trace.set_tracer_provider(provider)

    return get_tracer()


def get_tracer() -> Tracer:
    """
    Get a tracer from the global provider.

    Returns:
        Tracer: The tracer instance (no-op until a provider is installed).
    """
    return trace.get_tracer(get_settings().otel_service_name, __version__)


def start_span(name: str, **attributes: Any) -> Span:
    """
    Start a span that the caller ends explicitly.

    Processing completes through a continuation that may fire long after
    the call that started it returned, so the span is not bound to the
    current context.

    Args:
        name: Span name.
        **attributes: Span attributes. None values are skipped.

    Returns:
        The started span.
    """
    span = get_tracer().start_span(name)
    for key, value in attributes.items():
        if value is not None:
            span.set_attribute(key, str(value))
    return span
