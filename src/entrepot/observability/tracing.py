"""OpenTelemetry setup for Entrepot.

Tracing is off unless ENTREPOT_OTEL_ENABLED=1. When on, every storage
backend operation produces one span (see entrepot.tracing). Settings are
loaded by entrepot.config.load_tracing_settings.

Environment Variables:
    ENTREPOT_OTEL_ENABLED: "1" to enable tracing (default: disabled)
    ENTREPOT_REQUIRE_OTEL: "1" to raise TracingConfigError if setup fails
    ENTREPOT_OTEL_SERVICE_NAME: service.name resource attribute (default: "entrepot")
    ENTREPOT_OTEL_EXPORTER: "otlp" or "console" (default: "otlp")
    ENTREPOT_OTEL_EXPORTER_OTLP_ENDPOINT: OTLP collector endpoint (optional)
    ENTREPOT_OTEL_EXPORTER_OTLP_PROTOCOL: "grpc" or "http" (default: "grpc")
    ENTREPOT_OTEL_TEST_CAPTURE: "1" to keep spans in memory for tests
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Any

from entrepot.config import (
    ENV_OTEL_ENABLED,
    ENV_OTEL_TEST_CAPTURE,
    ENV_REQUIRE_OTEL,
    TracingSettings,
    is_tracing_enabled,
    is_tracing_required,
    load_tracing_settings,
)
from entrepot.errors import EntrepotError

if TYPE_CHECKING:
    from opentelemetry.sdk.trace import ReadableSpan, SpanProcessor

__all__ = [
    "ENV_OTEL_ENABLED",
    "ENV_OTEL_TEST_CAPTURE",
    "ENV_REQUIRE_OTEL",
    "TracingConfigError",
    "clear_test_spans",
    "configure_tracing",
    "get_current_trace_id",
    "get_test_spans",
    "is_tracing_enabled",
    "reset_tracing",
]

logger = logging.getLogger(__name__)

_lock = threading.Lock()
_tracer_provider: Any = None
_test_exporter: Any = None


class TracingConfigError(EntrepotError):
    """Raised when tracing setup fails and ENTREPOT_REQUIRE_OTEL=1."""


def _span_processor(settings: TracingSettings) -> SpanProcessor:
    """Build the span processor for the configured exporter."""
    global _test_exporter

    from opentelemetry.sdk.trace.export import BatchSpanProcessor, SimpleSpanProcessor

    if settings.test_capture:
        from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

        _test_exporter = InMemorySpanExporter()
        return SimpleSpanProcessor(_test_exporter)

    if settings.exporter == "console":
        from opentelemetry.sdk.trace.export import ConsoleSpanExporter

        return SimpleSpanProcessor(ConsoleSpanExporter())

    kwargs: dict[str, Any] = {}
    if settings.otlp_endpoint:
        kwargs["endpoint"] = settings.otlp_endpoint
    if settings.otlp_protocol == "http":
        from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
    else:
        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import (  # type: ignore[assignment]
            OTLPSpanExporter,
        )
    return BatchSpanProcessor(OTLPSpanExporter(**kwargs))


def _install(settings: TracingSettings) -> None:
    global _tracer_provider

    from opentelemetry import trace
    from opentelemetry.sdk.resources import Resource
    from opentelemetry.sdk.trace import TracerProvider

    provider = TracerProvider(resource=Resource.create({"service.name": settings.service_name}))
    provider.add_span_processor(_span_processor(settings))
    trace.set_tracer_provider(provider)
    _tracer_provider = provider
    logger.info(
        "OpenTelemetry tracing configured: service=%s exporter=%s",
        settings.service_name,
        "in-memory" if settings.test_capture else settings.exporter,
    )


def configure_tracing() -> bool:
    """Configure OpenTelemetry tracing from the environment.

    Idempotent. The global TracerProvider can only be installed once per
    process, so later calls reuse it.

    Returns:
        True if tracing is enabled and a provider is installed.

    Raises:
        TracingConfigError: If setup fails and ENTREPOT_REQUIRE_OTEL=1.
    """
    if not is_tracing_enabled():
        logger.debug("OpenTelemetry tracing disabled (%s not set)", ENV_OTEL_ENABLED)
        return False

    with _lock:
        if _tracer_provider is not None:
            return True
        try:
            _install(load_tracing_settings())
        except Exception as e:
            logger.error("Failed to configure OpenTelemetry tracing: %s", e)
            if is_tracing_required():
                raise TracingConfigError(
                    f"OpenTelemetry tracing required but configuration failed: {e}"
                ) from e
            return False
    return True


def get_current_trace_id() -> str | None:
    """Return the active trace id as 32 hex characters, or None."""
    from opentelemetry import trace

    ctx = trace.get_current_span().get_span_context()
    if not ctx.is_valid:
        return None
    return format(ctx.trace_id, "032x")


def get_test_spans() -> list[ReadableSpan]:
    """Return spans captured by the in-memory exporter (test capture only)."""
    if _test_exporter is None:
        return []
    return list(_test_exporter.get_finished_spans())


def clear_test_spans() -> None:
    """Drop spans captured by the in-memory exporter."""
    if _test_exporter is not None:
        _test_exporter.clear()


def reset_tracing() -> None:
    """Reset tracing state between tests.

    The installed TracerProvider and test exporter are kept (OpenTelemetry
    does not allow replacing them); only captured spans are dropped.
    """
    clear_test_spans()
