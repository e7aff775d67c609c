"""Entrepot observability: optional OpenTelemetry tracing."""

from entrepot.observability.tracing import configure_tracing, get_current_trace_id

__all__ = ["configure_tracing", "get_current_trace_id"]
