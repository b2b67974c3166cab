"""Observability: structlog configuration and OpenTelemetry tracing."""

from src.infrastructure.observability.processors import (
    add_trace_context,
    redact_sensitive_fields,
)
from src.infrastructure.observability.setup import (
    configure_logging,
    init_tracing,
    shutdown_tracing,
)
from src.infrastructure.observability.tracing import (
    add_span_attributes,
    get_current_span_id,
    get_current_trace_id,
    get_tracer,
    traced,
)

__all__ = [
    "add_span_attributes",
    "add_trace_context",
    "configure_logging",
    "get_current_span_id",
    "get_current_trace_id",
    "get_tracer",
    "init_tracing",
    "redact_sensitive_fields",
    "shutdown_tracing",
    "traced",
]
