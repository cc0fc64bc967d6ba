"""Trace correlation read from the active OpenTelemetry context."""

from __future__ import annotations

from collections.abc import Callable
from typing import NamedTuple

from opentelemetry import trace


class TraceContext(NamedTuple):
    """Hex-encoded identifiers of the current span."""

    trace_id: str
    span_id: str


TraceContextProvider = Callable[[], "TraceContext | None"]


def current_trace_context() -> TraceContext | None:
    """Return the current trace/span ids, or None outside a valid span."""
    span_context = trace.get_current_span().get_span_context()
    if not span_context.is_valid:
        return None
    return TraceContext(
        trace_id=trace.format_trace_id(span_context.trace_id),
        span_id=trace.format_span_id(span_context.span_id),
    )


def set_span_attribute(key: str, value: str) -> None:
    """Attach an attribute to the current span when it is recording."""
    span = trace.get_current_span()
    if span.is_recording():
        span.set_attribute(key, value)
