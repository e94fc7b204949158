"""OpenTelemetry tracing adapters.

This module adapts OpenTelemetry tracers to the ``TracerPort`` contract used
by the router and message processor, and provides helpers for working with
the current span.
"""

from collections.abc import Mapping
from typing import Any, Optional

from opentelemetry import trace
from opentelemetry.trace import (
    NonRecordingSpan,
    Span,
    SpanContext,
    Status,
    StatusCode,
    get_current_span as _get_current_span,
)

from switchboard.domain.ports import NoopTracer, TracerPort
from switchboard.infrastructure.telemetry.config import get_tracer


def _clean_attributes(attributes: Optional[Mapping[str, Any]]) -> dict[str, Any]:
    """OTel attributes must be primitives; drop None and stringify the rest."""
    cleaned: dict[str, Any] = {}
    for key, value in (attributes or {}).items():
        if value is None:
            continue
        if isinstance(value, (str, bool, int, float)):
            cleaned[key] = value
        else:
            cleaned[key] = str(value)
    return cleaned


def get_current_span() -> Span:
    """Get the current span.

    Returns:
        Current span (non-recording span if none exists)
    """
    span = _get_current_span()
    if span is None:
        return NonRecordingSpan(SpanContext(trace_id=0, span_id=0, is_remote=False))
    return span


def set_span_error(exception: BaseException, span: Optional[Span] = None) -> None:
    """Record an exception and set the span status to error.

    Args:
        exception: The exception to record
        span: Span to mark (defaults to the current span)
    """
    span = span or get_current_span()
    if not isinstance(span, NonRecordingSpan):
        span.record_exception(exception)
        span.set_status(Status(StatusCode.ERROR, str(exception)))


class OpenTelemetrySpan:
    """``SpanPort`` backed by an OpenTelemetry span."""

    def __init__(self, span: Span):
        self._span = span

    @property
    def otel_span(self) -> Span:
        return self._span

    def set_attribute(self, key: str, value: Any) -> None:
        cleaned = _clean_attributes({key: value})
        if cleaned:
            self._span.set_attribute(key, cleaned[key])

    def add_event(self, name: str, attributes: Optional[Mapping[str, Any]] = None) -> None:
        self._span.add_event(name, _clean_attributes(attributes))

    def set_status(self, ok: bool, description: Optional[str] = None) -> None:
        if ok:
            self._span.set_status(Status(StatusCode.OK))
        else:
            self._span.set_status(Status(StatusCode.ERROR, description))

    def record_exception(self, exception: BaseException) -> None:
        set_span_error(exception, self._span)

    def end(self) -> None:
        self._span.end()


class OpenTelemetryTracer:
    """``TracerPort`` backed by an OpenTelemetry tracer."""

    def __init__(self, tracer: trace.Tracer):
        self._tracer = tracer

    def start_span(
        self, name: str, attributes: Optional[Mapping[str, Any]] = None
    ) -> OpenTelemetrySpan:
        span = self._tracer.start_span(name, attributes=_clean_attributes(attributes))
        return OpenTelemetrySpan(span)


def create_tracer(instrumentation_name: str = "switchboard") -> TracerPort:
    """Build the tracer for the processor, or a no-op tracer when telemetry is off."""
    tracer = get_tracer(instrumentation_name)
    if tracer is None:
        return NoopTracer()
    return OpenTelemetryTracer(tracer)
