"""OpenTelemetry integration for Switchboard.

Provides provider configuration, a ``TracerPort`` adapter for routing and
processing spans, and counters for routing decisions and handoffs.
"""

from switchboard.infrastructure.telemetry.config import (
    configure_telemetry,
    get_meter,
    get_tracer,
    shutdown_telemetry,
)
from switchboard.infrastructure.telemetry.metrics import (
    record_handoff,
    record_message_duration,
    record_routing_decision,
)
from switchboard.infrastructure.telemetry.tracing import (
    OpenTelemetrySpan,
    OpenTelemetryTracer,
    create_tracer,
    get_current_span,
    set_span_error,
)

__all__ = [
    "OpenTelemetrySpan",
    "OpenTelemetryTracer",
    "configure_telemetry",
    "create_tracer",
    "get_current_span",
    "get_meter",
    "get_tracer",
    "record_handoff",
    "record_message_duration",
    "record_routing_decision",
    "set_span_error",
    "shutdown_telemetry",
]
