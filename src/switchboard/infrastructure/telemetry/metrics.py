"""OpenTelemetry metrics for routing and handoffs.

Instruments are created lazily on first use and skipped entirely when
telemetry is disabled.
"""

from collections.abc import Mapping
from typing import Any, Optional

from opentelemetry.metrics import Counter, Histogram

from switchboard.infrastructure.telemetry.config import get_meter

ROUTING_DECISIONS = "switchboard.routing.decisions"
HANDOFFS = "switchboard.handoffs"
MESSAGE_DURATION = "switchboard.message.duration"

_COUNTERS: dict[str, Counter] = {}
_HISTOGRAMS: dict[str, Histogram] = {}


def _reset_instruments() -> None:
    """Forget cached instruments (for testing)."""
    _COUNTERS.clear()
    _HISTOGRAMS.clear()


def create_counter(name: str, description: str, unit: str = "") -> Optional[Counter]:
    """Create a counter metric.

    Args:
        name: Metric name
        description: Metric description
        unit: Metric unit (e.g., "requests")

    Returns:
        Counter instance or None if telemetry is disabled
    """
    meter = get_meter()
    if meter is None:
        return None

    return meter.create_counter(name=name, description=description, unit=unit)


def create_histogram(name: str, description: str, unit: str = "") -> Optional[Histogram]:
    """Create a histogram metric.

    Returns:
        Histogram instance or None if telemetry is disabled
    """
    meter = get_meter()
    if meter is None:
        return None

    return meter.create_histogram(name=name, description=description, unit=unit)


def _counter(name: str, description: str, unit: str) -> Optional[Counter]:
    if name not in _COUNTERS:
        counter = create_counter(name, description, unit)
        if counter is None:
            return None
        _COUNTERS[name] = counter
    return _COUNTERS[name]


def record_routing_decision(method: str, attributes: Optional[Mapping[str, Any]] = None) -> None:
    """Count one routing decision tagged with the method that produced it."""
    counter = _counter(ROUTING_DECISIONS, "Routing decisions by method", "decisions")
    if counter is not None:
        counter.add(1, {"routing.method": method, **(attributes or {})})


def record_handoff(from_agent_id: str, to_agent_id: str) -> None:
    counter = _counter(HANDOFFS, "Agent handoffs", "handoffs")
    if counter is not None:
        counter.add(1, {"handoff.from": from_agent_id, "handoff.to": to_agent_id})


def record_message_duration(duration_ms: float, route_type: str) -> None:
    if MESSAGE_DURATION not in _HISTOGRAMS:
        histogram = create_histogram(
            MESSAGE_DURATION, "Time to process one message", "ms"
        )
        if histogram is None:
            return
        _HISTOGRAMS[MESSAGE_DURATION] = histogram
    _HISTOGRAMS[MESSAGE_DURATION].record(duration_ms, {"route.type": route_type})
