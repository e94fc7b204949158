"""OpenTelemetry provider setup for Switchboard.

Providers are built once from ``Settings`` and cached at module level. Traces
and metrics share one exporter choice: OTLP over HTTP for ``http(s)://``
endpoints, OTLP over gRPC for bare ``host:port`` endpoints, console otherwise.
"""

import logging
from importlib.metadata import PackageNotFoundError, version
from typing import Optional

from opentelemetry import metrics, trace
from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import (
    OTLPMetricExporter as GRPCMetricExporter,
)
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import (
    OTLPSpanExporter as GRPCTraceExporter,
)
from opentelemetry.exporter.otlp.proto.http.metric_exporter import (
    OTLPMetricExporter as HTTPMetricExporter,
)
from opentelemetry.exporter.otlp.proto.http.trace_exporter import (
    OTLPSpanExporter as HTTPTraceExporter,
)
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import (
    ConsoleMetricExporter,
    MetricExporter,
    PeriodicExportingMetricReader,
)
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    ConsoleSpanExporter,
    SimpleSpanProcessor,
    SpanExporter,
)
from opentelemetry.sdk.trace.sampling import TraceIdRatioBased

from switchboard.configuration.config import Settings, get_settings

logger = logging.getLogger(__name__)

METRIC_EXPORT_INTERVAL_MS = 60000

_TRACER_PROVIDER: TracerProvider | None = None
_METER_PROVIDER: MeterProvider | None = None
# None until configured; False keeps telemetry off until reset
_TELEMETRY_ENABLED: bool | None = None


def _reset_providers() -> None:
    """Reset global providers (for testing)."""
    global _TRACER_PROVIDER, _METER_PROVIDER, _TELEMETRY_ENABLED
    _TRACER_PROVIDER = None
    _METER_PROVIDER = None
    _TELEMETRY_ENABLED = None


def _create_resource(settings: Settings) -> Resource:
    try:
        service_version = version("switchboard")
    except PackageNotFoundError:
        service_version = "0.1.0"

    return Resource.create(
        {
            "service.name": settings.service_name,
            "service.namespace": "switchboard",
            "service.version": service_version,
            "deployment.environment": settings.environment,
        }
    )


def _otlp_endpoint(settings: Settings, signal: str) -> tuple[str, bool] | None:
    """Resolve the OTLP endpoint for one signal as ``(endpoint, is_http)``."""
    endpoint = settings.otel_exporter_otlp_endpoint
    if not endpoint:
        return None
    if endpoint.startswith(("http://", "https://")):
        suffix = f"/v1/{signal}"
        if not endpoint.endswith(suffix):
            endpoint = f"{endpoint.rstrip('/')}{suffix}"
        return endpoint, True
    return endpoint, False


def _create_trace_exporter(settings: Settings) -> SpanExporter:
    resolved = _otlp_endpoint(settings, "traces")
    if resolved is None:
        logger.info("No OTLP endpoint configured, using console span exporter")
        return ConsoleSpanExporter()

    endpoint, is_http = resolved
    if is_http:
        return HTTPTraceExporter(endpoint=endpoint)
    return GRPCTraceExporter(endpoint=endpoint, insecure=True)


def _create_metric_exporter(settings: Settings) -> MetricExporter:
    resolved = _otlp_endpoint(settings, "metrics")
    if resolved is None:
        return ConsoleMetricExporter()

    endpoint, is_http = resolved
    if is_http:
        return HTTPMetricExporter(endpoint=endpoint)
    return GRPCMetricExporter(endpoint=endpoint, insecure=True)


def _get_sampler(settings: Settings) -> TraceIdRatioBased:
    if settings.otel_sample_ratio is not None:
        return TraceIdRatioBased(settings.otel_sample_ratio)

    # Sample everything in development, 10% elsewhere
    if settings.environment == "development":
        return TraceIdRatioBased(1.0)
    return TraceIdRatioBased(0.1)


def configure_telemetry(settings: Optional[Settings] = None, force_reset: bool = False) -> bool:
    """Configure OpenTelemetry tracing and metrics.

    Called during application startup; ``get_tracer``/``get_meter`` call it
    lazily with the cached settings otherwise.

    Args:
        settings: Settings to configure from (defaults to the cached settings)
        force_reset: Reconfigure even if telemetry was already configured

    Returns:
        True if telemetry is enabled and the providers are installed
    """
    global _TRACER_PROVIDER, _METER_PROVIDER, _TELEMETRY_ENABLED

    if _TELEMETRY_ENABLED is not None and not force_reset:
        return _TELEMETRY_ENABLED

    settings = settings or get_settings()
    if not settings.enable_telemetry:
        logger.info("Telemetry is disabled")
        _TELEMETRY_ENABLED = False
        return False

    try:
        resource = _create_resource(settings)

        span_exporter = _create_trace_exporter(settings)
        tracer_provider = TracerProvider(resource=resource, sampler=_get_sampler(settings))
        if isinstance(span_exporter, ConsoleSpanExporter):
            tracer_provider.add_span_processor(SimpleSpanProcessor(span_exporter))
        else:
            tracer_provider.add_span_processor(BatchSpanProcessor(span_exporter))

        reader = PeriodicExportingMetricReader(
            _create_metric_exporter(settings), export_interval_millis=METRIC_EXPORT_INTERVAL_MS
        )
        meter_provider = MeterProvider(resource=resource, metric_readers=[reader])
    except Exception as e:
        logger.error(f"Failed to configure telemetry: {e}")
        _TELEMETRY_ENABLED = False
        return False

    trace.set_tracer_provider(tracer_provider)
    metrics.set_meter_provider(meter_provider)
    _TRACER_PROVIDER = tracer_provider
    _METER_PROVIDER = meter_provider
    _TELEMETRY_ENABLED = True

    logger.info(
        f"Telemetry configured: service={settings.service_name}, "
        f"environment={settings.environment}, "
        f"endpoint={settings.otel_exporter_otlp_endpoint or 'console'}"
    )
    return True


def get_tracer(instrumentation_name: str = "switchboard") -> trace.Tracer | None:
    """Get a tracer, or None if telemetry is disabled."""
    if not configure_telemetry() or _TRACER_PROVIDER is None:
        return None
    return _TRACER_PROVIDER.get_tracer(instrumentation_name)


def get_meter(instrumentation_name: str = "switchboard") -> metrics.Meter | None:
    """Get a meter, or None if telemetry is disabled."""
    if not configure_telemetry() or _METER_PROVIDER is None:
        return None
    return _METER_PROVIDER.get_meter(instrumentation_name)


def shutdown_telemetry() -> None:
    """Flush and shut down the providers. Called during application shutdown."""
    global _TRACER_PROVIDER, _METER_PROVIDER, _TELEMETRY_ENABLED

    for name, provider in (("Tracer", _TRACER_PROVIDER), ("Meter", _METER_PROVIDER)):
        if provider is None:
            continue
        try:
            provider.shutdown()
            logger.info(f"{name} provider shutdown complete")
        except Exception as e:
            logger.error(f"Error shutting down {name.lower()} provider: {e}")

    _TRACER_PROVIDER = None
    _METER_PROVIDER = None
    _TELEMETRY_ENABLED = None
