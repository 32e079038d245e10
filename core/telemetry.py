import logging
from typing import Callable, List
from urllib.parse import urlparse

from opentelemetry import metrics, trace
from opentelemetry.baggage.propagation import W3CBaggagePropagator
from opentelemetry.propagate import set_global_textmap
from opentelemetry.propagators.composite import CompositePropagator
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.trace.propagation.tracecontext import TraceContextTextMapPropagator

from config.config_entry import ExporterConfig, MetricsConfig, OtelConfig, TraceConfig

logger = logging.getLogger(__name__)

SPAN_BATCH_DELAY_MS = 5000
METRIC_EXPORT_INTERVAL_MS = 60000


def http_export_url(config: ExporterConfig, signal: str) -> str:
    """
    Full OTLP/HTTP URL for a signal ('traces' or 'metrics').

    http-endpoint is host[:port]; http-endpoint-url is a URL whose path
    defaults to the standard /v1/<signal> path when empty.
    """
    if config.http_endpoint_url:
        parsed = urlparse(config.http_endpoint_url)
        if parsed.path in ("", "/"):
            return f"{config.http_endpoint_url.rstrip('/')}/v1/{signal}"
        return config.http_endpoint_url
    scheme = "http" if config.insecure else "https"
    return f"{scheme}://{config.http_endpoint}/v1/{signal}"


def create_span_exporter(config: TraceConfig):
    if config.uses_grpc:
        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
        return OTLPSpanExporter(endpoint=config.grpc_endpoint_url or config.grpc_endpoint, insecure=config.insecure)

    from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
    return OTLPSpanExporter(endpoint=http_export_url(config, "traces"))


def create_metric_exporter(config: MetricsConfig):
    if config.uses_grpc:
        from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter
        return OTLPMetricExporter(endpoint=config.grpc_endpoint_url or config.grpc_endpoint, insecure=config.insecure)

    from opentelemetry.exporter.otlp.proto.http.metric_exporter import OTLPMetricExporter
    return OTLPMetricExporter(endpoint=http_export_url(config, "metrics"))


def init_open_telemetry(otel: OtelConfig, service_name: str) -> Callable[[], None]:
    """
    Install global tracer/meter providers for the enabled signals.

    Returns:
        A shutdown function flushing and stopping every installed provider
    """
    shutdown_funcs: List[Callable[[], None]] = []

    def shutdown() -> None:
        for fn in shutdown_funcs:
            try:
                fn()
            except Exception as e:
                logger.error(f"Error shutting down otel: {e}")
        shutdown_funcs.clear()

    if not otel.active:
        return shutdown

    set_global_textmap(CompositePropagator([TraceContextTextMapPropagator(), W3CBaggagePropagator()]))
    resource = Resource.create({SERVICE_NAME: service_name})

    if otel.trace.enabled:
        from opentelemetry.sdk.trace import TracerProvider
        from opentelemetry.sdk.trace.export import BatchSpanProcessor

        tracer_provider = TracerProvider(resource=resource)
        tracer_provider.add_span_processor(
            BatchSpanProcessor(create_span_exporter(otel.trace), schedule_delay_millis=SPAN_BATCH_DELAY_MS))
        trace.set_tracer_provider(tracer_provider)
        shutdown_funcs.append(tracer_provider.shutdown)
        logger.info("🔭 OpenTelemetry tracing enabled")

    if otel.metrics.enabled:
        from opentelemetry.sdk.metrics import MeterProvider
        from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader

        reader = PeriodicExportingMetricReader(
            create_metric_exporter(otel.metrics), export_interval_millis=METRIC_EXPORT_INTERVAL_MS)
        meter_provider = MeterProvider(resource=resource, metric_readers=[reader])
        metrics.set_meter_provider(meter_provider)
        shutdown_funcs.append(meter_provider.shutdown)
        logger.info("📈 OpenTelemetry metrics enabled")

    return shutdown
