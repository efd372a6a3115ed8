import logging
from typing import Optional

from opentelemetry import trace
from opentelemetry._logs import set_logger_provider
from opentelemetry.exporter.otlp.proto.grpc._log_exporter import OTLPLogExporter as OTLPLogExporterGRPC
from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter as OTLPMetricExporterGRPC
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter as OTLPSpanExporterGRPC
from opentelemetry.exporter.otlp.proto.http._log_exporter import OTLPLogExporter as OTLPLogExporterHTTP
from opentelemetry.exporter.otlp.proto.http.metric_exporter import OTLPMetricExporter as OTLPMetricExporterHTTP
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter as OTLPSpanExporterHTTP
from opentelemetry.instrumentation.aiohttp_client import AioHttpClientInstrumentor
from opentelemetry.instrumentation.logging import LoggingInstrumentor
from opentelemetry.metrics import set_meter_provider
from opentelemetry.sdk._logs import LoggerProvider, LoggingHandler
from opentelemetry.sdk._logs.export import BatchLogRecordProcessor
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from .config import Settings, get_settings

logger = logging.getLogger(__name__)


def _parse_pairs(val: Optional[str]) -> dict:
    """Parse ``k=v,k2=v2`` as used by OTEL_*_HEADERS and OTEL_RESOURCE_ATTRIBUTES."""
    if not val:
        return {}
    pairs = {}
    for part in val.split(","):
        if "=" in part:
            k, v = part.split("=", 1)
            pairs[k.strip()] = v.strip()
    return pairs


def _is_http(settings: Settings) -> bool:
    protocol = (settings.OTEL_EXPORTER_OTLP_PROTOCOL or "grpc").lower()
    return protocol in ("http", "http/protobuf")


def init_tracing(settings: Optional[Settings] = None, service_name: Optional[str] = None, enable_logs: Optional[bool] = None) -> None:
    """Initialize OpenTelemetry traces, metrics and (optionally) logs export over OTLP.

    Args:
        settings: configuration to read OTEL_* values from; defaults to get_settings().
        service_name: override OTEL service name.
        enable_logs: export std logging to OTel; None falls back to OTEL_ENABLE_LOGS.
    """
    settings = settings or get_settings()
    if enable_logs is None:
        enable_logs = settings.OTEL_ENABLE_LOGS

    attrs = {
        "service.name": service_name or settings.OTEL_SERVICE_NAME,
        "service.namespace": settings.OTEL_SERVICE_NAMESPACE,
    }
    attrs.update(_parse_pairs(settings.OTEL_RESOURCE_ATTRIBUTES))
    resource = Resource.create(attrs)
    headers = _parse_pairs(settings.OTEL_EXPORTER_OTLP_HEADERS) or None
    insecure = bool(settings.OTEL_EXPORTER_OTLP_INSECURE)
    use_http = _is_http(settings)

    # Traces
    if use_http:
        endpoint = (
            settings.OTEL_EXPORTER_OTLP_TRACES_ENDPOINT
            or settings.OTEL_EXPORTER_OTLP_ENDPOINT
            or "http://localhost:4318/v1/traces"
        )
        span_exporter = OTLPSpanExporterHTTP(endpoint=endpoint, headers=headers)
    else:
        endpoint = (
            settings.OTEL_EXPORTER_OTLP_TRACES_ENDPOINT
            or settings.OTEL_EXPORTER_OTLP_ENDPOINT
            or "http://localhost:4317"
        )
        span_exporter = OTLPSpanExporterGRPC(endpoint=endpoint, insecure=insecure, headers=headers)
    logger.info(f"OTel traces: {'HTTP' if use_http else 'gRPC'} exporter configured -> {endpoint}")

    provider = TracerProvider(resource=resource)
    provider.add_span_processor(BatchSpanProcessor(span_exporter))
    trace.set_tracer_provider(provider)

    # Metrics
    if use_http:
        metrics_endpoint = (
            settings.OTEL_EXPORTER_OTLP_METRICS_ENDPOINT
            or settings.OTEL_EXPORTER_OTLP_ENDPOINT
            or "http://localhost:4318/v1/metrics"
        )
        metrics_exporter = OTLPMetricExporterHTTP(endpoint=metrics_endpoint, headers=headers)
    else:
        metrics_endpoint = (
            settings.OTEL_EXPORTER_OTLP_METRICS_ENDPOINT
            or settings.OTEL_EXPORTER_OTLP_ENDPOINT
            or "http://localhost:4317"
        )
        metrics_exporter = OTLPMetricExporterGRPC(endpoint=metrics_endpoint, insecure=insecure, headers=headers)
    set_meter_provider(MeterProvider(metric_readers=[PeriodicExportingMetricReader(metrics_exporter)], resource=resource))

    # Logs
    if enable_logs:
        if use_http:
            logs_endpoint = (
                settings.OTEL_EXPORTER_OTLP_LOGS_ENDPOINT
                or settings.OTEL_EXPORTER_OTLP_ENDPOINT
                or "http://localhost:4318/v1/logs"
            )
            log_exporter = OTLPLogExporterHTTP(endpoint=logs_endpoint, headers=headers)
        else:
            logs_endpoint = (
                settings.OTEL_EXPORTER_OTLP_LOGS_ENDPOINT
                or settings.OTEL_EXPORTER_OTLP_ENDPOINT
                or "http://localhost:4317"
            )
            log_exporter = OTLPLogExporterGRPC(endpoint=logs_endpoint, insecure=insecure, headers=headers)
        logger.info(f"OTel logs: exporter configured -> {logs_endpoint}")

        log_provider = LoggerProvider(resource=resource)
        set_logger_provider(log_provider)
        log_provider.add_log_record_processor(BatchLogRecordProcessor(log_exporter))

        # Attach handler to root so std logging flows to OTel logs
        root_logger = logging.getLogger()
        if not any(isinstance(h, LoggingHandler) for h in root_logger.handlers):
            root_logger.addHandler(LoggingHandler(level=logging.INFO))

    # Outbound calls to the provisioning service get client spans
    AioHttpClientInstrumentor().instrument()
    # Do not override console formatting; logging_setup owns it.
    LoggingInstrumentor().instrument(set_logging_format=False)

    # Tame noisy libraries
    logging.getLogger("opentelemetry").setLevel(logging.WARNING)
    logging.getLogger("opentelemetry.exporter").setLevel(logging.ERROR)
    logging.getLogger("opentelemetry.instrumentation").setLevel(logging.ERROR)
