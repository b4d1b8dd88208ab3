# luaubuild/shared/telemetry.py
from typing import Optional

import structlog
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter

from luaubuild import __version__
from luaubuild.shared.config import Settings, get_settings

logger = structlog.get_logger()


def setup_telemetry(settings: Optional[Settings] = None) -> bool:
    """
    Initializes the OpenTelemetry SDK with OTLP export.
    Call once at process startup. Returns False (spans stay no-ops) when no
    OTEL_EXPORTER_OTLP_ENDPOINT is configured.
    """
    settings = settings or get_settings()
    if not settings.OTEL_EXPORTER_OTLP_ENDPOINT:
        logger.debug("telemetry_disabled", reason="no OTEL_EXPORTER_OTLP_ENDPOINT")
        return False

    logger.info("telemetry_init", service=settings.OTEL_SERVICE_NAME)

    resource = Resource.create(attributes={
        "service.name": settings.OTEL_SERVICE_NAME,
        "service.version": __version__,
    })
    provider = TracerProvider(resource=resource)

    exporter = OTLPSpanExporter(endpoint=f"{settings.OTEL_EXPORTER_OTLP_ENDPOINT.rstrip('/')}/v1/traces")
    provider.add_span_processor(BatchSpanProcessor(exporter))

    if settings.LOG_LEVEL.upper() == "DEBUG":
        provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))

    trace.set_tracer_provider(provider)
    return True


def shutdown_telemetry() -> None:
    """Flush pending spans before the CLI exits."""
    provider = trace.get_tracer_provider()
    shutdown = getattr(provider, "shutdown", None)
    if shutdown is not None:
        shutdown()


def get_tracer(name: str):
    return trace.get_tracer(name)
