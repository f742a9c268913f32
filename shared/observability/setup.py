import logging
import structlog
from fastapi import FastAPI
from prometheus_fastapi_instrumentator import Instrumentator

# OpenTelemetry
from opentelemetry import trace
from opentelemetry.sdk.resources import Resource, SERVICE_NAME
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor

from shared.config.settings import LOG_LEVEL, OTLP_ENDPOINT, TRACING_ENABLED

# 1. Structlog Processor: Injects Trace/Span IDs into every log line
def add_otel_ids(logger, log_method, event_dict):
    span = trace.get_current_span()
    if span.is_recording():
        ctx = span.get_span_context()
        event_dict["trace_id"] = trace.format_trace_id(ctx.trace_id)
        event_dict["span_id"] = trace.format_span_id(ctx.span_id)
    return event_dict

# 2. Configure Structlog for JSON output
def configure_logging():
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            add_otel_ids,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer()
        ],
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, LOG_LEVEL, logging.INFO)),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

# 3. Configure OpenTelemetry Tracing
def configure_tracing(app: FastAPI, service_name: str):
    resource = Resource.create({SERVICE_NAME: service_name})
    provider = TracerProvider(resource=resource)
    trace.set_tracer_provider(provider)

    # Export to Jaeger via OTLP gRPC
    exporter = OTLPSpanExporter(endpoint=OTLP_ENDPOINT, insecure=True)
    provider.add_span_processor(BatchSpanProcessor(exporter))

    # Incoming requests and the outgoing payment gateway calls
    FastAPIInstrumentor.instrument_app(app)
    HTTPXClientInstrumentor().instrument()

# 4. Configure Prometheus Metrics
def configure_metrics(app: FastAPI):
    # HTTP latency / status codes, exposed at /metrics
    Instrumentator().instrument(app).expose(app, include_in_schema=False)

def setup_observability(app: FastAPI, service_name: str):
    """
    Bootstraps Logging, Tracing, and Metrics for a FastAPI app.
    Call this once in main.py before starting the server.
    Tracing is skipped when TRACING_ENABLED=false (local runs, tests).
    """
    configure_logging()
    if TRACING_ENABLED:
        configure_tracing(app, service_name)
    configure_metrics(app)
