"""
OpenTelemetry tracer setup for the report engine.

Spans go to an OTLP collector when an endpoint is given (argument or
OTLP_ENDPOINT) and optionally to the console (TRACE_CONSOLE=true). With
neither, the global no-op provider stays in place.
"""

import logging
import os
from dataclasses import dataclass

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from opentelemetry.sdk.trace.sampling import TraceIdRatioBased

logger = logging.getLogger(__name__)

DEFAULT_SERVICE_NAME = "report-engine"


@dataclass
class _TracingState:
    tracer: trace.Tracer | None = None
    provider: TracerProvider | None = None


_state = _TracingState()


def _build_provider(
    service_name: str,
    otlp_endpoint: str | None,
    console_export: bool,
    sampling_rate: float,
) -> TracerProvider:
    provider = TracerProvider(
        resource=Resource(attributes={SERVICE_NAME: service_name}),
        sampler=TraceIdRatioBased(sampling_rate),
    )
    if otlp_endpoint:
        provider.add_span_processor(
            BatchSpanProcessor(OTLPSpanExporter(endpoint=otlp_endpoint, insecure=True))
        )
    if console_export:
        provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))
    return provider


def initialize_tracing(
    service_name: str = DEFAULT_SERVICE_NAME,
    otlp_endpoint: str | None = None,
    console_export: bool = False,
    sampling_rate: float = 1.0,
) -> trace.Tracer:
    """
    Configure tracing once per process

    Args:
        service_name: service.name resource attribute
        otlp_endpoint: Collector address such as "localhost:4317"
        console_export: Also print finished spans
        sampling_rate: Fraction of traces kept, 0.0-1.0

    Returns:
        The process tracer; later calls return the same one
    """
    if _state.tracer is not None:
        return _state.tracer

    otlp_endpoint = otlp_endpoint or os.getenv("OTLP_ENDPOINT") or None
    console_export = console_export or os.getenv("TRACE_CONSOLE", "").lower() == "true"

    if otlp_endpoint or console_export:
        _state.provider = _build_provider(
            service_name, otlp_endpoint, console_export, sampling_rate
        )
        trace.set_tracer_provider(_state.provider)
        logger.info(
            f"Tracing {service_name} to {otlp_endpoint or 'console'} "
            f"(sampling {sampling_rate:.0%})"
        )
    else:
        logger.debug("No span exporter configured; tracing is a no-op")

    _state.tracer = trace.get_tracer(service_name)
    return _state.tracer


def get_tracer() -> trace.Tracer:
    """The process tracer, configured from the environment on first use."""
    return _state.tracer or initialize_tracing()


def shutdown_tracing() -> None:
    """Flush buffered spans and forget the tracer; call before exit."""
    if _state.provider is not None:
        _state.provider.shutdown()
        logger.debug("Tracing provider shut down")
    _state.tracer = None
    _state.provider = None
