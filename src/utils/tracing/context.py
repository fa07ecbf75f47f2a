"""
Span helpers.

trace_operation opens a span around a block; add_span_attributes and
add_span_event annotate whichever span is current, so aggregation and
reconciliation code never has to pass spans around.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode
from opentelemetry.util.types import AttributeValue

from .tracer import get_tracer


def span_attributes(values: dict[str, Any]) -> dict[str, AttributeValue]:
    """Drop None values and stringify anything OpenTelemetry cannot carry."""
    return {
        key: value if isinstance(value, (bool, int, float, str)) else str(value)
        for key, value in values.items()
        if value is not None
    }


@contextmanager
def trace_operation(
    operation_name: str,
    kind: trace.SpanKind = trace.SpanKind.INTERNAL,
    **attributes: Any,
) -> Iterator[trace.Span]:
    """
    Run a block inside a new span

    An exception escaping the block marks the span as failed, is recorded
    on it and propagates unchanged.

    Example:
        >>> with trace_operation("render_artifact", run_id=run.id, format="csv") as span:
        ...     locator = renderer.render(run.data, fmt, run.name)
        ...     span.set_attribute("locator", locator)
    """
    with get_tracer().start_as_current_span(
        operation_name,
        kind=kind,
        attributes=span_attributes(attributes),
        record_exception=False,
        set_status_on_exception=False,
    ) as span:
        try:
            yield span
        except Exception as e:
            span.record_exception(e)
            span.set_status(Status(StatusCode.ERROR, f"{type(e).__name__}: {e}"))
            raise


def add_span_attributes(**attributes: Any) -> None:
    span = trace.get_current_span()
    if span.is_recording():
        span.set_attributes(span_attributes(attributes))


def add_span_event(name: str, **attributes: Any) -> None:
    """Record a point-in-time event, such as a run status change, on the current span."""
    span = trace.get_current_span()
    if span.is_recording():
        span.add_event(name, attributes=span_attributes(attributes))
