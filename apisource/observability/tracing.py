"""OpenTelemetry spans for event delivery.

Only the API is used; with no SDK configured the spans are no-ops.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from opentelemetry import trace
from opentelemetry.trace import Span

from apisource import __version__
from apisource.models.context import SpanData
from apisource.models.events import EventEnvelope

_TRACER_NAME = "apisource"


def event_attributes(event: EventEnvelope) -> dict[str, str]:
    """CloudEvents semantic-convention attributes for *event*."""
    attributes = {
        "cloudevents.event_id": event.id,
        "cloudevents.event_source": event.source,
        "cloudevents.event_spec_version": event.specversion,
        "cloudevents.event_type": event.type,
    }
    if event.subject:
        attributes["cloudevents.event_subject"] = event.subject
    return attributes


@contextmanager
def delivery_span(span_data: SpanData, event: EventEnvelope) -> Iterator[Span]:
    """Open the span described by *span_data* around the delivery of *event*."""
    tracer = trace.get_tracer(_TRACER_NAME, __version__)
    attributes = {**span_data.attributes, **event_attributes(event)}
    with tracer.start_as_current_span(span_data.name, kind=span_data.kind, attributes=attributes) as span:
        yield span
