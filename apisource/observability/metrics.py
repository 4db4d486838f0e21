"""Prometheus metrics for apisource."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

# result: sent | failed | invalid
events_total = Counter(
    "apisource_events_total",
    "API server change events handled, by outcome",
    ["event_type", "result"],
)

event_delivery_seconds = Histogram(
    "apisource_event_delivery_seconds",
    "Time spent delivering one event to the sink, retries included",
    ["namespace", "name", "resource_group"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

delivery_attempts_total = Counter(
    "apisource_delivery_attempts_total",
    "HTTP delivery attempts made against the sink",
    ["status_code"],
)
