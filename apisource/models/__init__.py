"""Core data structures for apisource."""

from apisource.models.config import ApiSourceConfig, EventMode, ResourceConfig
from apisource.models.context import (
    BackoffStrategy,
    DeliveryContext,
    MetricTag,
    RetryPolicy,
    SpanData,
)
from apisource.models.events import (
    ChangeKind,
    EventEnvelope,
    EventType,
    KubernetesObject,
    ObjectReference,
    Unstructured,
    event_type_for,
)

__all__ = [
    "ApiSourceConfig",
    "BackoffStrategy",
    "ChangeKind",
    "DeliveryContext",
    "EventEnvelope",
    "EventMode",
    "EventType",
    "KubernetesObject",
    "MetricTag",
    "ObjectReference",
    "ResourceConfig",
    "RetryPolicy",
    "SpanData",
    "Unstructured",
    "event_type_for",
]
