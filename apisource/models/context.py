"""Delivery context attached to every constructed event.

The context carries what the downstream sender needs to honour: a metric
correlation tag, a tracing span descriptor and a retry policy.  It is built
fresh for every event and never mutated afterwards.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import timedelta
from enum import StrEnum
from types import MappingProxyType

from opentelemetry.trace import SpanKind

DEFAULT_RETRY_DELAY = timedelta(milliseconds=50)
DEFAULT_RETRY_ATTEMPTS = 5


class BackoffStrategy(StrEnum):
    """Delay growth between delivery attempts."""

    EXPONENTIAL = "exponential"


@dataclass(frozen=True)
class MetricTag:
    """Labels used to correlate delivery metrics with the owning source."""

    namespace: str
    name: str
    resource_group: str


@dataclass(frozen=True)
class SpanData:
    """Descriptor for the span the sender opens around delivery."""

    name: str
    kind: SpanKind
    attributes: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "attributes", MappingProxyType(dict(self.attributes)))


@dataclass(frozen=True)
class RetryPolicy:
    """How a sender retries a failed delivery.

    ``max_attempts`` counts every attempt, the first one included, so the
    defaults give four retries.  The first retry waits ``delay`` (50 ms) and
    each later one doubles it.  The Go sdk counts MaxTries as retries only and
    starts its exponential delay at twice the base.
    """

    strategy: BackoffStrategy = BackoffStrategy.EXPONENTIAL
    delay: timedelta = DEFAULT_RETRY_DELAY
    max_attempts: int = DEFAULT_RETRY_ATTEMPTS

    def backoff(self, retry: int) -> float:
        """Seconds to wait before the *retry*-th retry (1-based)."""
        if retry < 1:
            return 0.0
        return self.delay.total_seconds() * (2 ** (retry - 1))


@dataclass(frozen=True)
class DeliveryContext:
    """Everything attached to an event for the downstream sender."""

    metric_tag: MetricTag
    span: SpanData
    retry: RetryPolicy = field(default_factory=RetryPolicy)
