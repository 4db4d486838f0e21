"""Sink interface every event sink implements."""

from __future__ import annotations

from abc import ABC, abstractmethod

from apisource.models.context import DeliveryContext
from apisource.models.events import EventEnvelope


class EventSink(ABC):
    """Abstract base class for all event sinks.

    ``send`` must not raise for delivery failures; return ``False`` instead.
    """

    @property
    @abstractmethod
    def sink_name(self) -> str:
        """Identifier used in logs."""

    @abstractmethod
    async def send(self, context: DeliveryContext, event: EventEnvelope) -> bool:
        """Deliver *event* as instructed by *context*.

        Returns:
            True  -- event accepted by the sink.
            False -- delivery failed (already logged inside implementation).
        """
