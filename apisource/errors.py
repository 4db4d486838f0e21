"""Errors raised while turning a resource change into an event."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from apisource.models.events import EventEnvelope


class EventConstructionError(Exception):
    """Base class for every failure of the event factory."""


class InvalidInputError(EventConstructionError, ValueError):
    """Raised when the changed resource is missing."""

    def __init__(self, message: str = "resource can not be nil") -> None:
        super().__init__(message)


class SerializationError(EventConstructionError):
    """Raised when the event body cannot be encoded as JSON.

    The partially populated envelope is kept on ``envelope`` for diagnostics;
    it must never be published.
    """

    def __init__(self, message: str, envelope: EventEnvelope | None = None) -> None:
        super().__init__(message)
        self.envelope = envelope
