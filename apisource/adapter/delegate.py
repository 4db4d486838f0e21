"""Resource delegate: turns watch notifications into delivered events.

Each notification goes through the event factory and, when construction
succeeds, to the sink.  A resource that cannot be turned into an event is
logged and dropped; it never stops the watch loop.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

import structlog

from apisource.errors import EventConstructionError
from apisource.events.factory import make_add_event, make_delete_event, make_update_event
from apisource.models.context import DeliveryContext
from apisource.models.events import EventEnvelope, KubernetesObject, Unstructured
from apisource.observability.metrics import events_total
from apisource.sink.base import EventSink

_log = structlog.get_logger(component="adapter.delegate")

_Factory = Callable[[str, str, KubernetesObject | None, bool], tuple[DeliveryContext, EventEnvelope]]


class ResourceDelegate:
    """Receives add/update/delete notifications for watched resources.

    Args:
        source:     CloudEvent source attribute for every event.
        owner_name: Name of the source object that owns this adapter.
        ref:        Emit reference events instead of full resources.
        sink:       Where constructed events are delivered.
    """

    def __init__(self, source: str, owner_name: str, ref: bool, sink: EventSink) -> None:
        self._source = source
        self._owner_name = owner_name
        self._ref = ref
        self._sink = sink

    async def on_add(self, obj: KubernetesObject | None) -> bool:
        return await self._publish(make_add_event, obj)

    async def on_update(self, old: KubernetesObject | None, new: KubernetesObject | None) -> bool:
        """Publish *new*; the previous state is not part of the event."""
        return await self._publish(make_update_event, new)

    async def on_delete(self, obj: KubernetesObject | None) -> bool:
        return await self._publish(make_delete_event, obj)

    async def handle_watch_event(self, event_type: str, raw: Mapping[str, Any] | None) -> bool:
        """Dispatch one kubernetes watch notification.

        Returns True only when an event was delivered.
        """
        obj = Unstructured(raw) if raw is not None else None
        if event_type == "ADDED":
            return await self.on_add(obj)
        if event_type == "MODIFIED":
            return await self.on_update(None, obj)
        if event_type == "DELETED":
            return await self.on_delete(obj)
        if event_type == "ERROR":
            _log.warning("watch_error_event", status=dict(raw or {}))
        else:
            _log.debug("watch_event_ignored", event_type=event_type)
        return False

    async def _publish(self, factory: _Factory, obj: KubernetesObject | None) -> bool:
        try:
            context, event = factory(self._source, self._owner_name, obj, self._ref)
        except EventConstructionError as exc:
            events_total.labels(event_type="", result="invalid").inc()
            _log.error(
                "event_construction_failed",
                error=str(exc),
                error_type=type(exc).__name__,
                resource=repr(obj),
            )
            return False

        try:
            success = await self._sink.send(context, event)
        except Exception as exc:  # noqa: BLE001
            _log.error(
                "sink_unexpected_error",
                sink=self._sink.sink_name,
                event_id=event.id,
                error=str(exc),
            )
            success = False
        events_total.labels(event_type=event.type, result="sent" if success else "failed").inc()
        if success:
            _log.info(
                "event_sent",
                sink=self._sink.sink_name,
                event_id=event.id,
                event_type=event.type,
                subject=event.subject,
            )
        else:
            _log.warning(
                "event_delivery_failed",
                sink=self._sink.sink_name,
                event_id=event.id,
                event_type=event.type,
            )
        return success
