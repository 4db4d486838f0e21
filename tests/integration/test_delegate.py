"""Integration tests for the resource delegate and watcher event handling.

Watch notifications flow through the event factory into a recording sink;
these tests check the whole path from raw watch object to delivered event.
"""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest
from prometheus_client import REGISTRY

from apisource.adapter.delegate import ResourceDelegate
from apisource.adapter.watcher import ResourceWatcher
from apisource.models.config import ResourceConfig
from apisource.models.context import DeliveryContext
from apisource.models.events import EventEnvelope, EventType, Unstructured
from apisource.sink.base import EventSink

from tests.factories import OWNER, SOURCE, RecordingSink, make_raw

_PODS = ResourceConfig(api_version="v1", kind="Pod", plural="pods")


class _RaisingSink(EventSink):
    @property
    def sink_name(self) -> str:
        return "raising"

    async def send(self, context: DeliveryContext, event: EventEnvelope) -> bool:
        raise UnicodeEncodeError("ascii", "caf\u00e9", 3, 4, "ordinal not in range(128)")


def _delegate(sink: EventSink, ref: bool = True) -> ResourceDelegate:
    return ResourceDelegate(source=SOURCE, owner_name=OWNER, ref=ref, sink=sink)


# ---------------------------------------------------------------------------
# Delegate hooks
# ---------------------------------------------------------------------------


class TestDelegateHooks:
    async def test_on_add_publishes_add_event(self, recording_sink: RecordingSink) -> None:
        delegate = _delegate(recording_sink, ref=False)

        assert await delegate.on_add(Unstructured(make_raw())) is True

        context, event = recording_sink.sent[0]
        assert event.type == EventType.ADD
        assert event.source == SOURCE
        assert event.json_data()["status"] == {"phase": "Running"}
        assert context.metric_tag.name == OWNER

    async def test_on_update_publishes_new_object(self, recording_sink: RecordingSink) -> None:
        delegate = _delegate(recording_sink)
        old = Unstructured(make_raw(name="web-0", resource_version="1"))
        new = Unstructured(make_raw(name="web-0", resource_version="2"))

        await delegate.on_update(old, new)

        _, event = recording_sink.sent[0]
        assert event.type == EventType.UPDATE_REF
        assert event.json_data() == {"apiVersion": "v1", "kind": "Pod", "name": "web-0", "namespace": "default"}

    async def test_on_delete_publishes_delete_event(self, recording_sink: RecordingSink) -> None:
        delegate = _delegate(recording_sink)

        await delegate.on_delete(Unstructured(make_raw()))

        assert recording_sink.sent[0][1].type == EventType.DELETE_REF

    async def test_missing_resource_is_dropped(self, recording_sink: RecordingSink) -> None:
        delegate = _delegate(recording_sink)

        assert await delegate.on_add(None) is False
        assert recording_sink.sent == []

    async def test_unencodable_resource_is_dropped(self, recording_sink: RecordingSink) -> None:
        delegate = _delegate(recording_sink, ref=False)
        raw = make_raw()
        raw["status"] = {"ratio": float("inf")}

        assert await delegate.on_update(None, Unstructured(raw)) is False
        assert recording_sink.sent == []

    async def test_failed_delivery_returns_false(self) -> None:
        sink = RecordingSink(succeed=False)
        delegate = _delegate(sink)

        assert await delegate.on_add(Unstructured(make_raw())) is False
        assert len(sink.sent) == 1


    async def test_sink_exception_is_contained(self) -> None:
        delegate = _delegate(_RaisingSink())

        assert await delegate.on_add(Unstructured(make_raw(name="caf\u00e9"))) is False

    async def test_outcomes_are_counted(self, recording_sink: RecordingSink) -> None:
        sent = {"event_type": "dev.knative.apiserver.ref.add", "result": "sent"}
        invalid = {"event_type": "", "result": "invalid"}
        before_sent = REGISTRY.get_sample_value("apisource_events_total", sent) or 0.0
        before_invalid = REGISTRY.get_sample_value("apisource_events_total", invalid) or 0.0
        delegate = _delegate(recording_sink)

        await delegate.on_add(Unstructured(make_raw()))
        await delegate.on_add(None)

        assert REGISTRY.get_sample_value("apisource_events_total", sent) == before_sent + 1
        assert REGISTRY.get_sample_value("apisource_events_total", invalid) == before_invalid + 1


# ---------------------------------------------------------------------------
# Watch event dispatch
# ---------------------------------------------------------------------------


class TestHandleWatchEvent:
    @pytest.mark.parametrize(
        ("watch_type", "expected"),
        [
            ("ADDED", EventType.ADD_REF),
            ("MODIFIED", EventType.UPDATE_REF),
            ("DELETED", EventType.DELETE_REF),
        ],
    )
    async def test_maps_watch_types(self, recording_sink: RecordingSink, watch_type: str, expected: EventType) -> None:
        delegate = _delegate(recording_sink)

        assert await delegate.handle_watch_event(watch_type, make_raw()) is True
        assert recording_sink.sent[0][1].type == expected

    @pytest.mark.parametrize("watch_type", ["BOOKMARK", "ERROR", "SOMETHING"])
    async def test_other_types_are_not_published(self, recording_sink: RecordingSink, watch_type: str) -> None:
        delegate = _delegate(recording_sink)

        assert await delegate.handle_watch_event(watch_type, {"code": 500}) is False
        assert recording_sink.sent == []

    async def test_subject_for_custom_resource(self, recording_sink: RecordingSink) -> None:
        delegate = _delegate(recording_sink)
        raw = make_raw(kind="Revision", name="hello-00001", api_version="serving.knative.dev")

        await delegate.handle_watch_event("ADDED", raw)

        _, event = recording_sink.sent[0]
        assert event.subject == "/apis/serving.knative.dev/versionUnknown/namespaces/default/revisions/hello-00001"
        assert event.extensions == {"kind": "Revision", "name": "hello-00001", "namespace": "default"}


# ---------------------------------------------------------------------------
# Watcher event handling
# ---------------------------------------------------------------------------


class TestWatcherHandleEvent:
    def _watcher(self, delegate: ResourceDelegate) -> ResourceWatcher:
        return ResourceWatcher(AsyncMock(), {"namespace": "default"}, _PODS, delegate)

    async def test_forwards_raw_object_and_tracks_version(self, recording_sink: RecordingSink) -> None:
        watcher = self._watcher(_delegate(recording_sink))

        await watcher.handle_event({"type": "ADDED", "object": object(), "raw_object": make_raw(resource_version="42")})

        assert len(recording_sink.sent) == 1
        assert watcher._resource_version == "42"

    async def test_dict_object_used_when_raw_missing(self, recording_sink: RecordingSink) -> None:
        watcher = self._watcher(_delegate(recording_sink))

        await watcher.handle_event({"type": "MODIFIED", "object": make_raw(resource_version="7")})

        assert recording_sink.sent[0][1].type == EventType.UPDATE_REF
        assert watcher._resource_version == "7"

    async def test_gone_resets_resource_version(self, recording_sink: RecordingSink) -> None:
        watcher = self._watcher(_delegate(recording_sink))
        watcher._resource_version = "42"

        await watcher.handle_event({"type": "ERROR", "raw_object": {"kind": "Status", "code": 410}})

        assert watcher._resource_version is None
        assert recording_sink.sent == []

    async def test_stop_without_start_is_safe(self, recording_sink: RecordingSink) -> None:
        watcher = self._watcher(_delegate(recording_sink))
        await watcher.stop()
        assert watcher.running is False
