"""Event envelope, event type vocabulary and resource identity structures."""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any, Protocol, runtime_checkable
from urllib.parse import quote
from uuid import uuid4

from apisource.errors import SerializationError

APPLICATION_JSON = "application/json"
SPEC_VERSION = "1.0"

# Printable ASCII except space, double quote and percent; everything else is
# percent-encoded (UTF-8) in ce-* header values.
_HEADER_SAFE = "".join(chr(c) for c in range(0x21, 0x7F) if chr(c) not in "\"%")


def encode_header_value(value: str) -> str:
    """Percent-encode *value* for a CloudEvents HTTP binary-mode header."""
    return quote(value, safe=_HEADER_SAFE)


class ChangeKind(StrEnum):
    """Kind of change observed on a watched resource."""

    ADDED = "added"
    UPDATED = "updated"
    DELETED = "deleted"


class EventType(StrEnum):
    """CloudEvent types emitted for API server resource changes."""

    ADD = "dev.knative.apiserver.resource.add"
    UPDATE = "dev.knative.apiserver.resource.update"
    DELETE = "dev.knative.apiserver.resource.delete"
    ADD_REF = "dev.knative.apiserver.ref.add"
    UPDATE_REF = "dev.knative.apiserver.ref.update"
    DELETE_REF = "dev.knative.apiserver.ref.delete"


_EVENT_TYPES: dict[tuple[ChangeKind, bool], EventType] = {
    (ChangeKind.ADDED, False): EventType.ADD,
    (ChangeKind.UPDATED, False): EventType.UPDATE,
    (ChangeKind.DELETED, False): EventType.DELETE,
    (ChangeKind.ADDED, True): EventType.ADD_REF,
    (ChangeKind.UPDATED, True): EventType.UPDATE_REF,
    (ChangeKind.DELETED, True): EventType.DELETE_REF,
}


def event_type_for(change: ChangeKind, ref: bool) -> EventType:
    """Return the event type for a change kind and payload mode."""
    return _EVENT_TYPES[(ChangeKind(change), bool(ref))]


@runtime_checkable
class KubernetesObject(Protocol):
    """The minimal view of a resource the event factory needs."""

    @property
    def api_version(self) -> str: ...

    @property
    def kind(self) -> str: ...

    @property
    def name(self) -> str: ...

    @property
    def namespace(self) -> str: ...

    def to_dict(self) -> dict[str, Any]: ...


class Unstructured:
    """A resource held as its raw decoded mapping, e.g. a watch stream object."""

    __slots__ = ("_obj",)

    def __init__(self, obj: Mapping[str, Any]) -> None:
        self._obj = obj

    def _metadata(self) -> Mapping[str, Any]:
        metadata = self._obj.get("metadata")
        return metadata if isinstance(metadata, Mapping) else {}

    @property
    def api_version(self) -> str:
        return str(self._obj.get("apiVersion") or "")

    @property
    def kind(self) -> str:
        return str(self._obj.get("kind") or "")

    @property
    def name(self) -> str:
        return str(self._metadata().get("name") or "")

    @property
    def namespace(self) -> str:
        return str(self._metadata().get("namespace") or "")

    def to_dict(self) -> dict[str, Any]:
        return dict(self._obj)

    def __repr__(self) -> str:
        return f"Unstructured({self.api_version}/{self.kind} {self.namespace}/{self.name})"


@dataclass(frozen=True)
class ObjectReference:
    """Identity-only snapshot of a resource.

    Not enough to rebuild a real self-link: the API version is often the bare
    group and there is no plural resource name.
    """

    api_version: str = ""
    kind: str = ""
    name: str = ""
    namespace: str = ""

    @classmethod
    def from_object(cls, obj: KubernetesObject) -> ObjectReference:
        return cls(
            api_version=obj.api_version,
            kind=obj.kind,
            name=obj.name,
            namespace=obj.namespace,
        )

    def to_dict(self) -> dict[str, str]:
        """Kubernetes JSON encoding; empty fields are omitted."""
        fields = {
            "kind": self.kind,
            "namespace": self.namespace,
            "name": self.name,
            "apiVersion": self.api_version,
        }
        return {key: value for key, value in fields.items() if value}


@dataclass
class EventEnvelope:
    """A CloudEvents 1.0 event built from a resource change.

    ``data`` holds the encoded body once ``set_data`` succeeds.
    """

    type: str
    source: str
    subject: str = ""
    extensions: dict[str, str] = field(default_factory=dict)
    datacontenttype: str = ""
    data: bytes | None = None
    id: str = field(default_factory=lambda: str(uuid4()))
    specversion: str = SPEC_VERSION
    time: datetime = field(default_factory=lambda: datetime.now(tz=UTC))

    def set_extension(self, name: str, value: str) -> None:
        self.extensions[name] = value

    def set_data(self, content_type: str, body: object) -> None:
        """Encode *body* as JSON and store it as the event data.

        Raises:
            SerializationError: if *body* cannot be represented as JSON.
        """
        self.datacontenttype = content_type
        try:
            encoded = json.dumps(body, separators=(",", ":"), allow_nan=False)
        except (TypeError, ValueError) as exc:
            raise SerializationError(f"failed to encode event data: {exc}", envelope=self) from exc
        self.data = encoded.encode("utf-8")

    def json_data(self) -> Any:
        """Decode the event data, or None when no data was set."""
        if self.data is None:
            return None
        return json.loads(self.data)

    def binary_headers(self) -> dict[str, str]:
        """HTTP headers for the CloudEvents binary content mode."""
        attributes = {
            "specversion": self.specversion,
            "id": self.id,
            "source": self.source,
            "type": self.type,
            "time": self.time.isoformat().replace("+00:00", "Z"),
        }
        if self.subject:
            attributes["subject"] = self.subject
        attributes.update(self.extensions)
        headers = {f"ce-{name}": encode_header_value(value) for name, value in attributes.items()}
        if self.datacontenttype:
            headers["Content-Type"] = self.datacontenttype
        return headers
