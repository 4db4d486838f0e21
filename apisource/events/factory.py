"""Event factory: resource changes to CloudEvents.

``make_add_event``, ``make_update_event`` and ``make_delete_event`` each
return a ``(DeliveryContext, EventEnvelope)`` pair.  The body is either the
whole resource or its ObjectReference, depending on ``ref``.

The factory is pure: it performs no I/O, keeps no state and does not log.
"""

from __future__ import annotations

from opentelemetry.trace import SpanKind

from apisource.errors import InvalidInputError
from apisource.events.selflink import ResourceGuesser, create_self_link
from apisource.models.context import DeliveryContext, MetricTag, RetryPolicy, SpanData
from apisource.models.events import (
    APPLICATION_JSON,
    ChangeKind,
    EventEnvelope,
    KubernetesObject,
    ObjectReference,
    event_type_for,
)

RESOURCE_GROUP = "apiserversources.sources.knative.dev"
CLIENT_SPAN_NAME = "cloudevents.client"
PROCESS_SPAN_NAME = f"{CLIENT_SPAN_NAME} process"

_RETRY_POLICY = RetryPolicy()


def k8s_attributes(name: str, namespace: str, resource_group: str) -> dict[str, str]:
    """Span attributes identifying the owning source object."""
    return {
        "k8s.namespace.name": namespace,
        "kn.source.name": name,
        "kn.source.resource.group": resource_group,
    }


def make_add_event(
    source: str,
    owner_name: str,
    resource: KubernetesObject | None,
    ref: bool,
) -> tuple[DeliveryContext, EventEnvelope]:
    """Build the event for a resource that was created."""
    return make_event(ChangeKind.ADDED, source, owner_name, resource, ref)


def make_update_event(
    source: str,
    owner_name: str,
    resource: KubernetesObject | None,
    ref: bool,
) -> tuple[DeliveryContext, EventEnvelope]:
    """Build the event for a resource that was updated."""
    return make_event(ChangeKind.UPDATED, source, owner_name, resource, ref)


def make_delete_event(
    source: str,
    owner_name: str,
    resource: KubernetesObject | None,
    ref: bool,
) -> tuple[DeliveryContext, EventEnvelope]:
    """Build the event for a resource that was deleted."""
    return make_event(ChangeKind.DELETED, source, owner_name, resource, ref)


def make_event(
    change: ChangeKind,
    source: str,
    owner_name: str,
    resource: KubernetesObject | None,
    ref: bool,
    guesser: ResourceGuesser | None = None,
) -> tuple[DeliveryContext, EventEnvelope]:
    """Build the event and delivery context for one resource change.

    Raises:
        InvalidInputError: *resource* is None.
        SerializationError: the body cannot be encoded as JSON.  The partial
            envelope is available on the exception; no context is built.
    """
    if resource is None:
        raise InvalidInputError()

    data: object
    if ref:
        data = ObjectReference.from_object(resource).to_dict()
    else:
        data = resource.to_dict()

    return _assemble(source, owner_name, event_type_for(change, ref), resource, data, guesser)


def _assemble(
    source: str,
    owner_name: str,
    event_type: str,
    resource: KubernetesObject,
    data: object,
    guesser: ResourceGuesser | None,
) -> tuple[DeliveryContext, EventEnvelope]:
    name = resource.name
    kind = resource.kind
    namespace = resource.namespace
    subject = create_self_link(
        ObjectReference(
            api_version=resource.api_version,
            kind=kind,
            name=name,
            namespace=namespace,
        ),
        guesser,
    )

    event = EventEnvelope(type=event_type, source=source, subject=subject)
    # Copied so triggers can filter without parsing the body.
    event.set_extension("kind", kind)
    event.set_extension("name", name)
    event.set_extension("namespace", namespace)
    event.set_data(APPLICATION_JSON, data)

    context = DeliveryContext(
        metric_tag=MetricTag(namespace=namespace, name=owner_name, resource_group=RESOURCE_GROUP),
        span=SpanData(
            name=PROCESS_SPAN_NAME,
            kind=SpanKind.PRODUCER,
            attributes=k8s_attributes(owner_name, namespace, RESOURCE_GROUP),
        ),
        retry=_RETRY_POLICY,
    )
    return context, event
