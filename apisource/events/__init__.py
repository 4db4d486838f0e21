"""Construction of CloudEvents from Kubernetes resource changes.

Submodules:
    factory   -- make_add_event / make_update_event / make_delete_event.
    selflink  -- Best-effort self-link used as the event subject.
"""

from apisource.errors import EventConstructionError, InvalidInputError, SerializationError
from apisource.events.factory import (
    RESOURCE_GROUP,
    make_add_event,
    make_delete_event,
    make_event,
    make_update_event,
)
from apisource.events.selflink import ResourceGuesser, UnsafeKindGuesser, create_self_link

__all__ = [
    "RESOURCE_GROUP",
    "EventConstructionError",
    "InvalidInputError",
    "ResourceGuesser",
    "SerializationError",
    "UnsafeKindGuesser",
    "create_self_link",
    "make_add_event",
    "make_delete_event",
    "make_event",
    "make_update_event",
]
