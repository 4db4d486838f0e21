"""Subject derivation for API server events.

Builds a URI of the form found in object metadata selfLinks, e.g.
``/apis/feeds.knative.dev/v1alpha1/namespaces/default/feeds/k8s-events-example``.

Known gaps, kept on purpose because consumers match on the output:

* ObjectReference.apiVersion may carry only the group
  (``serving.knative.dev`` rather than ``serving.knative.dev/v1``); such
  values get a literal ``/versionUnknown`` segment.
* There is no plural resource name, so it is guessed from the kind.  The
  guess is wrong for irregular plurals and custom resource names.

Upstream tracking: https://github.com/kubernetes/kubernetes/issues/66313
"""

from __future__ import annotations

from typing import Protocol

from apisource.models.events import ObjectReference

VERSION_UNKNOWN = "versionUnknown"


class ResourceGuesser(Protocol):
    """Maps a kind to its plural resource name."""

    def guess_resource(self, kind: str) -> str: ...


class UnsafeKindGuesser:
    """Kubernetes' naive kind-to-resource pluralization.

    Lower-cases the kind, then: ``...s`` -> ``...ses``, ``...y`` -> ``...ies``,
    anything else gets an ``s``.
    """

    def guess_resource(self, kind: str) -> str:
        if not kind:
            return ""
        singular = kind.lower()
        if singular.endswith("s"):
            return singular + "es"
        if singular.endswith("y"):
            return singular[:-1] + "ies"
        return singular + "s"


_DEFAULT_GUESSER = UnsafeKindGuesser()


def create_self_link(ref: ObjectReference, guesser: ResourceGuesser | None = None) -> str:
    """Return a best-effort self-link for *ref*.  Never fails."""
    resource = (guesser or _DEFAULT_GUESSER).guess_resource(ref.kind)
    version_name_hack = ref.api_version

    # Core types only have a version ("v1"); a "." means a group without a version.
    if "." in version_name_hack and "/" not in version_name_hack:
        version_name_hack = f"{version_name_hack}/{VERSION_UNKNOWN}"
    return f"/apis/{version_name_hack}/namespaces/{ref.namespace}/{resource}/{ref.name}"
