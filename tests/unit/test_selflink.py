"""Tests for self-link derivation and the kind-to-resource guesser."""

from __future__ import annotations

from hypothesis import given
from hypothesis import strategies as st

from apisource.events.selflink import VERSION_UNKNOWN, UnsafeKindGuesser, create_self_link
from apisource.models.events import ObjectReference

_identity = st.text(alphabet=st.characters(blacklist_categories=("Cs",)), max_size=30)


def _ref(
    api_version: str = "serving.knative.dev",
    kind: str = "Revision",
    name: str = "my-rev",
    namespace: str = "default",
) -> ObjectReference:
    return ObjectReference(api_version=api_version, kind=kind, name=name, namespace=namespace)


class _FixedGuesser:
    def __init__(self, resource: str) -> None:
        self.resource = resource
        self.calls: list[str] = []

    def guess_resource(self, kind: str) -> str:
        self.calls.append(kind)
        return self.resource


# ---------------------------------------------------------------------------
# UnsafeKindGuesser
# ---------------------------------------------------------------------------


class TestUnsafeKindGuesser:
    def test_regular_kind_gets_s(self) -> None:
        assert UnsafeKindGuesser().guess_resource("Revision") == "revisions"

    def test_kind_is_lower_cased(self) -> None:
        assert UnsafeKindGuesser().guess_resource("ConfigMap") == "configmaps"

    def test_kind_ending_in_s_gets_es(self) -> None:
        assert UnsafeKindGuesser().guess_resource("Ingress") == "ingresses"

    def test_kind_ending_in_y_gets_ies(self) -> None:
        assert UnsafeKindGuesser().guess_resource("NetworkPolicy") == "networkpolicies"

    def test_irregular_plural_is_guessed_wrong(self) -> None:
        # Endpoints is already plural; the naive guess does not know that.
        assert UnsafeKindGuesser().guess_resource("Endpoints") == "endpointses"

    def test_empty_kind(self) -> None:
        assert UnsafeKindGuesser().guess_resource("") == ""


# ---------------------------------------------------------------------------
# create_self_link
# ---------------------------------------------------------------------------


class TestCreateSelfLink:
    def test_group_without_version_gets_version_unknown(self) -> None:
        link = create_self_link(_ref())
        assert link == "/apis/serving.knative.dev/versionUnknown/namespaces/default/revisions/my-rev"

    def test_core_version_has_no_suffix(self) -> None:
        link = create_self_link(_ref(api_version="v1", kind="Pod", name="web-0"))
        assert link == "/apis/v1/namespaces/default/pods/web-0"

    def test_group_with_version_has_no_suffix(self) -> None:
        link = create_self_link(_ref(api_version="example.dev/v1"))
        assert link == "/apis/example.dev/v1/namespaces/default/revisions/my-rev"
        assert VERSION_UNKNOWN not in link

    def test_example_dev_gets_suffix(self) -> None:
        assert "/versionUnknown" in create_self_link(_ref(api_version="example.dev"))

    def test_group_without_dot_and_slash_is_left_alone(self) -> None:
        link = create_self_link(_ref(api_version="apps/v1", kind="Deployment", name="web"))
        assert link == "/apis/apps/v1/namespaces/default/deployments/web"

    def test_empty_reference_still_produces_a_link(self) -> None:
        assert create_self_link(ObjectReference()) == "/apis//namespaces///"

    def test_cluster_scoped_resource_has_empty_namespace_segment(self) -> None:
        link = create_self_link(_ref(api_version="v1", kind="Node", name="node-1", namespace=""))
        assert link == "/apis/v1/namespaces//nodes/node-1"

    def test_custom_guesser_is_used(self) -> None:
        guesser = _FixedGuesser("routes")
        link = create_self_link(_ref(kind="Route", name="r"), guesser)
        assert guesser.calls == ["Route"]
        assert link.endswith("/routes/r")

    @given(api_version=_identity, kind=_identity, name=_identity, namespace=_identity)
    def test_is_deterministic(self, api_version: str, kind: str, name: str, namespace: str) -> None:
        ref = _ref(api_version=api_version, kind=kind, name=name, namespace=namespace)
        assert create_self_link(ref) == create_self_link(_ref(api_version, kind, name, namespace))

    @given(api_version=_identity)
    def test_version_unknown_iff_dot_and_no_slash(self, api_version: str) -> None:
        link = create_self_link(_ref(api_version=api_version))
        expected_version = api_version
        if "." in api_version and "/" not in api_version:
            expected_version = f"{api_version}/versionUnknown"
        assert link == f"/apis/{expected_version}/namespaces/default/revisions/my-rev"
