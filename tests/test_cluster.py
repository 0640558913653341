import time
from unittest.mock import MagicMock

import pytest
from kubernetes.client.exceptions import ApiException

from gateway_operator.cluster import ClusterClient, label_selector, pass_deadline
from gateway_operator.crd.registry import build_scheme
from gateway_operator.errors import (
    ApiError,
    ConflictError,
    DeadlineExceededError,
    NotFoundError,
    UnknownKindError,
)


@pytest.fixture
def api():
    api_client = MagicMock()
    api_client.sanitize_for_serialization.side_effect = lambda result: dict(result)
    cluster = ClusterClient(build_scheme(), api_client=api_client, request_timeout=10)
    for name in ("core", "apps", "rbac", "custom"):
        cluster._apis[name] = MagicMock()
    return cluster


def test_label_selector_is_sorted():
    assert label_selector({"b": "2", "a": "1"}) == "a=1,b=2"
    assert label_selector({}) is None
    assert label_selector(None) is None


def test_get_typed_kind_fills_in_type_meta(api):
    api._apis["core"].read_namespaced_service.return_value = {"metadata": {"name": "svc"}}

    service = api.get("Service", "svc", "default")

    api._apis["core"].read_namespaced_service.assert_called_once_with(
        "svc", "default", _request_timeout=10
    )
    assert service["apiVersion"] == "v1"
    assert service["kind"] == "Service"


def test_get_custom_kind_uses_custom_objects_api(api):
    api._apis["custom"].get_namespaced_custom_object.return_value = {
        "metadata": {"name": "gw"}
    }

    gateway = api.get("Gateway", "gw", "default")

    args = api._apis["custom"].get_namespaced_custom_object.call_args.args
    assert args == ("gateway.networking.k8s.io", "v1alpha2", "default", "gateways", "gw")
    assert gateway["kind"] == "Gateway"


def test_list_across_namespaces_with_labels(api):
    api._apis["apps"].list_deployment_for_all_namespaces.return_value = MagicMock(
        items=[{"metadata": {"name": "a"}}]
    )

    (deployment,) = api.list("Deployment", labels={"app": "x"})

    kwargs = api._apis["apps"].list_deployment_for_all_namespaces.call_args.kwargs
    assert kwargs["label_selector"] == "app=x"
    assert deployment["apiVersion"] == "apps/v1"


def test_cluster_scoped_kind_ignores_namespace(api):
    api._apis["rbac"].list_cluster_role.return_value = MagicMock(items=[])

    assert api.list("ClusterRole", namespace="default") == []
    api._apis["rbac"].list_cluster_role.assert_called_once()


@pytest.mark.parametrize(
    "status, error",
    [(404, NotFoundError), (409, ConflictError), (500, ApiError)],
)
def test_api_exceptions_are_translated(api, status, error):
    api._apis["core"].read_namespaced_secret.side_effect = ApiException(
        status=status, reason="Failure"
    )

    with pytest.raises(error) as info:
        api.get("Secret", "ca", "default")

    assert info.value.status == status


def test_update_status_uses_status_subresource(api):
    api._apis["custom"].replace_namespaced_custom_object_status.return_value = {
        "metadata": {"name": "dp"}
    }

    api.update_status(
        {
            "kind": "DataPlane",
            "metadata": {"name": "dp", "namespace": "default"},
            "status": {},
        }
    )

    api._apis["custom"].replace_namespaced_custom_object_status.assert_called_once()
    api._apis["custom"].replace_namespaced_custom_object.assert_not_called()


def test_deleting_a_missing_object_is_not_an_error(api):
    api._apis["rbac"].delete_cluster_role.side_effect = ApiException(
        status=404, reason="Not Found"
    )

    api.delete({"kind": "ClusterRole", "metadata": {"name": "gone"}})


def test_unknown_kind_is_rejected(api):
    with pytest.raises(UnknownKindError):
        api.get("Ingress", "web", "default")


def test_request_timeout_is_capped_by_the_pass_deadline(api):
    token = pass_deadline.set(time.monotonic() + 1.0)
    try:
        timeout = api._timeout()
    finally:
        pass_deadline.reset(token)

    assert 0 < timeout <= 1.0
    assert api._timeout() == 10


def test_call_after_the_deadline_is_refused(api):
    token = pass_deadline.set(time.monotonic() - 1.0)
    try:
        with pytest.raises(DeadlineExceededError):
            api.get("Service", "svc", "default")
    finally:
        pass_deadline.reset(token)

    api._apis["core"].read_namespaced_service.assert_not_called()
