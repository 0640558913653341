import pytest

from gateway_operator.consts import (
    CONDITION_FALSE,
    CONDITION_TRUE,
    CONDITION_TYPE_PROVISIONED,
    CONTROLPLANE_MANAGED_LABEL_VALUE,
    DATAPLANE_MANAGED_LABEL_VALUE,
    OPERATOR_MANAGED_BY_LABEL,
    REASON_NO_DATAPLANE,
    REASON_PODS_NOT_READY,
    REASON_PODS_READY,
)
from gateway_operator.controllers.base import Request
from gateway_operator.controllers.controlplane import ControlPlaneReconciler
from gateway_operator.errors import CardinalityError
from gateway_operator.resources.deployment import container, get_env_value
from gateway_operator.status.conditions import get_condition
from gateway_operator.utils.kubernetes import owner_reference

from fakes import mark_deployment_ready, reconcile_until_stable

NAMESPACE = "default"


@pytest.fixture
def reconciler(client, config, recorder):
    return ControlPlaneReconciler(client, config, recorder)


@pytest.fixture
def dataplane(client):
    dataplane = client.put(
        {
            "apiVersion": "gateway-operator.io/v1alpha1",
            "kind": "DataPlane",
            "metadata": {"name": "dp", "namespace": NAMESPACE},
            "spec": {},
        }
    )
    client.put(
        {
            "apiVersion": "v1",
            "kind": "Service",
            "metadata": {
                "name": "dataplane-dp-svc",
                "namespace": NAMESPACE,
                "labels": {OPERATOR_MANAGED_BY_LABEL: DATAPLANE_MANAGED_LABEL_VALUE},
                "ownerReferences": [owner_reference(dataplane)],
            },
            "spec": {"type": "LoadBalancer"},
        }
    )
    return dataplane


def create_controlplane(client, spec=None):
    return client.put(
        {
            "apiVersion": "gateway-operator.io/v1alpha1",
            "kind": "ControlPlane",
            "metadata": {"name": "cp", "namespace": NAMESPACE},
            "spec": spec or {},
        }
    )


def owned(client, kind, controlplane):
    uid = controlplane["metadata"]["uid"]
    return [
        obj
        for obj in client.list(
            kind, labels={OPERATOR_MANAGED_BY_LABEL: CONTROLPLANE_MANAGED_LABEL_VALUE}
        )
        if any(ref["uid"] == uid for ref in obj["metadata"]["ownerReferences"])
    ]


def provision(client, reconciler):
    reconcile_until_stable(reconciler, NAMESPACE, "cp")
    controlplane = client.get("ControlPlane", "cp", NAMESPACE)
    (deployment,) = owned(client, "Deployment", controlplane)
    mark_deployment_ready(client, deployment)
    reconcile_until_stable(reconciler, NAMESPACE, "cp")
    return client.get("ControlPlane", "cp", NAMESPACE)


def test_controlplane_with_dataplane_is_provisioned(client, reconciler, dataplane):
    create_controlplane(client, spec={"dataPlane": "dp"})

    controlplane = provision(client, reconciler)

    condition = get_condition(controlplane, CONDITION_TYPE_PROVISIONED)
    assert condition["status"] == CONDITION_TRUE
    assert condition["reason"] == REASON_PODS_READY

    env = controlplane["spec"]["env"]
    assert get_env_value(env, "CONTROLLER_PUBLISH_SERVICE") == "default/dataplane-dp-svc"
    assert (
        get_env_value(env, "CONTROLLER_KONG_ADMIN_URL")
        == "https://dataplane-dp-svc.default.svc:8444"
    )
    assert get_env_value(env, "CONTROLLER_GATEWAY_API_CONTROLLER_NAME") == "example/operator"

    (service_account,) = owned(client, "ServiceAccount", controlplane)
    (cluster_role,) = owned(client, "ClusterRole", controlplane)
    (binding,) = owned(client, "ClusterRoleBinding", controlplane)
    (deployment,) = owned(client, "Deployment", controlplane)
    assert binding["roleRef"]["name"] == cluster_role["metadata"]["name"]
    assert binding["subjects"][0]["name"] == service_account["metadata"]["name"]
    assert binding["subjects"][0]["namespace"] == NAMESPACE
    assert (
        deployment["spec"]["template"]["spec"]["serviceAccountName"]
        == service_account["metadata"]["name"]
    )
    assert container(deployment)["env"] == env


def test_stable_controlplane_is_idempotent(client, reconciler, dataplane):
    create_controlplane(client, spec={"dataPlane": "dp"})
    provision(client, reconciler)
    before = client.writes

    reconciler.reconcile(Request(NAMESPACE, "cp"))

    assert client.writes == before


def test_controlplane_without_dataplane_is_dormant(client, reconciler):
    create_controlplane(client, spec={"replicas": 3})

    reconcile_until_stable(reconciler, NAMESPACE, "cp")

    controlplane = client.get("ControlPlane", "cp", NAMESPACE)
    condition = get_condition(controlplane, CONDITION_TYPE_PROVISIONED)
    assert condition["status"] == CONDITION_FALSE
    assert condition["reason"] == REASON_NO_DATAPLANE
    (deployment,) = owned(client, "Deployment", controlplane)
    assert deployment["spec"]["replicas"] == 0
    assert get_env_value(controlplane["spec"]["env"], "CONTROLLER_PUBLISH_SERVICE") is None


def test_removing_dataplane_scales_to_zero(client, reconciler, dataplane):
    create_controlplane(client, spec={"dataPlane": "dp"})
    provision(client, reconciler)

    def unset(controlplane):
        del controlplane["spec"]["dataPlane"]

    client.edit("ControlPlane", "cp", NAMESPACE, unset)
    reconciler.reconcile(Request(NAMESPACE, "cp"))

    controlplane = client.get("ControlPlane", "cp", NAMESPACE)
    condition = get_condition(controlplane, CONDITION_TYPE_PROVISIONED)
    assert condition["reason"] == REASON_NO_DATAPLANE
    assert condition["status"] == CONDITION_FALSE

    reconcile_until_stable(reconciler, NAMESPACE, "cp")
    (deployment,) = owned(client, "Deployment", controlplane)
    assert deployment["spec"]["replicas"] == 0


def test_setting_dataplane_again_lifts_replica_override(client, reconciler, dataplane):
    create_controlplane(client)
    reconcile_until_stable(reconciler, NAMESPACE, "cp")

    def assign(controlplane):
        controlplane["spec"]["dataPlane"] = "dp"

    client.edit("ControlPlane", "cp", NAMESPACE, assign)
    reconciler.reconcile(Request(NAMESPACE, "cp"))

    controlplane = client.get("ControlPlane", "cp", NAMESPACE)
    condition = get_condition(controlplane, CONDITION_TYPE_PROVISIONED)
    assert condition["reason"] == REASON_PODS_NOT_READY

    reconcile_until_stable(reconciler, NAMESPACE, "cp")
    controlplane = client.get("ControlPlane", "cp", NAMESPACE)
    (deployment,) = owned(client, "Deployment", controlplane)
    assert deployment["spec"]["replicas"] == 1
    assert (
        get_env_value(container(deployment)["env"], "CONTROLLER_PUBLISH_SERVICE")
        == "default/dataplane-dp-svc"
    )


def test_dataplane_service_change_patches_env(client, reconciler, dataplane):
    create_controlplane(client, spec={"dataPlane": "dp"})
    provision(client, reconciler)

    client.delete(client.get("Service", "dataplane-dp-svc", NAMESPACE))
    client.put(
        {
            "apiVersion": "v1",
            "kind": "Service",
            "metadata": {
                "name": "dataplane-dp-new",
                "namespace": NAMESPACE,
                "labels": {OPERATOR_MANAGED_BY_LABEL: DATAPLANE_MANAGED_LABEL_VALUE},
                "ownerReferences": [owner_reference(dataplane)],
            },
            "spec": {"type": "LoadBalancer"},
        }
    )
    reconciler.reconcile(Request(NAMESPACE, "cp"))

    controlplane = client.get("ControlPlane", "cp", NAMESPACE)
    env = controlplane["spec"]["env"]
    assert get_env_value(env, "CONTROLLER_PUBLISH_SERVICE") == "default/dataplane-dp-new"
    assert (
        get_env_value(env, "CONTROLLER_KONG_ADMIN_URL")
        == "https://dataplane-dp-new.default.svc:8444"
    )


def test_several_dataplane_services_is_an_error(client, reconciler, dataplane):
    create_controlplane(client, spec={"dataPlane": "dp"})
    reconciler.reconcile(Request(NAMESPACE, "cp"))
    client.put(
        {
            "apiVersion": "v1",
            "kind": "Service",
            "metadata": {
                "name": "dataplane-dp-extra",
                "namespace": NAMESPACE,
                "labels": {OPERATOR_MANAGED_BY_LABEL: DATAPLANE_MANAGED_LABEL_VALUE},
                "ownerReferences": [owner_reference(dataplane)],
            },
        }
    )

    with pytest.raises(CardinalityError):
        reconciler.reconcile(Request(NAMESPACE, "cp"))


def test_old_controller_image_gets_reference_policy_rules(client, reconciler):
    create_controlplane(client, spec={"version": "2.5"})
    reconcile_until_stable(reconciler, NAMESPACE, "cp")
    controlplane = client.get("ControlPlane", "cp", NAMESPACE)
    (cluster_role,) = owned(client, "ClusterRole", controlplane)
    resources = [r for rule in cluster_role["rules"] for r in rule["resources"]]
    assert "referencepolicies" in resources
    assert "referencegrants" not in resources

    def upgrade(controlplane):
        controlplane["spec"]["version"] = "2.7"

    client.edit("ControlPlane", "cp", NAMESPACE, upgrade)
    reconcile_until_stable(reconciler, NAMESPACE, "cp")

    (cluster_role,) = owned(client, "ClusterRole", controlplane)
    resources = [r for rule in cluster_role["rules"] for r in rule["resources"]]
    assert "referencegrants" in resources
    assert "referencepolicies" not in resources


def test_binding_to_another_role_is_recreated(client, reconciler):
    create_controlplane(client)
    reconcile_until_stable(reconciler, NAMESPACE, "cp")
    controlplane = client.get("ControlPlane", "cp", NAMESPACE)
    (binding,) = owned(client, "ClusterRoleBinding", controlplane)
    binding["roleRef"]["name"] = "someone-else"
    client.objects[("ClusterRoleBinding", None, binding["metadata"]["name"])] = binding

    reconcile_until_stable(reconciler, NAMESPACE, "cp")

    (cluster_role,) = owned(client, "ClusterRole", controlplane)
    (new_binding,) = owned(client, "ClusterRoleBinding", controlplane)
    assert new_binding["metadata"]["name"] != binding["metadata"]["name"]
    assert new_binding["roleRef"]["name"] == cluster_role["metadata"]["name"]


def test_cleanup_deletes_cluster_scoped_children(client, reconciler):
    create_controlplane(client)
    reconcile_until_stable(reconciler, NAMESPACE, "cp")
    controlplane = client.get("ControlPlane", "cp", NAMESPACE)

    reconciler.cleanup(controlplane)

    assert owned(client, "ClusterRole", controlplane) == []
    assert owned(client, "ClusterRoleBinding", controlplane) == []
    assert len(owned(client, "ServiceAccount", controlplane)) == 1


def test_controlplane_being_deleted_is_skipped(client, reconciler):
    client.put(
        {
            "apiVersion": "gateway-operator.io/v1alpha1",
            "kind": "ControlPlane",
            "metadata": {
                "name": "cp",
                "namespace": NAMESPACE,
                "deletionTimestamp": "2024-01-01T00:00:00Z",
            },
            "spec": {},
        }
    )

    reconciler.reconcile(Request(NAMESPACE, "cp"))

    assert client.writes == 0
