import pytest
from packaging.version import Version

from gateway_operator.resources.controlplane import (
    controller_version,
    controlplane_image,
    generate_controlplane_cluster_role,
    generate_controlplane_deployment,
    set_controlplane_defaults,
    set_controlplane_env_on_dataplane_change,
    update_controlplane_deployment,
)
from gateway_operator.resources.dataplane import (
    generate_dataplane_deployment,
    generate_dataplane_service,
    set_dataplane_defaults,
)
from gateway_operator.resources.deployment import (
    add_missing_env,
    certificate_secret_name,
    container,
    deployment_ready,
    get_env_value,
    set_env_value,
    update_deployment,
)
from gateway_operator.resources.gateway import explicit_options, update_child_spec

NAMESPACE = "default"


def controlplane(spec=None):
    return {
        "metadata": {"name": "cp", "namespace": NAMESPACE},
        "spec": spec or {},
    }


def dataplane(spec=None):
    return {
        "metadata": {"name": "dp", "namespace": NAMESPACE},
        "spec": spec or {},
    }


def rule_resources(cluster_role):
    return {resource for rule in cluster_role["rules"] for resource in rule["resources"]}


@pytest.mark.parametrize(
    "image, expected",
    [
        ("kong/kubernetes-ingress-controller:2.7", Version("2.7")),
        ("kong/kubernetes-ingress-controller:2.7.0-rc1", Version("2.7.0rc1")),
        ("kong/kubernetes-ingress-controller:latest", None),
        ("registry:5000/kic", None),
    ],
)
def test_controller_version(image, expected):
    assert controller_version(image) == expected


def test_controlplane_image_defaults():
    assert controlplane_image({}) == "kong/kubernetes-ingress-controller:2.7"
    assert controlplane_image({"containerImage": "example/kic", "version": "2.5"}) == (
        "example/kic:2.5"
    )


@pytest.mark.parametrize(
    "tag, grants",
    [("2.5.1", False), ("2.6", True), ("3.0", True), ("main", True)],
)
def test_cluster_role_rules_follow_controller_version(tag, grants):
    role = generate_controlplane_cluster_role("cp", f"kong/kubernetes-ingress-controller:{tag}")

    resources = rule_resources(role)
    assert ("referencegrants" in resources) is grants
    assert ("referencepolicies" in resources) is not grants
    assert role["metadata"]["generateName"] == "controlplane-cp-"


def test_controlplane_defaults_point_at_the_dataplane():
    spec = {}

    assert set_controlplane_defaults(spec, NAMESPACE, "dataplane-dp-svc", "example/operator")

    env = spec["env"]
    assert get_env_value(env, "CONTROLLER_PUBLISH_SERVICE") == "default/dataplane-dp-svc"
    assert get_env_value(env, "CONTROLLER_GATEWAY_API_CONTROLLER_NAME") == "example/operator"
    assert not set_controlplane_defaults(spec, NAMESPACE, "dataplane-dp-svc", "example/operator")


def test_controlplane_defaults_without_service_leave_addressing_unset():
    spec = {}

    set_controlplane_defaults(spec, NAMESPACE, "", "example/operator")

    assert get_env_value(spec["env"], "CONTROLLER_PUBLISH_SERVICE") is None
    assert not set_controlplane_env_on_dataplane_change(spec, NAMESPACE, "")


def test_dataplane_change_replaces_value_from():
    spec = {
        "env": [
            {
                "name": "CONTROLLER_PUBLISH_SERVICE",
                "valueFrom": {"configMapKeyRef": {"name": "x", "key": "y"}},
            }
        ]
    }

    assert set_controlplane_env_on_dataplane_change(spec, NAMESPACE, "svc")
    assert spec["env"] == [
        {"name": "CONTROLLER_PUBLISH_SERVICE", "value": "default/svc"},
        {"name": "CONTROLLER_KONG_ADMIN_URL", "value": "https://svc.default.svc:8444"},
    ]


def test_dormant_deployment_has_zero_replicas():
    deployment = generate_controlplane_deployment(
        controlplane({"replicas": 2}), "controlplane-cp-sa", dataplane_is_set=False
    )

    assert deployment["spec"]["replicas"] == 0
    assert deployment["spec"]["template"]["spec"]["serviceAccountName"] == "controlplane-cp-sa"


def test_setting_dataplane_lifts_the_replica_override():
    existing = generate_controlplane_deployment(controlplane(), "sa", dataplane_is_set=False)
    spec = {}
    set_controlplane_defaults(spec, NAMESPACE, "svc", "example/operator")
    generated = generate_controlplane_deployment(controlplane(spec), "sa", dataplane_is_set=True)

    assert update_controlplane_deployment(existing, generated, dataplane_is_set=True)

    assert "replicas" not in existing["spec"]
    assert container(existing)["env"] == container(generated)["env"]
    assert not update_controlplane_deployment(existing, generated, dataplane_is_set=True)


def test_unset_replicas_are_not_compared():
    existing = generate_dataplane_deployment(dataplane(), "secret")
    existing["spec"]["replicas"] = 4
    generated = generate_dataplane_deployment(dataplane(), "secret")

    assert not update_deployment(existing, generated)
    assert existing["spec"]["replicas"] == 4


def test_deployment_update_follows_options():
    existing = generate_dataplane_deployment(dataplane(), "old-secret")
    generated = generate_dataplane_deployment(
        dataplane({"version": "3.1", "replicas": 2, "envFrom": [{"secretRef": {"name": "s"}}]}),
        "new-secret",
    )

    assert update_deployment(existing, generated)

    assert container(existing)["image"] == "kong:3.1"
    assert container(existing)["envFrom"] == [{"secretRef": {"name": "s"}}]
    assert existing["spec"]["replicas"] == 2
    assert certificate_secret_name(existing) == "new-secret"


def test_dataplane_defaults_are_dbless():
    spec = {"env": [{"name": "KONG_NGINX_WORKER_PROCESSES", "value": "4"}]}

    assert set_dataplane_defaults(spec)

    assert get_env_value(spec["env"], "KONG_DATABASE") == "off"
    assert get_env_value(spec["env"], "KONG_NGINX_WORKER_PROCESSES") == "4"


def test_dataplane_service_exposes_proxy_and_admin_ports():
    service = generate_dataplane_service(dataplane())

    ports = {port["port"] for port in service["spec"]["ports"]}
    assert {80, 443, 8444} <= ports
    assert service["metadata"]["generateName"] == "dataplane-dp-"


def test_env_helpers():
    env = [{"name": "A", "value": "1"}]

    assert not set_env_value(env, "A", "1")
    assert set_env_value(env, "A", "2")
    assert not add_missing_env(env, [{"name": "A", "value": "3"}])
    assert add_missing_env(env, [{"name": "B", "value": "3"}])
    assert env == [{"name": "A", "value": "2"}, {"name": "B", "value": "3"}]


def ready_deployment(replicas=1, available=1, generation=1, observed=1):
    return {
        "metadata": {"generation": generation},
        "spec": {"replicas": replicas},
        "status": {
            "observedGeneration": observed,
            "replicas": replicas,
            "availableReplicas": available,
        },
    }


def test_deployment_readiness():
    assert deployment_ready(ready_deployment())
    assert not deployment_ready(ready_deployment(available=0))
    assert not deployment_ready(ready_deployment(replicas=0, available=0))
    assert not deployment_ready(ready_deployment(generation=2, observed=1))
    assert not deployment_ready({"metadata": {}, "spec": {}})


def test_explicit_options_skip_unset_values():
    assert explicit_options({"version": "1.0", "env": [], "replicas": None}) == {
        "version": "1.0"
    }
    assert explicit_options(None) == {}


def test_child_spec_update_only_touches_configured_options():
    update = update_child_spec({"version": "1.1"})
    existing = {"spec": {"version": "1.0", "env": [{"name": "A", "value": "1"}]}}

    assert update(existing, {})
    assert existing["spec"] == {"version": "1.1", "env": [{"name": "A", "value": "1"}]}
    assert not update(existing, {})
