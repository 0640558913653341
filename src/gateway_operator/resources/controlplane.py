"""Objects generated for a ControlPlane."""

import logging

from packaging.version import InvalidVersion, Version

from gateway_operator import consts
from gateway_operator.resources.deployment import (
    add_missing_env,
    container,
    set_env_value,
    update_deployment,
)
from gateway_operator.resources.templates import render_resource

logger = logging.getLogger(__name__)

# First controller release reading ReferenceGrants instead of ReferencePolicies
REFERENCE_GRANT_VERSION = Version("2.6")


def controlplane_image(spec):
    image = spec.get("containerImage") or consts.DEFAULT_CONTROLPLANE_IMAGE
    tag = spec.get("version") or consts.DEFAULT_CONTROLPLANE_TAG
    return f"{image}:{tag}"


def controller_version(image):
    """Parse the tag of a controller image; None when it is not a release version."""
    _, _, tag = image.rpartition(":")
    if not tag or "/" in tag:
        return None
    try:
        return Version(tag)
    except InvalidVersion:
        return None


def dataplane_admin_url(namespace, dataplane_service):
    return f"https://{dataplane_service}.{namespace}.svc:{consts.DATAPLANE_ADMIN_API_PORT}"


def set_controlplane_env_on_dataplane_change(options, namespace, dataplane_service):
    """Point the controller env at the DataPlane service.

    Returns:
        bool: True if the env list changed
    """
    if not dataplane_service:
        return False

    env = options.get("env") or []
    changed = set_env_value(
        env, consts.ENV_PUBLISH_SERVICE, f"{namespace}/{dataplane_service}"
    )
    if set_env_value(
        env, consts.ENV_KONG_ADMIN_URL, dataplane_admin_url(namespace, dataplane_service)
    ):
        changed = True
    options["env"] = env
    return changed


def set_controlplane_defaults(options, namespace, dataplane_service, controller_name):
    """Fill in the default controller environment on a ControlPlane spec dict.

    Returns:
        bool: True if the spec changed
    """
    defaults = [
        {
            "name": "POD_NAME",
            "valueFrom": {"fieldRef": {"apiVersion": "v1", "fieldPath": "metadata.name"}},
        },
        {
            "name": "POD_NAMESPACE",
            "valueFrom": {
                "fieldRef": {"apiVersion": "v1", "fieldPath": "metadata.namespace"}
            },
        },
        {"name": "CONTROLLER_GATEWAY_API_CONTROLLER_NAME", "value": controller_name},
        {"name": "CONTROLLER_FEATURE_GATES", "value": "Gateway=true"},
        {"name": "CONTROLLER_ANONYMOUS_REPORTS", "value": "false"},
        {"name": "CONTROLLER_KONG_ADMIN_TLS_SKIP_VERIFY", "value": "true"},
    ]

    env = options.get("env") or []
    changed = add_missing_env(env, defaults)
    options["env"] = env
    if set_controlplane_env_on_dataplane_change(options, namespace, dataplane_service):
        changed = True
    return changed


def generate_controlplane_service_account(controlplane):
    return render_resource(
        "controlplane-serviceaccount.yaml.j2",
        name=controlplane["metadata"]["name"],
        namespace=controlplane["metadata"]["namespace"],
    )


def generate_controlplane_cluster_role(name, image):
    """ClusterRole for the controller; the rules depend on the image version."""
    version = controller_version(image)
    # Unparsable tags (latest, digests, branches) get the newest rule set
    supports_reference_grants = version is None or version >= REFERENCE_GRANT_VERSION
    return render_resource(
        "controlplane-clusterrole.yaml.j2",
        name=name,
        supports_reference_grants=supports_reference_grants,
    )


def generate_controlplane_cluster_role_binding(controlplane, service_account, cluster_role):
    return render_resource(
        "controlplane-clusterrolebinding.yaml.j2",
        name=controlplane["metadata"]["name"],
        namespace=controlplane["metadata"]["namespace"],
        service_account=service_account,
        cluster_role=cluster_role,
    )


def generate_controlplane_deployment(controlplane, service_account, dataplane_is_set):
    """Deployment for the controller; dormant (zero replicas) without a DataPlane."""
    spec = controlplane.get("spec") or {}
    replicas = spec.get("replicas")
    if not dataplane_is_set:
        replicas = consts.NUM_REPLICAS_WHEN_NO_DATAPLANE

    return render_resource(
        "controlplane-deployment.yaml.j2",
        name=controlplane["metadata"]["name"],
        namespace=controlplane["metadata"]["namespace"],
        image=controlplane_image(spec),
        replicas=replicas,
        env=spec.get("env") or [],
        env_from=spec.get("envFrom") or [],
        service_account=service_account,
    )


def update_controlplane_deployment(existing, generated, dataplane_is_set):
    """Update hook for the controller Deployment.

    When a DataPlane is set again on a dormant Deployment the replica
    override is dropped and the env refreshed in the same update.
    """
    changed = False
    replicas = existing["spec"].get("replicas")

    if dataplane_is_set and replicas == consts.NUM_REPLICAS_WHEN_NO_DATAPLANE:
        if "replicas" in generated["spec"]:
            existing["spec"]["replicas"] = generated["spec"]["replicas"]
        else:
            existing["spec"].pop("replicas", None)
        container(existing)["env"] = list(container(generated).get("env") or [])
        logger.debug("DataPlane set on dormant ControlPlane deployment, scaling up")
        changed = True

    if update_deployment(existing, generated):
        changed = True
    return changed


def cluster_role_matches(existing, generated):
    return existing.get("rules") == generated.get("rules")


def update_cluster_role(existing, generated):
    if cluster_role_matches(existing, generated):
        return False
    existing["rules"] = generated.get("rules")
    return True


def update_cluster_role_binding(existing, generated):
    # roleRef is immutable; a binding to another role is replaced by the reconciler
    if existing.get("subjects") == generated.get("subjects"):
        return False
    existing["subjects"] = generated.get("subjects")
    return True
