"""DataPlane and ControlPlane objects generated for a Gateway."""

import copy

from gateway_operator.consts import OPERATOR_GROUP, OPERATOR_VERSION
from gateway_operator.resources.controlplane import (
    set_controlplane_defaults,
    set_controlplane_env_on_dataplane_change,
)


def explicit_options(options):
    """Keep only the options a GatewayConfiguration actually sets."""
    return {
        key: copy.deepcopy(value)
        for key, value in (options or {}).items()
        if value not in (None, [], {})
    }


def options_applied(spec, options):
    """Whether every explicitly configured option already holds on ``spec``."""
    return all(spec.get(key) == value for key, value in options.items())


def apply_options(spec, options):
    changed = False
    for key, value in options.items():
        if spec.get(key) != value:
            spec[key] = copy.deepcopy(value)
            changed = True
    return changed


def dataplane_options(config_spec):
    return explicit_options((config_spec or {}).get("dataPlaneOptions"))


def controlplane_options(config_spec, namespace, dataplane_name, dataplane_service, gateway_class):
    """Effective ControlPlane options for a Gateway.

    A configured env list is completed with the entries that address the
    DataPlane, so the ControlPlane reconciler has nothing left to patch.
    """
    options = explicit_options((config_spec or {}).get("controlPlaneOptions"))
    if "env" in options:
        set_controlplane_env_on_dataplane_change(options, namespace, dataplane_service)
    options["dataPlane"] = dataplane_name
    options["gatewayClass"] = gateway_class
    return options


def generate_dataplane_for_gateway(gateway, config_spec):
    return {
        "apiVersion": f"{OPERATOR_GROUP}/{OPERATOR_VERSION}",
        "kind": "DataPlane",
        "metadata": {
            "generateName": f"{gateway['metadata']['name']}-",
            "namespace": gateway["metadata"]["namespace"],
        },
        "spec": dataplane_options(config_spec),
    }


def generate_controlplane_for_gateway(
    gateway_class, gateway, config_spec, dataplane_name, dataplane_service, controller_name
):
    namespace = gateway["metadata"]["namespace"]
    spec = controlplane_options(
        config_spec,
        namespace,
        dataplane_name,
        dataplane_service,
        gateway_class["metadata"]["name"],
    )
    if not spec.get("env") and not spec.get("envFrom"):
        set_controlplane_defaults(spec, namespace, dataplane_service, controller_name)

    return {
        "apiVersion": f"{OPERATOR_GROUP}/{OPERATOR_VERSION}",
        "kind": "ControlPlane",
        "metadata": {
            "generateName": f"{gateway['metadata']['name']}-",
            "namespace": namespace,
        },
        "spec": spec,
    }


def update_child_spec(options):
    """Build an ensurer update hook applying ``options`` to the child spec."""

    def update(existing, generated):
        spec = existing.get("spec")
        if spec is None:
            spec = existing["spec"] = {}
        if options_applied(spec, options):
            return False
        return apply_options(spec, options)

    return update
