"""Comparison and update helpers for generated Deployments and env lists."""

import copy

from gateway_operator.consts import CLUSTER_CERTIFICATE_VOLUME


def container(deployment):
    return deployment["spec"]["template"]["spec"]["containers"][0]


def certificate_secret_name(deployment):
    for volume in deployment["spec"]["template"]["spec"].get("volumes") or []:
        if volume.get("name") == CLUSTER_CERTIFICATE_VOLUME:
            return (volume.get("secret") or {}).get("secretName")
    return None


def deployment_options_match(existing, generated):
    """Compare the fields of a Deployment that come from deployment options.

    Replicas are only compared when the generated object sets them, so that
    an unset count leaves the cluster default (or an autoscaler) alone.
    """
    current, desired = container(existing), container(generated)
    if current.get("image") != desired.get("image"):
        return False
    if (current.get("env") or []) != (desired.get("env") or []):
        return False
    if (current.get("envFrom") or []) != (desired.get("envFrom") or []):
        return False
    if "replicas" in generated["spec"]:
        if existing["spec"].get("replicas") != generated["spec"]["replicas"]:
            return False
    return certificate_secret_name(existing) == certificate_secret_name(generated)


def update_deployment(existing, generated):
    """Copy option fields of ``generated`` onto ``existing``.

    Returns:
        bool: True if ``existing`` was modified
    """
    if deployment_options_match(existing, generated):
        return False

    current, desired = container(existing), container(generated)
    current["image"] = desired.get("image")
    current["env"] = copy.deepcopy(desired.get("env") or [])
    current["envFrom"] = copy.deepcopy(desired.get("envFrom") or [])
    if "replicas" in generated["spec"]:
        existing["spec"]["replicas"] = generated["spec"]["replicas"]
    if certificate_secret_name(existing) != certificate_secret_name(generated):
        existing["spec"]["template"]["spec"]["volumes"] = copy.deepcopy(
            generated["spec"]["template"]["spec"].get("volumes") or []
        )
    return True


def get_env_value(env, name):
    for entry in env:
        if entry.get("name") == name:
            return entry.get("value")
    return None


def set_env_value(env, name, value):
    """Set a plain value env entry in place.

    Returns:
        bool: True if the list changed
    """
    for entry in env:
        if entry.get("name") == name:
            if entry.get("value") == value and "valueFrom" not in entry:
                return False
            entry.pop("valueFrom", None)
            entry["value"] = value
            return True
    env.append({"name": name, "value": value})
    return True


def add_missing_env(env, defaults):
    """Append every default entry whose name is not set yet."""
    names = {entry.get("name") for entry in env}
    changed = False
    for entry in defaults:
        if entry["name"] not in names:
            env.append(copy.deepcopy(entry))
            changed = True
    return changed


def deployment_ready(deployment):
    """Whether every desired pod of ``deployment`` is available.

    A Deployment whose controller has not observed the latest generation yet,
    or that wants zero pods, is not ready.
    """
    status = deployment.get("status") or {}
    generation = deployment.get("metadata", {}).get("generation")
    observed = status.get("observedGeneration")
    if generation is not None and observed is not None and observed < generation:
        return False

    desired = deployment.get("spec", {}).get("replicas")
    if desired is None:
        desired = status.get("replicas") or 0
    available = status.get("availableReplicas") or 0
    return desired > 0 and (status.get("replicas") or 0) > 0 and available >= desired
