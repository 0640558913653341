"""Map watch events on any kind to the top-level keys that need a new pass."""

import asyncio
import logging

import kopf

from gateway_operator.consts import OPERATOR_MANAGED_BY_LABEL
from gateway_operator.controllers.base import Request
from gateway_operator.utils.kubernetes import owner_uids

logger = logging.getLogger(__name__)


def request_for(obj):
    metadata = obj["metadata"]
    return Request(metadata.get("namespace"), metadata["name"])


def owner_requests(obj, owner_kind):
    """Keys of the controlling owners of kind ``owner_kind`` in the object's namespace."""
    namespace = obj["metadata"].get("namespace")
    return [
        Request(namespace, ref["name"])
        for ref in obj["metadata"].get("ownerReferences") or []
        if ref.get("kind") == owner_kind and ref.get("controller")
    ]


def controlplanes_for_cluster_scoped(client, obj):
    """ControlPlanes owning a cluster-scoped object.

    The ownerReference carries no namespace, so owners are found by UID.
    """
    uids = set(owner_uids(obj, "ControlPlane"))
    if not uids:
        return []
    return [
        request_for(controlplane)
        for controlplane in client.list("ControlPlane")
        if controlplane["metadata"].get("uid") in uids
    ]


def controlplanes_for_dataplane(client, dataplane):
    """ControlPlanes in the DataPlane's namespace that reference it by name."""
    name = dataplane["metadata"]["name"]
    return [
        request_for(controlplane)
        for controlplane in client.list(
            "ControlPlane", namespace=dataplane["metadata"]["namespace"]
        )
        if (controlplane.get("spec") or {}).get("dataPlane") == name
    ]


def gateways_for_gateway_class(client, gateway_class, controller_name):
    if (gateway_class.get("spec") or {}).get("controllerName") != controller_name:
        return []
    class_name = gateway_class["metadata"]["name"]
    return [
        request_for(gateway)
        for gateway in client.list("Gateway")
        if (gateway.get("spec") or {}).get("gatewayClassName") == class_name
    ]


def gateways_for_gateway_configuration(client, configuration, controller_name):
    """Gateways whose class takes its parameters from ``configuration``."""
    metadata = configuration["metadata"]
    requests = []
    for gateway_class in client.list("GatewayClass"):
        spec = gateway_class.get("spec") or {}
        ref = spec.get("parametersRef") or {}
        if (
            ref.get("kind") == configuration.get("kind")
            and ref.get("name") == metadata["name"]
            and ref.get("namespace") == metadata.get("namespace")
        ):
            requests.extend(
                gateways_for_gateway_class(client, gateway_class, controller_name)
            )
    return requests


def enqueue_all(controller, requests):
    for request in requests:
        controller.enqueue(request.namespace, request.name)


def watch_primary(controller, kind):
    """Enqueue every object of the controller's own kind on any event."""

    @kopf.on.event(kind.group, kind.version, kind.plural, id=f"{controller.name}-watch")
    async def primary_event(body, **kwargs):
        enqueue_all(controller, [request_for(body)])


def watch_owned(controller, kind, managed_by, owner_kind):
    """Enqueue the namespaced owner of a labelled child on any event."""

    @kopf.on.event(
        kind.group,
        kind.version,
        kind.plural,
        labels={OPERATOR_MANAGED_BY_LABEL: managed_by},
        id=f"{controller.name}-owned-{kind.plural}",
    )
    async def owned_event(body, **kwargs):
        enqueue_all(controller, owner_requests(body, owner_kind))


def watch_mapped(controller, kind, mapper, handler_id, labels=None):
    """Enqueue the keys returned by ``mapper(obj)``, run off the event loop.

    Mappers list objects through the cluster client, which blocks.
    """
    options = {"id": handler_id}
    if labels:
        options["labels"] = labels

    @kopf.on.event(kind.group, kind.version, kind.plural, **options)
    async def mapped_event(body, **kwargs):
        requests = await asyncio.to_thread(mapper, dict(body))
        if requests:
            logger.debug(f"{handler_id}: enqueueing {[str(r) for r in requests]}")
        enqueue_all(controller, requests)
