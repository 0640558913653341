"""Watches feeding the ControlPlane controller."""

import logging

import kopf

from gateway_operator.consts import CONTROLPLANE_MANAGED_LABEL_VALUE, OPERATOR_MANAGED_BY_LABEL
from gateway_operator.handlers.watch import (
    controlplanes_for_cluster_scoped,
    controlplanes_for_dataplane,
    watch_mapped,
    watch_owned,
    watch_primary,
)

logger = logging.getLogger(__name__)

NAMESPACED_OWNED_KINDS = ("Deployment", "ServiceAccount")
CLUSTER_OWNED_KINDS = ("ClusterRole", "ClusterRoleBinding")


def register(controller, scheme, client):
    controlplane_kind = scheme.kind_for("ControlPlane")
    watch_primary(controller, controlplane_kind)

    for kind in NAMESPACED_OWNED_KINDS:
        watch_owned(
            controller, scheme.kind_for(kind), CONTROLPLANE_MANAGED_LABEL_VALUE, "ControlPlane"
        )
    for kind in CLUSTER_OWNED_KINDS:
        watch_mapped(
            controller,
            scheme.kind_for(kind),
            lambda obj: controlplanes_for_cluster_scoped(client, obj),
            f"{controller.name}-owned-{scheme.kind_for(kind).plural}",
            labels={OPERATOR_MANAGED_BY_LABEL: CONTROLPLANE_MANAGED_LABEL_VALUE},
        )

    watch_mapped(
        controller,
        scheme.kind_for("DataPlane"),
        lambda obj: controlplanes_for_dataplane(client, obj),
        f"{controller.name}-dataplanes",
    )

    @kopf.on.delete(
        controlplane_kind.group,
        controlplane_kind.version,
        controlplane_kind.plural,
        id="controlplane-cleanup",
    )
    def cleanup_controlplane(body, **kwargs):
        controller.reconciler.cleanup(dict(body))
