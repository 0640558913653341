"""Watches feeding the Gateway controller."""

from gateway_operator.consts import GATEWAY_MANAGED_LABEL_VALUE
from gateway_operator.handlers.watch import (
    gateways_for_gateway_class,
    gateways_for_gateway_configuration,
    watch_mapped,
    watch_owned,
    watch_primary,
)

OWNED_KINDS = ("DataPlane", "ControlPlane")


def register(controller, scheme, client, controller_name):
    watch_primary(controller, scheme.kind_for("Gateway"))

    for kind in OWNED_KINDS:
        watch_owned(controller, scheme.kind_for(kind), GATEWAY_MANAGED_LABEL_VALUE, "Gateway")

    watch_mapped(
        controller,
        scheme.kind_for("GatewayClass"),
        lambda obj: gateways_for_gateway_class(client, obj, controller_name),
        f"{controller.name}-gatewayclasses",
    )
    watch_mapped(
        controller,
        scheme.kind_for("GatewayConfiguration"),
        lambda obj: gateways_for_gateway_configuration(client, obj, controller_name),
        f"{controller.name}-gatewayconfigurations",
    )
