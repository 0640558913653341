"""Gateway reconciler: owns one DataPlane and one ControlPlane per Gateway."""

import logging

from gateway_operator.consts import (
    CONDITION_FALSE,
    CONDITION_TRUE,
    CONDITION_TYPE_PROVISIONED,
    CONDITION_TYPE_READY,
    CONDITION_TYPE_SCHEDULED,
    DATAPLANE_MANAGED_LABEL_VALUE,
    GATEWAY_MANAGED_LABEL_VALUE,
    OPERATOR_GROUP,
    REASON_PENDING,
    REASON_READY,
    REASON_SCHEDULED,
)
from gateway_operator.controllers.base import Reconciler, Result
from gateway_operator.errors import (
    CardinalityError,
    InvalidParametersRefError,
    NotFoundError,
    UnsupportedGatewayError,
)
from gateway_operator.resources.gateway import (
    controlplane_options,
    dataplane_options,
    generate_controlplane_for_gateway,
    generate_dataplane_for_gateway,
    update_child_spec,
)
from gateway_operator.services.owned_resources import ensure_owned_resource, list_owned
from gateway_operator.status.conditions import (
    has_condition,
    is_condition_true,
    new_condition,
    prune_conditions,
    set_condition,
)
from gateway_operator.utils.kubernetes import namespaced_name

logger = logging.getLogger(__name__)

GATEWAY_CONFIGURATION_KIND = "GatewayConfiguration"


def gateway_addresses(service):
    """Addresses of a DataPlane Service, load balancer ingress first."""
    addresses = []
    ingress = ((service.get("status") or {}).get("loadBalancer") or {}).get("ingress") or []
    for entry in ingress:
        if entry.get("ip"):
            addresses.append({"type": "IPAddress", "value": entry["ip"]})
        if entry.get("hostname"):
            addresses.append({"type": "Hostname", "value": entry["hostname"]})
    if addresses:
        return addresses

    cluster_ip = (service.get("spec") or {}).get("clusterIP")
    if cluster_ip and cluster_ip != "None":
        return [{"type": "IPAddress", "value": cluster_ip}]
    return []


class GatewayReconciler(Reconciler):
    """Provisions a DataPlane and a ControlPlane for every Gateway of our classes.

    The Gateway is Ready only while both children report Provisioned.
    """

    kind = "Gateway"

    def reconcile_object(self, gateway):
        name = namespaced_name(gateway)
        try:
            gateway_class = self.verify_gateway_class_support(gateway)
        except UnsupportedGatewayError as e:
            logger.debug(f"Ignoring Gateway {name}: {e}")
            return Result()

        if not has_condition(gateway, CONDITION_TYPE_SCHEDULED):
            logger.debug(f"Marking Gateway {name} as scheduled")
            set_condition(
                gateway,
                new_condition(
                    CONDITION_TYPE_SCHEDULED,
                    CONDITION_TRUE,
                    REASON_SCHEDULED,
                    f"this gateway has been picked up by the "
                    f"{self.config.controller_name} and will be processed",
                    gateway["metadata"].get("generation"),
                ),
            )
            prune_conditions(gateway, preserve=(CONDITION_TYPE_SCHEDULED,))
            self.client.update_status(gateway)
            return Result()

        logger.debug(f"Determining configuration for Gateway {name}")
        config_spec = self.get_gateway_configuration(gateway_class, gateway)

        logger.debug(f"Ensuring DataPlane for Gateway {name}")
        changed, dataplane = ensure_owned_resource(
            self.client,
            gateway,
            generate_dataplane_for_gateway(gateway, config_spec),
            GATEWAY_MANAGED_LABEL_VALUE,
            update=update_child_spec(dataplane_options(config_spec)),
        )
        if changed:
            return Result()

        if not is_condition_true(dataplane, CONDITION_TYPE_PROVISIONED):
            logger.debug(f"DataPlane for Gateway {name} not ready yet, waiting")
            return self.ensure_not_ready(gateway, "DataPlane is not provisioned yet")

        service = self.get_dataplane_service(dataplane)
        dataplane_name = dataplane["metadata"]["name"]
        service_name = service["metadata"]["name"]

        logger.debug(f"Ensuring ControlPlane for Gateway {name}")
        changed, controlplane = ensure_owned_resource(
            self.client,
            gateway,
            generate_controlplane_for_gateway(
                gateway_class,
                gateway,
                config_spec,
                dataplane_name,
                service_name,
                self.config.controller_name,
            ),
            GATEWAY_MANAGED_LABEL_VALUE,
            update=update_child_spec(
                controlplane_options(
                    config_spec,
                    gateway["metadata"]["namespace"],
                    dataplane_name,
                    service_name,
                    gateway_class["metadata"]["name"],
                )
            ),
        )
        if changed:
            return Result()

        if not is_condition_true(controlplane, CONDITION_TYPE_PROVISIONED):
            logger.debug(f"ControlPlane for Gateway {name} not ready yet, waiting")
            return self.ensure_not_ready(gateway, "ControlPlane is not provisioned yet")

        logger.debug(f"Marking Gateway {name} as ready")
        self.ensure_gateway_marked_ready(gateway, service)
        return Result()

    def verify_gateway_class_support(self, gateway):
        class_name = (gateway.get("spec") or {}).get("gatewayClassName")
        if not class_name:
            raise UnsupportedGatewayError("no GatewayClass set")
        try:
            gateway_class = self.client.get("GatewayClass", class_name)
        except NotFoundError:
            raise UnsupportedGatewayError(f"GatewayClass {class_name} not found")

        controller_name = (gateway_class.get("spec") or {}).get("controllerName")
        if controller_name != self.config.controller_name:
            raise UnsupportedGatewayError(
                f"GatewayClass {class_name} is managed by {controller_name}"
            )
        return gateway_class

    def get_gateway_configuration(self, gateway_class, gateway):
        """Spec of the GatewayConfiguration referenced by the class, or {}."""
        ref = (gateway_class.get("spec") or {}).get("parametersRef")
        if not ref:
            return {}

        error = None
        if ref.get("group") != OPERATOR_GROUP or ref.get("kind") != GATEWAY_CONFIGURATION_KIND:
            error = (
                f"controller only supports {OPERATOR_GROUP} "
                f"{GATEWAY_CONFIGURATION_KIND} resources for GatewayClass parametersRef"
            )
        elif not ref.get("namespace") or not ref.get("name"):
            error = "GatewayClass parametersRef must include namespace and name"
        if error:
            if self.recorder:
                self.recorder.warning(gateway, "InvalidParametersRef", error)
            raise InvalidParametersRefError(error)

        configuration = self.client.get(
            GATEWAY_CONFIGURATION_KIND, ref["name"], ref["namespace"]
        )
        return configuration.get("spec") or {}

    def get_dataplane_service(self, dataplane):
        services = list_owned(self.client, "Service", DATAPLANE_MANAGED_LABEL_VALUE, dataplane)
        if len(services) != 1:
            raise CardinalityError(
                f"found {len(services)} Services for DataPlane "
                f"{namespaced_name(dataplane)}, expected one"
            )
        return services[0]

    def ensure_not_ready(self, gateway, message):
        """Report the Gateway as not Ready until both children are provisioned."""
        changed = set_condition(
            gateway,
            new_condition(
                CONDITION_TYPE_READY,
                CONDITION_FALSE,
                REASON_PENDING,
                message,
                gateway["metadata"].get("generation"),
            ),
        )
        if (gateway.get("status") or {}).pop("addresses", None):
            changed = True
        if changed:
            self.client.update_status(gateway)
        return Result()

    def ensure_gateway_marked_ready(self, gateway, service):
        changed = prune_conditions(gateway, preserve=(CONDITION_TYPE_SCHEDULED,))
        if set_condition(
            gateway,
            new_condition(
                CONDITION_TYPE_READY,
                CONDITION_TRUE,
                REASON_READY,
                "",
                gateway["metadata"].get("generation"),
            ),
        ):
            changed = True

        addresses = gateway_addresses(service)
        if gateway["status"].get("addresses") != addresses:
            gateway["status"]["addresses"] = addresses
            changed = True

        if changed:
            self.client.update_status(gateway)
            logger.info(f"Gateway {namespaced_name(gateway)} is ready")
