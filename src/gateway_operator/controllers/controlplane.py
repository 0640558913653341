"""ControlPlane reconciler: RBAC and the controller Deployment."""

import logging

from gateway_operator.consts import (
    CONDITION_FALSE,
    CONDITION_TRUE,
    CONDITION_TYPE_PROVISIONED,
    CONTROLPLANE_MANAGED_LABEL_VALUE,
    DATAPLANE_MANAGED_LABEL_VALUE,
    REASON_NO_DATAPLANE,
    REASON_PODS_NOT_READY,
    REASON_PODS_READY,
)
from gateway_operator.controllers.base import Reconciler, Result
from gateway_operator.errors import CardinalityError, NotFoundError
from gateway_operator.resources.controlplane import (
    controlplane_image,
    generate_controlplane_cluster_role,
    generate_controlplane_cluster_role_binding,
    generate_controlplane_deployment,
    generate_controlplane_service_account,
    set_controlplane_defaults,
    set_controlplane_env_on_dataplane_change,
    update_cluster_role,
    update_cluster_role_binding,
    update_controlplane_deployment,
)
from gateway_operator.resources.deployment import deployment_ready
from gateway_operator.services.owned_resources import ensure_owned_resource, list_owned
from gateway_operator.status.conditions import (
    get_condition,
    has_condition,
    is_condition_true,
    new_condition,
    set_condition,
)
from gateway_operator.utils.kubernetes import namespaced_name

logger = logging.getLogger(__name__)


def dataplane_is_set(controlplane):
    return bool((controlplane.get("spec") or {}).get("dataPlane"))


class ControlPlaneReconciler(Reconciler):
    """Converges a ControlPlane into its ServiceAccount, RBAC and Deployment.

    Without a DataPlane the Deployment is kept at zero replicas.
    """

    kind = "ControlPlane"

    def reconcile_object(self, controlplane):
        name = namespaced_name(controlplane)

        logger.debug(f"Validating ControlPlane {name} resource conditions")
        if not has_condition(controlplane, CONDITION_TYPE_PROVISIONED):
            self.set_provisioned(
                controlplane,
                CONDITION_FALSE,
                REASON_PODS_NOT_READY,
                "ControlPlane resource is scheduled for provisioning",
            )
            self.client.update_status(controlplane)
            return Result()

        if self.ensure_dataplane_status(controlplane):
            logger.debug(f"Updated DataPlane status of ControlPlane {name}")
            return Result()

        is_set = dataplane_is_set(controlplane)
        namespace = controlplane["metadata"]["namespace"]
        dataplane_service = self.get_dataplane_service_name(controlplane)

        spec = controlplane.get("spec")
        if spec is None:
            spec = controlplane["spec"] = {}
        if not spec.get("env") and not spec.get("envFrom"):
            logger.debug(f"No env config found for ControlPlane {name}, setting defaults")
            set_controlplane_defaults(
                spec, namespace, dataplane_service, self.config.controller_name
            )
            self.client.update(controlplane)
            return Result()

        if self.ensure_dataplane_configuration(controlplane, dataplane_service):
            logger.debug(f"DataPlane configuration of ControlPlane {name} updated")
            return Result()

        logger.debug(f"Ensuring ServiceAccount for ControlPlane {name}")
        changed, service_account = ensure_owned_resource(
            self.client,
            controlplane,
            generate_controlplane_service_account(controlplane),
            CONTROLPLANE_MANAGED_LABEL_VALUE,
        )
        if changed:
            return Result()

        logger.debug(f"Ensuring ClusterRole for ControlPlane {name}")
        changed, cluster_role = ensure_owned_resource(
            self.client,
            controlplane,
            generate_controlplane_cluster_role(
                controlplane["metadata"]["name"], controlplane_image(spec)
            ),
            CONTROLPLANE_MANAGED_LABEL_VALUE,
            update=update_cluster_role,
        )
        if changed:
            return Result()

        logger.debug(f"Ensuring ClusterRoleBinding for ControlPlane {name}")
        if self.delete_stale_bindings(controlplane, cluster_role["metadata"]["name"]):
            return Result()
        changed, _ = ensure_owned_resource(
            self.client,
            controlplane,
            generate_controlplane_cluster_role_binding(
                controlplane,
                service_account["metadata"]["name"],
                cluster_role["metadata"]["name"],
            ),
            CONTROLPLANE_MANAGED_LABEL_VALUE,
            update=update_cluster_role_binding,
        )
        if changed:
            return Result()

        logger.debug(f"Looking for existing deployments for ControlPlane {name}")
        changed, deployment = ensure_owned_resource(
            self.client,
            controlplane,
            generate_controlplane_deployment(
                controlplane, service_account["metadata"]["name"], is_set
            ),
            CONTROLPLANE_MANAGED_LABEL_VALUE,
            update=lambda existing, generated: update_controlplane_deployment(
                existing, generated, is_set
            ),
        )
        if changed:
            return Result()

        if not is_set:
            logger.debug(f"ControlPlane {name} has no DataPlane, deployment is dormant")
            return Result()

        logger.debug(f"Checking readiness of ControlPlane {name} deployment")
        condition = get_condition(controlplane, CONDITION_TYPE_PROVISIONED)
        if not deployment_ready(deployment):
            logger.debug(f"Deployment for ControlPlane {name} not yet ready, waiting")
            if condition.get("status") == CONDITION_TRUE:
                if self.set_provisioned(
                    controlplane,
                    CONDITION_FALSE,
                    REASON_PODS_NOT_READY,
                    "pods for the Deployment are not ready",
                ):
                    self.client.update_status(controlplane)
            return Result()

        if not is_condition_true(controlplane, CONDITION_TYPE_PROVISIONED):
            self.set_provisioned(
                controlplane,
                CONDITION_TRUE,
                REASON_PODS_READY,
                "pods for all Deployments are ready",
            )
            self.client.update_status(controlplane)
            if self.recorder:
                self.recorder.normal(
                    controlplane, REASON_PODS_READY, "ControlPlane is provisioned"
                )

        logger.debug(f"Reconciliation complete for ControlPlane {name}")
        return Result()

    def set_provisioned(self, controlplane, status, reason, message):
        return set_condition(
            controlplane,
            new_condition(
                CONDITION_TYPE_PROVISIONED,
                status,
                reason,
                message,
                controlplane["metadata"].get("generation"),
            ),
        )

    def ensure_dataplane_status(self, controlplane):
        """Flip the Provisioned reason between NoDataplane and PodsNotReady.

        Returns:
            bool: True if the status was written
        """
        condition = get_condition(controlplane, CONDITION_TYPE_PROVISIONED)
        no_dataplane = condition.get("reason") == REASON_NO_DATAPLANE

        if not dataplane_is_set(controlplane) and not no_dataplane:
            changed = self.set_provisioned(
                controlplane, CONDITION_FALSE, REASON_NO_DATAPLANE, "DataPlane is not set"
            )
        elif dataplane_is_set(controlplane) and no_dataplane:
            changed = self.set_provisioned(
                controlplane,
                CONDITION_FALSE,
                REASON_PODS_NOT_READY,
                "DataPlane was set, ControlPlane resource is scheduled for provisioning",
            )
        else:
            return False

        if changed:
            self.client.update_status(controlplane)
        return changed

    def get_dataplane_service_name(self, controlplane):
        """Name of the Service owned by the ControlPlane's DataPlane.

        An empty string means there is nothing to point at yet.
        """
        if not dataplane_is_set(controlplane):
            return ""

        dataplane_name = controlplane["spec"]["dataPlane"]
        try:
            dataplane = self.client.get(
                "DataPlane", dataplane_name, controlplane["metadata"]["namespace"]
            )
        except NotFoundError:
            logger.debug(f"DataPlane {dataplane_name} not found, waiting for it")
            return ""

        services = list_owned(self.client, "Service", DATAPLANE_MANAGED_LABEL_VALUE, dataplane)
        if not services:
            return ""
        if len(services) > 1:
            raise CardinalityError(
                f"found {len(services)} Services owned by DataPlane "
                f"{namespaced_name(dataplane)}, expected one"
            )
        return services[0]["metadata"]["name"]

    def ensure_dataplane_configuration(self, controlplane, dataplane_service):
        """Patch the env entries addressing the DataPlane when its service changed.

        Returns:
            bool: True if the spec was written
        """
        changed = set_controlplane_env_on_dataplane_change(
            controlplane["spec"], controlplane["metadata"]["namespace"], dataplane_service
        )
        if changed:
            self.client.update(controlplane)
        return changed

    def delete_stale_bindings(self, controlplane, cluster_role_name):
        """Delete owned bindings pointing at another ClusterRole.

        roleRef cannot be changed in place, so such a binding is recreated.
        """
        deleted = False
        bindings = list_owned(
            self.client, "ClusterRoleBinding", CONTROLPLANE_MANAGED_LABEL_VALUE, controlplane
        )
        for binding in bindings:
            if (binding.get("roleRef") or {}).get("name") != cluster_role_name:
                logger.info(
                    f"ClusterRoleBinding {binding['metadata']['name']} refers to another "
                    f"ClusterRole, deleting it"
                )
                self.client.delete(binding)
                deleted = True
        return deleted

    def cleanup(self, controlplane):
        """Delete the cluster-scoped children, which garbage collection cannot reach."""
        for kind in ("ClusterRoleBinding", "ClusterRole"):
            for obj in list_owned(
                self.client, kind, CONTROLPLANE_MANAGED_LABEL_VALUE, controlplane
            ):
                logger.info(
                    f"Deleting {kind} {obj['metadata']['name']} of ControlPlane "
                    f"{namespaced_name(controlplane)}"
                )
                self.client.delete(obj)
