"""DataPlane reconciler: Service, TLS secret and Deployment of the proxy."""

import logging

from gateway_operator.consts import (
    CONDITION_FALSE,
    CONDITION_TRUE,
    CONDITION_TYPE_PROVISIONED,
    DATAPLANE_MANAGED_LABEL_VALUE,
    REASON_PODS_NOT_READY,
    REASON_PODS_READY,
    REASON_VALIDATION_FAILED,
)
from gateway_operator.controllers.base import Reconciler, Result
from gateway_operator.errors import DataPlaneValidationError
from gateway_operator.resources.dataplane import (
    certificate_dns_name,
    generate_dataplane_certificate_secret,
    generate_dataplane_deployment,
    generate_dataplane_service,
    set_dataplane_defaults,
)
from gateway_operator.resources.deployment import deployment_ready, update_deployment
from gateway_operator.services.certificates import (
    certificate_matches,
    load_certificate_authority,
)
from gateway_operator.services.owned_resources import ensure_owned_resource
from gateway_operator.status.conditions import (
    get_condition,
    has_condition,
    is_condition_true,
    new_condition,
    set_condition,
)
from gateway_operator.utils.kubernetes import namespaced_name
from gateway_operator.validation.dataplane import DataPlaneValidator

logger = logging.getLogger(__name__)


def certificate_secret_updater(dns_name, ca):
    """Update hook replacing the secret data unless it still holds a valid certificate."""

    def update(existing, generated):
        if certificate_matches(existing, dns_name, ca):
            return False
        existing["data"] = generated["data"]
        existing["type"] = generated.get("type", existing.get("type"))
        return True

    return update


class DataPlaneReconciler(Reconciler):
    """Converges a DataPlane into its Service, TLS secret and Deployment."""

    kind = "DataPlane"

    def __init__(self, client, config, recorder=None, validator=None):
        super().__init__(client, config, recorder)
        self.validator = validator or DataPlaneValidator(client)

    def reconcile_object(self, dataplane):
        name = namespaced_name(dataplane)
        generation = dataplane["metadata"].get("generation")

        logger.debug(f"Validating DataPlane {name} resource conditions")
        if not has_condition(dataplane, CONDITION_TYPE_PROVISIONED):
            set_condition(
                dataplane,
                new_condition(
                    CONDITION_TYPE_PROVISIONED,
                    CONDITION_FALSE,
                    REASON_PODS_NOT_READY,
                    "DataPlane resource is scheduled for provisioning",
                    generation,
                ),
            )
            self.client.update_status(dataplane)
            return Result()

        logger.debug(f"Exposing DataPlane {name} deployment via service")
        changed, service = ensure_owned_resource(
            self.client,
            dataplane,
            generate_dataplane_service(dataplane),
            DATAPLANE_MANAGED_LABEL_VALUE,
        )
        service_name = service["metadata"]["name"]
        if changed or (dataplane.get("status") or {}).get("service") != service_name:
            self.ensure_service_status(dataplane, service_name)
            return Result()

        logger.debug(f"Checking readiness of DataPlane {name} service")
        if not (service.get("spec") or {}).get("clusterIP"):
            logger.debug(f"Service {service_name} has no ClusterIP yet, waiting")
            return Result()

        spec = dataplane.get("spec")
        if spec is None:
            spec = dataplane["spec"] = {}
        if not spec.get("env") and not spec.get("envFrom"):
            logger.debug(f"No env config found for DataPlane {name}, setting defaults")
            set_dataplane_defaults(spec)
            self.client.update(dataplane)
            return Result()

        logger.debug(f"Validating DataPlane {name} configuration")
        try:
            self.validator.validate(dataplane)
        except DataPlaneValidationError as e:
            logger.info(f"Failed to validate DataPlane {name}: {e}")
            return self.ensure_not_provisioned(dataplane, REASON_VALIDATION_FAILED, str(e))

        condition = get_condition(dataplane, CONDITION_TYPE_PROVISIONED)
        if condition.get("reason") == REASON_VALIDATION_FAILED:
            logger.info(f"DataPlane {name} passed validation, resuming provisioning")
            return self.ensure_not_provisioned(
                dataplane,
                REASON_PODS_NOT_READY,
                "DataPlane resource is scheduled for provisioning",
            )

        logger.debug(f"Ensuring mTLS certificate for DataPlane {name}")
        changed, secret = self.ensure_certificate(dataplane, service_name)
        if changed:
            return Result()

        logger.debug(f"Looking for existing deployments for DataPlane {name}")
        changed, deployment = ensure_owned_resource(
            self.client,
            dataplane,
            generate_dataplane_deployment(dataplane, secret["metadata"]["name"]),
            DATAPLANE_MANAGED_LABEL_VALUE,
            update=update_deployment,
        )
        if changed:
            return Result()

        logger.debug(f"Checking readiness of DataPlane {name} deployment")
        if not deployment_ready(deployment):
            logger.debug(f"Deployment for DataPlane {name} not yet ready, waiting")
            if condition.get("status") == CONDITION_TRUE:
                return self.ensure_not_provisioned(
                    dataplane, REASON_PODS_NOT_READY, "pods for the Deployment are not ready"
                )
            return Result()

        if not is_condition_true(dataplane, CONDITION_TYPE_PROVISIONED):
            set_condition(
                dataplane,
                new_condition(
                    CONDITION_TYPE_PROVISIONED,
                    CONDITION_TRUE,
                    REASON_PODS_READY,
                    "pods for all Deployments are ready",
                    generation,
                ),
            )
            self.client.update_status(dataplane)
            if self.recorder:
                self.recorder.normal(dataplane, REASON_PODS_READY, "DataPlane is provisioned")

        logger.debug(f"Reconciliation complete for DataPlane {name}")
        return Result()

    def ensure_service_status(self, dataplane, service_name):
        status = dataplane.get("status")
        if status is None:
            status = dataplane["status"] = {}
        if status.get("service") != service_name:
            status["service"] = service_name
            self.client.update_status(dataplane)

    def ensure_not_provisioned(self, dataplane, reason, message):
        changed = set_condition(
            dataplane,
            new_condition(
                CONDITION_TYPE_PROVISIONED,
                CONDITION_FALSE,
                reason,
                message,
                dataplane["metadata"].get("generation"),
            ),
        )
        if changed:
            self.client.update_status(dataplane)
            if reason == REASON_VALIDATION_FAILED and self.recorder:
                self.recorder.warning(dataplane, reason, message)
        return Result()

    def ensure_certificate(self, dataplane, service_name):
        """Ensure the TLS secret for the DataPlane service, issued by the cluster CA."""
        ca = load_certificate_authority(
            self.client.get(
                "Secret",
                self.config.cluster_ca_secret_name,
                self.config.cluster_ca_secret_namespace,
            )
        )
        dns_name = certificate_dns_name(service_name, dataplane["metadata"]["namespace"])

        return ensure_owned_resource(
            self.client,
            dataplane,
            generate_dataplane_certificate_secret(dataplane, service_name, ca),
            DATAPLANE_MANAGED_LABEL_VALUE,
            update=certificate_secret_updater(dns_name, ca),
        )
