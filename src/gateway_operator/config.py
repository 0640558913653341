"""Operator configuration read from the environment."""

import logging
import os
import random
from typing import Optional

from pydantic import BaseModel, Field, ValidationError

from gateway_operator.consts import DEFAULT_CONTROLLER_NAME
from gateway_operator.errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_WEBHOOK_CERT_DIR = "/tmp/k8s-webhook-server/serving-certs"


class OperatorConfig(BaseModel):
    """Process-wide settings, built once at startup and treated as read-only."""

    controller_name: str = DEFAULT_CONTROLLER_NAME
    leader_election: bool = True
    peering_name: str = "gateway-operator"
    peering_priority: int = Field(default_factory=lambda: random.randint(0, 32767))
    worker_limit: int = Field(default=5, ge=1)
    reconcile_timeout: float = Field(default=30.0, gt=0)
    request_timeout: float = Field(default=10.0, gt=0)
    requeue_without_backoff: float = Field(default=0.2, ge=0)
    max_conflict_requeues: int = Field(default=10, ge=0)
    cluster_ca_secret_name: str = "gateway-operator-ca"
    cluster_ca_secret_namespace: str = ""
    webhook_cert_dir: str = DEFAULT_WEBHOOK_CERT_DIR
    webhook_port: int = 9443
    liveness_endpoint: Optional[str] = "http://0.0.0.0:8081/healthz"
    gateway_controller_enabled: bool = True
    controlplane_controller_enabled: bool = True
    dataplane_controller_enabled: bool = True
    posting_enabled: bool = False
    server_timeout: int = 60

    class Config:
        frozen = True

    @classmethod
    def from_env(cls, environ=None):
        """Build the configuration from environment variables.

        Args:
            environ: Mapping to read from (defaults to os.environ)
        """
        env = os.environ if environ is None else environ

        def get(key):
            value = env.get(key, "")
            return value if value else None

        values = {
            "controller_name": get("CONTROLLER_NAME"),
            "leader_election": get_bool(env, "LEADER_ELECTION"),
            "peering_name": get("PEERING_NAME"),
            "peering_priority": get("PEERING_PRIORITY"),
            "worker_limit": get("WORKER_LIMIT"),
            "reconcile_timeout": get("RECONCILE_TIMEOUT"),
            "request_timeout": get("REQUEST_TIMEOUT"),
            "requeue_without_backoff": get("REQUEUE_WITHOUT_BACKOFF"),
            "max_conflict_requeues": get("MAX_CONFLICT_REQUEUES"),
            "cluster_ca_secret_name": get("CLUSTER_CA_SECRET"),
            # Fall back to the namespace the operator pod runs in
            "cluster_ca_secret_namespace": get("CLUSTER_CA_SECRET_NAMESPACE")
            or get("POD_NAMESPACE"),
            "webhook_cert_dir": get("WEBHOOK_CERT_DIR"),
            "webhook_port": get("WEBHOOK_PORT"),
            "liveness_endpoint": get("LIVENESS_ENDPOINT"),
            "gateway_controller_enabled": get_bool(env, "GATEWAY_CONTROLLER_ENABLED"),
            "controlplane_controller_enabled": get_bool(
                env, "CONTROLPLANE_CONTROLLER_ENABLED"
            ),
            "dataplane_controller_enabled": get_bool(env, "DATAPLANE_CONTROLLER_ENABLED"),
            "posting_enabled": get_bool(env, "POSTING_ENABLED"),
            "server_timeout": get("SERVER_TIMEOUT"),
        }
        values = {key: value for key, value in values.items() if value is not None}

        try:
            config = cls(**values)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid operator configuration: {e}") from e

        if not config.cluster_ca_secret_namespace:
            raise ConfigurationError(
                "CLUSTER_CA_SECRET_NAMESPACE unset and POD_NAMESPACE env is empty. "
                "Please provide namespace for cluster CA secret"
            )

        if config.controller_name != DEFAULT_CONTROLLER_NAME:
            logger.info(f"Custom controller name provided: {config.controller_name}")

        return config


def get_bool(env, key):
    """Parse a boolean env var, returning None when unset."""
    value = env.get(key, "")
    if not value:
        return None
    return value.lower() in ("true", "1", "yes")
