"""One-time bootstrap of the cluster CA secret."""

import logging

from gateway_operator.errors import ConfigurationError, ConflictError, NotFoundError
from gateway_operator.services.certificates import encode, generate_ca
from gateway_operator.consts import TLS_CERT_FILENAME, TLS_KEY_FILENAME

logger = logging.getLogger(__name__)


def ensure_cluster_ca(client, name, namespace):
    """Create the self-signed cluster CA secret unless it already exists.

    Args:
        client: ClusterClient
        name: Secret name
        namespace: Secret namespace

    Returns:
        bool: True if the secret was created
    """
    if not name or not namespace:
        raise ConfigurationError(
            "Cluster CA secret name and namespace must both be provided"
        )

    try:
        client.get("Secret", name, namespace)
        logger.info(f"Cluster CA secret {namespace}/{name} already exists")
        return False
    except NotFoundError:
        pass

    logger.info(f"Generating cluster CA secret {namespace}/{name}")
    certificate_pem, key_pem = generate_ca()
    secret = {
        "apiVersion": "v1",
        "kind": "Secret",
        "type": "kubernetes.io/tls",
        "metadata": {"name": name, "namespace": namespace},
        "data": {
            TLS_CERT_FILENAME: encode(certificate_pem),
            TLS_KEY_FILENAME: encode(key_pem),
        },
    }
    try:
        client.create(secret)
    except ConflictError:
        logger.info(f"Cluster CA secret {namespace}/{name} was created concurrently")
        return False
    return True
