"""Admission webhook server setup."""

import logging
import os

import kopf

from gateway_operator.consts import CA_CERT_FILENAME, TLS_CERT_FILENAME, TLS_KEY_FILENAME

logger = logging.getLogger(__name__)


def webhook_certs_present(cert_dir):
    """Whether the CA, certificate and key files all exist in ``cert_dir``."""
    missing = [
        filename
        for filename in (CA_CERT_FILENAME, TLS_CERT_FILENAME, TLS_KEY_FILENAME)
        if not os.path.isfile(os.path.join(cert_dir, filename))
    ]
    if missing:
        logger.warning(
            f"Webhook certificate files {missing} not found in {cert_dir}, "
            f"admission webhook disabled"
        )
        return False
    return True


def configure_webhook_server(settings, config):
    """Point kopf's admission server at the mounted certificates.

    Returns:
        bool: True if the admission server was configured
    """
    if not webhook_certs_present(config.webhook_cert_dir):
        return False

    settings.admission.server = kopf.WebhookServer(
        addr="0.0.0.0",
        port=config.webhook_port,
        certfile=os.path.join(config.webhook_cert_dir, TLS_CERT_FILENAME),
        pkeyfile=os.path.join(config.webhook_cert_dir, TLS_KEY_FILENAME),
        cafile=os.path.join(config.webhook_cert_dir, CA_CERT_FILENAME),
    )
    logger.info(f"Admission webhook server listening on port {config.webhook_port}")
    return True
