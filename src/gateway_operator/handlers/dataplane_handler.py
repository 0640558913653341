"""Watches and admission checks feeding the DataPlane controller."""

import logging

import kopf

from gateway_operator.consts import DATAPLANE_MANAGED_LABEL_VALUE
from gateway_operator.errors import DataPlaneValidationError
from gateway_operator.handlers.watch import watch_owned, watch_primary

logger = logging.getLogger(__name__)

OWNED_KINDS = ("Service", "Deployment", "Secret")


def register(controller, scheme, validator=None):
    """Register the DataPlane watches; the admission check only with a validator."""
    watch_primary(controller, scheme.kind_for("DataPlane"))
    for kind in OWNED_KINDS:
        watch_owned(
            controller, scheme.kind_for(kind), DATAPLANE_MANAGED_LABEL_VALUE, "DataPlane"
        )

    if validator is None:
        return

    dataplane_kind = scheme.kind_for("DataPlane")

    @kopf.on.validate(
        dataplane_kind.group,
        dataplane_kind.version,
        dataplane_kind.plural,
        id="validate-dataplane",
    )
    def validate_dataplane(body, namespace, **kwargs):
        if kwargs.get("operation") == "DELETE":
            return
        dataplane = dict(body)
        dataplane["metadata"] = dict(body.get("metadata") or {})
        dataplane["metadata"].setdefault("namespace", namespace)
        try:
            validator.validate(dataplane)
        except DataPlaneValidationError as e:
            logger.info(f"Rejected DataPlane {namespace}/{body['metadata'].get('name')}: {e}")
            raise kopf.AdmissionError(str(e))
