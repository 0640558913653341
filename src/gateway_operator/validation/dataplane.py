"""Validation of DataPlane specs, shared by the reconciler and the admission webhook."""

import base64
import binascii
import logging

from pydantic import ValidationError

from gateway_operator.consts import ENV_KONG_DATABASE
from gateway_operator.errors import DataPlaneValidationError, NotFoundError
from gateway_operator.models import DataPlaneSpec

logger = logging.getLogger(__name__)

SUPPORTED_DATABASE_VALUES = ("", "off")


class DataPlaneValidator:
    """Checks a DataPlane before anything is deployed for it."""

    def __init__(self, client):
        self.client = client

    def validate(self, dataplane):
        """Raise DataPlaneValidationError if ``dataplane`` cannot be provisioned."""
        spec = dataplane.get("spec") or {}
        namespace = dataplane["metadata"].get("namespace")

        try:
            DataPlaneSpec.model_validate(spec)
        except ValidationError as e:
            raise DataPlaneValidationError(f"invalid DataPlane spec: {e}") from e

        self.validate_env_from_sources(spec, namespace)
        self.validate_database(spec, namespace)

    def validate_env_from_sources(self, spec, namespace):
        for source in spec.get("envFrom") or []:
            for kind, field in (("ConfigMap", "configMapRef"), ("Secret", "secretRef")):
                reference = source.get(field)
                if not reference:
                    continue
                if self._load_data(kind, reference, namespace) is None and not reference.get(
                    "optional"
                ):
                    raise DataPlaneValidationError(
                        f"{kind} {namespace}/{reference['name']} referenced in envFrom not found"
                    )

    def validate_database(self, spec, namespace):
        value = self.effective_env_value(spec, namespace, ENV_KONG_DATABASE)
        if value is None:
            value = ""
        if value not in SUPPORTED_DATABASE_VALUES:
            raise DataPlaneValidationError(
                f"database backend {value} of DataPlane not supported currently"
            )

    def effective_env_value(self, spec, namespace, name):
        """Resolve the value a container would see for ``name``.

        Entries of ``env`` win over ``envFrom``; among ``envFrom`` sources the
        last one defining the key wins.
        """
        for entry in spec.get("env") or []:
            if entry.get("name") != name:
                continue
            if "value" in entry:
                return entry["value"]
            return self._resolve_value_from(entry.get("valueFrom") or {}, namespace)

        value = None
        for source in spec.get("envFrom") or []:
            prefix = source.get("prefix") or ""
            for kind, field in (("ConfigMap", "configMapRef"), ("Secret", "secretRef")):
                reference = source.get(field)
                if not reference:
                    continue
                data = self._load_data(kind, reference, namespace) or {}
                for key, item in data.items():
                    if prefix + key == name:
                        value = self._decode(kind, reference["name"], key, item)
        return value

    def _resolve_value_from(self, value_from, namespace):
        for kind, field in (("ConfigMap", "configMapKeyRef"), ("Secret", "secretKeyRef")):
            selector = value_from.get(field)
            if not selector:
                continue
            data = self._load_data(kind, selector, namespace)
            if data is None or selector["key"] not in data:
                if selector.get("optional"):
                    return None
                raise DataPlaneValidationError(
                    f"{kind} key {namespace}/{selector['name']}:{selector['key']} "
                    f"referenced by {ENV_KONG_DATABASE} not found"
                )
            return self._decode(kind, selector["name"], selector["key"], data[selector["key"]])
        return None

    def _load_data(self, kind, reference, namespace):
        """Data of a ConfigMap or Secret, None when it does not exist.

        Secret values stay base64 encoded; only the keys that are resolved get decoded.
        """
        try:
            obj = self.client.get(kind, reference["name"], namespace)
        except NotFoundError:
            logger.debug(f"{kind} {namespace}/{reference['name']} not found")
            return None

        return obj.get("data") or {}

    def _decode(self, kind, name, key, value):
        if kind != "Secret":
            return value
        try:
            return base64.b64decode(value).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError) as e:
            raise DataPlaneValidationError(
                f"Secret key {name}:{key} is not valid UTF-8 text"
            ) from e
