"""Exceptions raised by the gateway operator."""

from kubernetes.client.exceptions import ApiException


class OperatorError(Exception):
    """Base class for all operator errors."""


class ApiError(OperatorError):
    """Generic failure talking to the Kubernetes API."""

    def __init__(self, message, status=None, reason=None):
        super().__init__(message)
        self.status = status
        self.reason = reason


class NotFoundError(ApiError):
    """The requested object does not exist."""


class ConflictError(ApiError):
    """An update raced another writer (resourceVersion mismatch)."""


class UnknownKindError(OperatorError):
    """A kind that was never registered in the scheme."""


class UnsupportedGatewayError(OperatorError):
    """The Gateway is not handled by this operator."""


class InvalidParametersRefError(OperatorError):
    """A GatewayClass points at parameters this operator cannot use."""


class DataPlaneValidationError(OperatorError):
    """A DataPlane spec was rejected by the validator."""


class CardinalityError(OperatorError):
    """Found a number of objects other than the one expected."""


class ConfigurationError(OperatorError):
    """The operator configuration is invalid."""


def convert_api_exception(e: ApiException, action: str = "") -> ApiError:
    """Translate a kubernetes ApiException into an operator error."""
    message = f"{action}: {e.reason}" if action else str(e.reason)
    if e.status == 404:
        return NotFoundError(message, status=e.status, reason=e.reason)
    if e.status == 409:
        return ConflictError(message, status=e.status, reason=e.reason)
    return ApiError(message, status=e.status, reason=e.reason)


class DeadlineExceededError(OperatorError):
    """The reconcile pass ran past its deadline."""
