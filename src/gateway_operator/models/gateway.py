"""Gateway API models (gateway.networking.k8s.io)."""

from pydantic import Field
from typing import List, Optional

from gateway_operator.consts import GATEWAY_API_GROUP, GATEWAY_API_VERSION
from gateway_operator.crd.registry import register_kind
from gateway_operator.crd.base import ExternalSpec


class ParametersReference(ExternalSpec):
    """Reference from a GatewayClass to its implementation-specific parameters."""

    group: str = Field(..., description="API group of the referent")
    kind: str = Field(..., description="Kind of the referent")
    name: str = Field(..., description="Name of the referent")
    namespace: Optional[str] = Field(default=None, description="Namespace of the referent")


@register_kind(
    GATEWAY_API_GROUP, GATEWAY_API_VERSION, "GatewayClass", "gatewayclasses",
    scope="Cluster",
)
class GatewayClassSpec(ExternalSpec):
    """GatewayClass specification."""

    controllerName: str = Field(
        ..., description="Controller implementation handling Gateways of this class"
    )
    parametersRef: Optional[ParametersReference] = Field(default=None)
    description: Optional[str] = Field(default=None)


class Listener(ExternalSpec):
    name: str = Field(..., description="Listener name, unique within the Gateway")
    port: int = Field(..., ge=1, le=65535)
    protocol: str = Field(..., description="HTTP, HTTPS, TLS, TCP or UDP")
    hostname: Optional[str] = Field(default=None)


@register_kind(GATEWAY_API_GROUP, GATEWAY_API_VERSION, "Gateway", "gateways")
class GatewaySpec(ExternalSpec):
    """Gateway specification."""

    gatewayClassName: str = Field(..., description="Name of the GatewayClass")
    listeners: List[Listener] = Field(default_factory=list)
