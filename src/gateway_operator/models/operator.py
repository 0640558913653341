"""Operator CRD models (gateway-operator.io)."""

from pydantic import Field
from typing import List, Optional, Dict, Any

from gateway_operator.consts import OPERATOR_GROUP, OPERATOR_VERSION
from gateway_operator.crd.registry import register_kind
from gateway_operator.crd.base import CRDSpec


class EnvVar(CRDSpec):
    """Environment variable specification."""

    name: str = Field(..., description="Environment variable name")
    value: Optional[str] = Field(default=None, description="Environment variable value")
    valueFrom: Optional[Dict[str, Any]] = Field(
        default=None, description="Source for the environment variable's value"
    )


class LocalObjectReference(CRDSpec):
    name: str = Field(..., description="Name of the referenced object")
    optional: Optional[bool] = Field(default=None)


class EnvFromSource(CRDSpec):
    """Set of environment variables taken from a ConfigMap or a Secret."""

    prefix: Optional[str] = Field(
        default=None, description="Prefix prepended to every key of the source"
    )
    configMapRef: Optional[LocalObjectReference] = Field(default=None)
    secretRef: Optional[LocalObjectReference] = Field(default=None)


class DeploymentOptions(CRDSpec):
    """Options shaping the Deployment generated for a DataPlane or ControlPlane."""

    containerImage: Optional[str] = Field(
        default=None, description="Container image (without tag)"
    )
    version: Optional[str] = Field(default=None, description="Container image tag")
    replicas: Optional[int] = Field(
        default=None, ge=0, description="Desired number of pods"
    )
    env: List[EnvVar] = Field(
        default_factory=list, description="Environment variables for the container"
    )
    envFrom: List[EnvFromSource] = Field(
        default_factory=list, description="Environment sources for the container"
    )


@register_kind(OPERATOR_GROUP, OPERATOR_VERSION, "DataPlane", "dataplanes")
class DataPlaneSpec(DeploymentOptions):
    """DataPlane CRD specification."""


@register_kind(OPERATOR_GROUP, OPERATOR_VERSION, "ControlPlane", "controlplanes")
class ControlPlaneSpec(DeploymentOptions):
    """ControlPlane CRD specification."""

    dataPlane: Optional[str] = Field(
        default=None, description="Name of the DataPlane this ControlPlane configures"
    )
    gatewayClass: Optional[str] = Field(
        default=None, description="Name of the GatewayClass this ControlPlane serves"
    )


@register_kind(
    OPERATOR_GROUP, OPERATOR_VERSION, "GatewayConfiguration", "gatewayconfigurations"
)
class GatewayConfigurationSpec(CRDSpec):
    """GatewayConfiguration CRD specification."""

    dataPlaneOptions: Optional[DeploymentOptions] = Field(
        default=None, description="Options applied to DataPlanes provisioned for Gateways"
    )
    controlPlaneOptions: Optional[DeploymentOptions] = Field(
        default=None,
        description="Options applied to ControlPlanes provisioned for Gateways",
    )
