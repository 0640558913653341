"""Resource models for the gateway operator."""

from .gateway import GatewayClassSpec, GatewaySpec, Listener, ParametersReference
from .operator import (
    ControlPlaneSpec,
    DataPlaneSpec,
    DeploymentOptions,
    EnvFromSource,
    EnvVar,
    GatewayConfigurationSpec,
)

ALL_MODELS = [
    GatewayClassSpec,
    GatewaySpec,
    DataPlaneSpec,
    ControlPlaneSpec,
    GatewayConfigurationSpec,
]

__all__ = [
    "ALL_MODELS",
    "ControlPlaneSpec",
    "DataPlaneSpec",
    "DeploymentOptions",
    "EnvFromSource",
    "EnvVar",
    "GatewayClassSpec",
    "GatewayConfigurationSpec",
    "GatewaySpec",
    "Listener",
    "ParametersReference",
]
