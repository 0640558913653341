"""Resource kind registration for the gateway operator."""

from .registry import ResourceKind, Scheme, build_scheme, register_kind
from .base import CRDSpec, CRDCondition

__all__ = [
    "ResourceKind",
    "Scheme",
    "build_scheme",
    "register_kind",
    "CRDSpec",
    "CRDCondition",
]
