"""Base classes for CRD specifications."""

from pydantic import BaseModel
from typing import Optional
from datetime import datetime


class CRDCondition(BaseModel):
    """Kubernetes status condition."""

    type: str
    status: str  # True, False, Unknown
    reason: str
    message: str = ""
    observedGeneration: Optional[int] = None
    lastTransitionTime: Optional[datetime] = None


class CRDSpec(BaseModel):
    """Base class for all CRD spec objects."""

    class Config:
        extra = "forbid"
        validate_assignment = True


class ExternalSpec(CRDSpec):
    """Spec of a resource owned by another project (unknown fields kept)."""

    class Config:
        extra = "allow"
