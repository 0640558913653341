from .dataplane import DataPlaneValidator

__all__ = ["DataPlaneValidator"]
