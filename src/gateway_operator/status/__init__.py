"""Status condition management."""

from .conditions import (
    get_condition,
    has_condition,
    is_condition_true,
    new_condition,
    prune_conditions,
    set_condition,
)

__all__ = [
    "get_condition",
    "has_condition",
    "is_condition_true",
    "new_condition",
    "prune_conditions",
    "set_condition",
]
