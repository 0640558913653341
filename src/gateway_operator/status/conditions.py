"""Status condition helpers.

Conditions live in ``status.conditions`` as plain dicts with the usual
Kubernetes shape. A resource holds at most one entry per type and an entry
only counts while its observedGeneration matches the resource's generation.
"""

import datetime

from gateway_operator.consts import CONDITION_TRUE
from gateway_operator.crd.base import CRDCondition


def now():
    return datetime.datetime.now(datetime.timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def new_condition(condition_type, status, reason, message="", generation=None):
    condition = CRDCondition(
        type=condition_type,
        status=status,
        reason=reason,
        message=message,
        observedGeneration=generation,
    )
    data = condition.model_dump(exclude_none=True)
    data["lastTransitionTime"] = now()
    return data


def _conditions(obj):
    status = obj.get("status") or {}
    return status.get("conditions") or []


def get_condition(obj, condition_type):
    for condition in _conditions(obj):
        if condition.get("type") == condition_type:
            return condition
    return None


def has_condition(obj, condition_type):
    return get_condition(obj, condition_type) is not None


def same_condition(a, b):
    """Compare two conditions ignoring lastTransitionTime."""
    keys = ("type", "status", "reason", "message", "observedGeneration")
    return all(a.get(key, "") == b.get(key, "") for key in keys)


def set_condition(obj, condition):
    """Set ``condition`` on ``obj``, replacing the entry of the same type.

    The transition time of the existing entry is kept when the status does not
    flip. Extra entries of the same type are dropped.

    Returns:
        bool: True if the condition list changed
    """
    if obj.get("status") is None:
        obj["status"] = {}
    conditions = obj["status"].get("conditions") or []

    matching = [c for c in conditions if c.get("type") == condition["type"]]
    if len(matching) == 1 and same_condition(matching[0], condition):
        obj["status"]["conditions"] = conditions
        return False

    condition = dict(condition)
    if matching and matching[0].get("status") == condition["status"]:
        condition["lastTransitionTime"] = matching[0].get(
            "lastTransitionTime", condition.get("lastTransitionTime")
        )

    updated = []
    placed = False
    for existing in conditions:
        if existing.get("type") != condition["type"]:
            updated.append(existing)
        elif not placed:
            updated.append(condition)
            placed = True
    if not placed:
        updated.append(condition)

    obj["status"]["conditions"] = updated
    return True


def is_condition_true(obj, condition_type):
    """True only for a True condition observed at the current generation."""
    condition = get_condition(obj, condition_type)
    if condition is None or condition.get("status") != CONDITION_TRUE:
        return False
    generation = obj.get("metadata", {}).get("generation")
    return generation is None or condition.get("observedGeneration") == generation


def prune_conditions(obj, preserve=()):
    """Drop stale and duplicate entries.

    Entries observed at an older generation are removed unless their type is
    in ``preserve``; for each type only the most recently observed entry is
    kept.

    Returns:
        bool: True if anything was removed
    """
    conditions = _conditions(obj)
    generation = obj.get("metadata", {}).get("generation")

    latest = {}
    order = []
    for condition in conditions:
        observed = condition.get("observedGeneration")
        stale = generation is not None and observed is not None and observed < generation
        if stale and condition.get("type") not in preserve:
            continue
        current = latest.get(condition["type"])
        if current is None:
            order.append(condition["type"])
            latest[condition["type"]] = condition
        elif (observed or 0) >= (current.get("observedGeneration") or 0):
            latest[condition["type"]] = condition

    pruned = [latest[condition_type] for condition_type in order]
    if len(pruned) == len(conditions):
        return False
    obj.setdefault("status", {})["conditions"] = pruned
    return True
