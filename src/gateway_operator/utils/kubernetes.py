"""Object metadata helpers shared by every reconciler."""

import copy

from gateway_operator.consts import OPERATOR_MANAGED_BY_LABEL


def namespaced_name(obj):
    metadata = obj.get("metadata", {})
    namespace = metadata.get("namespace")
    name = metadata.get("name") or metadata.get("generateName", "")
    return f"{namespace}/{name}" if namespace else name


def owner_reference(owner):
    """Build a controller ownerReference pointing at ``owner``."""
    return {
        "apiVersion": owner["apiVersion"],
        "kind": owner["kind"],
        "name": owner["metadata"]["name"],
        "uid": owner["metadata"]["uid"],
        "controller": True,
        "blockOwnerDeletion": True,
    }


def set_owner_for_object(obj, owner):
    """Make ``owner`` the controller of ``obj``, replacing other controller refs."""
    metadata = obj.setdefault("metadata", {})
    references = [
        ref for ref in metadata.get("ownerReferences") or [] if not ref.get("controller")
    ]
    references.append(owner_reference(owner))
    metadata["ownerReferences"] = references
    return obj


def is_owned_by_ref_uid(obj, uid):
    """Whether any ownerReference of ``obj`` points at ``uid``."""
    for ref in obj.get("metadata", {}).get("ownerReferences") or []:
        if ref.get("uid") == uid:
            return True
    return False


def owner_uids(obj, kind=None):
    return [
        ref["uid"]
        for ref in obj.get("metadata", {}).get("ownerReferences") or []
        if kind is None or ref.get("kind") == kind
    ]


def label_object_as_managed(obj, managed_by):
    labels = obj.setdefault("metadata", {}).get("labels") or {}
    labels[OPERATOR_MANAGED_BY_LABEL] = managed_by
    obj["metadata"]["labels"] = labels
    return obj


def ensure_object_meta_is_updated(existing, generated):
    """Bring the metadata of ``existing`` in line with ``generated``.

    Owner references are replaced with the generated set and labels are
    merged, the generated value winning on collisions. ``existing`` is
    modified in place.

    Returns:
        bool: True if anything changed
    """
    metadata = existing.setdefault("metadata", {})
    generated_metadata = generated.get("metadata", {})

    old_references = metadata.get("ownerReferences") or []
    old_labels = metadata.get("labels") or {}

    new_references = copy.deepcopy(generated_metadata.get("ownerReferences") or [])
    new_labels = dict(old_labels)
    new_labels.update(generated_metadata.get("labels") or {})

    metadata["ownerReferences"] = new_references
    metadata["labels"] = new_labels

    return old_references != new_references or old_labels != new_labels
