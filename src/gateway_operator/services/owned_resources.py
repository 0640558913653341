"""Create, update or heal the single child object of a kind owned by a parent."""

import logging

from gateway_operator.consts import OPERATOR_MANAGED_BY_LABEL
from gateway_operator.utils.kubernetes import (
    ensure_object_meta_is_updated,
    is_owned_by_ref_uid,
    label_object_as_managed,
    namespaced_name,
    set_owner_for_object,
)

logger = logging.getLogger(__name__)


def list_owned(client, kind, managed_by, owner):
    """List objects of ``kind`` carrying the managed-by label and owned by ``owner``.

    The label narrows the list server side; the ownerReference UID is what
    decides ownership.
    """
    namespace = owner["metadata"].get("namespace")
    if not client.scheme.kind_for(kind).namespaced:
        namespace = None

    candidates = client.list(
        kind, namespace=namespace, labels={OPERATOR_MANAGED_BY_LABEL: managed_by}
    )
    uid = owner["metadata"]["uid"]
    return [obj for obj in candidates if is_owned_by_ref_uid(obj, uid)]


def ensure_owned_resource(client, owner, generated, managed_by, update=None):
    """Converge the child of ``generated["kind"]`` owned by ``owner``.

    Args:
        client: ClusterClient
        owner: Parent object
        generated: Freshly generated desired child
        managed_by: Value of the managed-by label for this parent kind
        update: Optional ``update(existing, generated) -> bool`` hook copying
            the meaningful fields of ``generated`` onto ``existing``

    Returns:
        tuple: (changed, child). ``changed`` is True whenever something was
        written, so the caller can end its pass.
    """
    kind = generated["kind"]
    set_owner_for_object(generated, owner)
    label_object_as_managed(generated, managed_by)

    existing = list_owned(client, kind, managed_by, owner)
    count = len(existing)

    if count > 1:
        logger.warning(
            f"Found {count} {kind} objects owned by {namespaced_name(owner)}, "
            f"deleting all of them and creating one"
        )
        for duplicate in existing:
            client.delete(duplicate)
        count = 0

    if count == 1:
        child = existing[0]
        changed = ensure_object_meta_is_updated(child, generated)
        if update is not None and update(child, generated):
            changed = True
        if changed:
            logger.info(f"Updating {kind} {namespaced_name(child)}")
            return True, client.update(child)
        return False, child

    child = client.create(generated)
    return True, child
