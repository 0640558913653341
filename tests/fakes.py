"""In-memory stand-ins for the cluster client and the event recorder."""

import copy
import itertools
import uuid

from gateway_operator.controllers.base import Request
from gateway_operator.errors import ConflictError, NotFoundError


class FakeClusterClient:
    """Keeps objects in a dict and mimics the API server behaviour the
    reconcilers rely on: generateName, uids, resourceVersion checks,
    generation bumps on spec changes, ClusterIP allocation and the
    Deployment replicas default.
    """

    def __init__(self, scheme, allocate_cluster_ip=True):
        self.scheme = scheme
        self.allocate_cluster_ip = allocate_cluster_ip
        self.objects = {}
        self.writes = 0
        self._versions = itertools.count(1)
        self._suffixes = itertools.count(1)
        self._ips = itertools.count(10)

    def _key(self, kind, name, namespace):
        if not self.scheme.kind_for(kind).namespaced:
            namespace = None
        return (kind, namespace, name)

    def get(self, kind, name, namespace=None):
        key = self._key(kind, name, namespace)
        if key not in self.objects:
            raise NotFoundError(f"get {kind} {namespace}/{name}: Not Found", status=404)
        return copy.deepcopy(self.objects[key])

    def list(self, kind, namespace=None, labels=None):
        namespaced = self.scheme.kind_for(kind).namespaced
        result = []
        for (obj_kind, obj_namespace, _), obj in self.objects.items():
            if obj_kind != kind:
                continue
            if namespaced and namespace is not None and obj_namespace != namespace:
                continue
            obj_labels = obj["metadata"].get("labels") or {}
            if any(obj_labels.get(key) != value for key, value in (labels or {}).items()):
                continue
            result.append(copy.deepcopy(obj))
        return result

    def create(self, obj):
        obj = copy.deepcopy(obj)
        resource_kind = self.scheme.kind_for(obj["kind"])
        metadata = obj.setdefault("metadata", {})
        if not metadata.get("name"):
            if not metadata.get("generateName"):
                raise ValueError("name or generateName is required")
            metadata["name"] = f"{metadata['generateName']}{next(self._suffixes):05d}"
        if not resource_kind.namespaced:
            metadata.pop("namespace", None)

        key = self._key(obj["kind"], metadata["name"], metadata.get("namespace"))
        if key in self.objects:
            raise ConflictError(f"{obj['kind']} {metadata['name']} already exists", status=409)

        obj["apiVersion"] = resource_kind.api_version
        metadata["uid"] = str(uuid.uuid4())
        metadata["resourceVersion"] = str(next(self._versions))
        metadata["generation"] = 1
        self._apply_defaults(obj)

        self.objects[key] = obj
        self.writes += 1
        return copy.deepcopy(obj)

    def update(self, obj):
        stored = self._stored_for_write(obj)
        obj = copy.deepcopy(obj)
        obj["status"] = copy.deepcopy(stored.get("status"))
        if obj.get("status") is None:
            obj.pop("status")
        self._apply_defaults(obj)

        generation = stored["metadata"].get("generation", 1)
        if _content(obj) != _content(stored):
            generation += 1
        obj["metadata"]["generation"] = generation
        obj["metadata"]["uid"] = stored["metadata"]["uid"]
        return self._store(obj)

    def update_status(self, obj):
        stored = copy.deepcopy(self._stored_for_write(obj))
        stored["status"] = copy.deepcopy(obj.get("status"))
        return self._store(stored)

    def delete(self, obj):
        key = self._key(obj["kind"], obj["metadata"]["name"], obj["metadata"].get("namespace"))
        if self.objects.pop(key, None) is not None:
            self.writes += 1

    def _stored_for_write(self, obj):
        key = self._key(obj["kind"], obj["metadata"]["name"], obj["metadata"].get("namespace"))
        if key not in self.objects:
            raise NotFoundError(f"update {obj['kind']} {obj['metadata']['name']}: Not Found", status=404)
        stored = self.objects[key]
        if obj["metadata"].get("resourceVersion") != stored["metadata"]["resourceVersion"]:
            raise ConflictError(
                f"update {obj['kind']} {obj['metadata']['name']}: Conflict", status=409
            )
        return stored

    def _store(self, obj):
        obj["metadata"]["resourceVersion"] = str(next(self._versions))
        key = self._key(obj["kind"], obj["metadata"]["name"], obj["metadata"].get("namespace"))
        self.objects[key] = obj
        self.writes += 1
        return copy.deepcopy(obj)

    def _apply_defaults(self, obj):
        if obj["kind"] == "Service" and self.allocate_cluster_ip:
            spec = obj.setdefault("spec", {})
            if not spec.get("clusterIP"):
                spec["clusterIP"] = f"10.96.0.{next(self._ips)}"
        if obj["kind"] == "Deployment":
            obj.setdefault("spec", {}).setdefault("replicas", 1)

    # Helpers for tests, not counted as writes

    def put(self, obj):
        """Create an object the way an external actor would."""
        created = self.create(obj)
        self.writes -= 1
        return created

    def set_status(self, kind, name, namespace, status):
        key = self._key(kind, name, namespace)
        self.objects[key]["status"] = copy.deepcopy(status)
        self.objects[key]["metadata"]["resourceVersion"] = str(next(self._versions))

    def edit(self, kind, name, namespace, mutate):
        """Apply ``mutate(obj)`` through update, as a user edit would."""
        obj = self.get(kind, name, namespace)
        mutate(obj)
        updated = self.update(obj)
        self.writes -= 1
        return updated

    def all(self, kind, namespace=None):
        return self.list(kind, namespace=namespace)


def _content(obj):
    return {key: value for key, value in obj.items() if key not in ("metadata", "status")}


def mark_deployment_ready(client, deployment):
    replicas = deployment["spec"].get("replicas", 1)
    client.set_status(
        "Deployment",
        deployment["metadata"]["name"],
        deployment["metadata"]["namespace"],
        {
            "observedGeneration": deployment["metadata"]["generation"],
            "replicas": replicas,
            "readyReplicas": replicas,
            "availableReplicas": replicas,
        },
    )


def mark_deployment_unready(client, deployment):
    client.set_status(
        "Deployment",
        deployment["metadata"]["name"],
        deployment["metadata"]["namespace"],
        {
            "observedGeneration": deployment["metadata"]["generation"],
            "replicas": deployment["spec"].get("replicas", 1),
            "availableReplicas": 0,
        },
    )


class FakeEventRecorder:
    def __init__(self):
        self.events = []

    def normal(self, obj, reason, message):
        self.event(obj, "Normal", reason, message)

    def warning(self, obj, reason, message):
        self.event(obj, "Warning", reason, message)

    def event(self, obj, event_type, reason, message):
        self.events.append(
            {
                "kind": obj.get("kind"),
                "name": obj["metadata"].get("name"),
                "type": event_type,
                "reason": reason,
                "message": message,
            }
        )


def reconcile_until_stable(reconciler, namespace, name, limit=20):
    """Run passes until one performs no write; return the number of passes."""
    for passes in range(1, limit + 1):
        before = reconciler.client.writes
        reconciler.reconcile(Request(namespace, name))
        if reconciler.client.writes == before:
            return passes
    raise AssertionError(f"{namespace}/{name} did not settle after {limit} passes")
