"""Cluster state client: CRUD over dict objects, keyed by kind."""

import contextvars
import logging
import time

import kubernetes
from kubernetes.client.exceptions import ApiException

from gateway_operator.errors import (
    DeadlineExceededError,
    NotFoundError,
    convert_api_exception,
)

logger = logging.getLogger(__name__)

# Monotonic deadline of the reconcile pass running in the current context
pass_deadline = contextvars.ContextVar("pass_deadline", default=None)


def label_selector(labels):
    """Render a label dict as an equality-based selector string."""
    if not labels:
        return None
    return ",".join(f"{key}={value}" for key, value in sorted(labels.items()))


class ClusterClient:
    """Thin wrapper over the kubernetes API classes.

    Objects go in and come out as plain dicts in the API's camelCase form.
    Updates carry the resourceVersion the caller read, so a concurrent write
    surfaces as ConflictError instead of being overwritten.
    """

    def __init__(self, scheme, api_client=None, request_timeout=None):
        self.scheme = scheme
        self.api_client = api_client or kubernetes.client.ApiClient()
        self.request_timeout = request_timeout
        self._apis = {
            "core": kubernetes.client.CoreV1Api(self.api_client),
            "apps": kubernetes.client.AppsV1Api(self.api_client),
            "rbac": kubernetes.client.RbacAuthorizationV1Api(self.api_client),
            "custom": kubernetes.client.CustomObjectsApi(self.api_client),
        }

    def get(self, kind, name, namespace=None):
        resource_kind = self.scheme.kind_for(kind)
        try:
            if resource_kind.api == "custom":
                api = self._apis["custom"]
                if resource_kind.namespaced:
                    result = api.get_namespaced_custom_object(
                        resource_kind.group,
                        resource_kind.version,
                        namespace,
                        resource_kind.plural,
                        name,
                        _request_timeout=self._timeout(),
                    )
                else:
                    result = api.get_cluster_custom_object(
                        resource_kind.group,
                        resource_kind.version,
                        resource_kind.plural,
                        name,
                        _request_timeout=self._timeout(),
                    )
            elif resource_kind.namespaced:
                result = self._typed("read_namespaced", resource_kind)(
                    name, namespace, _request_timeout=self._timeout()
                )
            else:
                result = self._typed("read", resource_kind)(
                    name, _request_timeout=self._timeout()
                )
        except ApiException as e:
            raise convert_api_exception(e, f"get {kind} {namespace}/{name}") from e

        return self._to_dict(result, resource_kind)

    def list(self, kind, namespace=None, labels=None):
        """List objects of a kind; namespace None lists across the cluster."""
        resource_kind = self.scheme.kind_for(kind)
        selector = label_selector(labels)
        kwargs = {"_request_timeout": self._timeout()}
        if selector:
            kwargs["label_selector"] = selector

        try:
            if resource_kind.api == "custom":
                api = self._apis["custom"]
                if resource_kind.namespaced and namespace is not None:
                    result = api.list_namespaced_custom_object(
                        resource_kind.group,
                        resource_kind.version,
                        namespace,
                        resource_kind.plural,
                        **kwargs,
                    )
                else:
                    result = api.list_cluster_custom_object(
                        resource_kind.group,
                        resource_kind.version,
                        resource_kind.plural,
                        **kwargs,
                    )
                items = result.get("items", [])
            elif not resource_kind.namespaced:
                items = self._typed("list", resource_kind)(**kwargs).items
            elif namespace is None:
                items = self._typed("list", resource_kind, "_for_all_namespaces")(
                    **kwargs
                ).items
            else:
                items = self._typed("list_namespaced", resource_kind)(
                    namespace, **kwargs
                ).items
        except ApiException as e:
            raise convert_api_exception(e, f"list {kind}") from e

        return [self._to_dict(item, resource_kind) for item in items or []]

    def create(self, obj):
        resource_kind = self.scheme.kind_for(obj["kind"])
        namespace = obj["metadata"].get("namespace")
        try:
            if resource_kind.api == "custom":
                api = self._apis["custom"]
                if resource_kind.namespaced:
                    result = api.create_namespaced_custom_object(
                        resource_kind.group,
                        resource_kind.version,
                        namespace,
                        resource_kind.plural,
                        obj,
                        _request_timeout=self._timeout(),
                    )
                else:
                    result = api.create_cluster_custom_object(
                        resource_kind.group,
                        resource_kind.version,
                        resource_kind.plural,
                        obj,
                        _request_timeout=self._timeout(),
                    )
            elif resource_kind.namespaced:
                result = self._typed("create_namespaced", resource_kind)(
                    namespace, obj, _request_timeout=self._timeout()
                )
            else:
                result = self._typed("create", resource_kind)(
                    obj, _request_timeout=self._timeout()
                )
        except ApiException as e:
            raise convert_api_exception(e, f"create {obj['kind']}") from e

        created = self._to_dict(result, resource_kind)
        logger.info(
            f"Created {resource_kind.kind} {namespace or ''}/{created['metadata']['name']}"
        )
        return created

    def update(self, obj):
        return self._replace(obj, status=False)

    def update_status(self, obj):
        return self._replace(obj, status=True)

    def delete(self, obj):
        """Delete an object; one that is already gone is not an error."""
        resource_kind = self.scheme.kind_for(obj["kind"])
        name = obj["metadata"]["name"]
        namespace = obj["metadata"].get("namespace")
        kwargs = {
            "propagation_policy": "Background",
            "_request_timeout": self._timeout(),
        }
        try:
            if resource_kind.api == "custom":
                api = self._apis["custom"]
                if resource_kind.namespaced:
                    api.delete_namespaced_custom_object(
                        resource_kind.group,
                        resource_kind.version,
                        namespace,
                        resource_kind.plural,
                        name,
                        **kwargs,
                    )
                else:
                    api.delete_cluster_custom_object(
                        resource_kind.group,
                        resource_kind.version,
                        resource_kind.plural,
                        name,
                        **kwargs,
                    )
            elif resource_kind.namespaced:
                self._typed("delete_namespaced", resource_kind)(name, namespace, **kwargs)
            else:
                self._typed("delete", resource_kind)(name, **kwargs)
        except ApiException as e:
            error = convert_api_exception(e, f"delete {obj['kind']} {namespace}/{name}")
            if isinstance(error, NotFoundError):
                logger.debug(f"{obj['kind']} {namespace}/{name} already deleted")
                return
            raise error from e

        logger.info(f"Deleted {resource_kind.kind} {namespace or ''}/{name}")

    def _replace(self, obj, status):
        resource_kind = self.scheme.kind_for(obj["kind"])
        name = obj["metadata"]["name"]
        namespace = obj["metadata"].get("namespace")
        suffix = "_status" if status else ""
        try:
            if resource_kind.api == "custom":
                api = self._apis["custom"]
                if resource_kind.namespaced:
                    method = getattr(api, f"replace_namespaced_custom_object{suffix}")
                    result = method(
                        resource_kind.group,
                        resource_kind.version,
                        namespace,
                        resource_kind.plural,
                        name,
                        obj,
                        _request_timeout=self._timeout(),
                    )
                else:
                    method = getattr(api, f"replace_cluster_custom_object{suffix}")
                    result = method(
                        resource_kind.group,
                        resource_kind.version,
                        resource_kind.plural,
                        name,
                        obj,
                        _request_timeout=self._timeout(),
                    )
            elif resource_kind.namespaced:
                result = self._typed("replace_namespaced", resource_kind, suffix)(
                    name, namespace, obj, _request_timeout=self._timeout()
                )
            else:
                result = self._typed("replace", resource_kind, suffix)(
                    name, obj, _request_timeout=self._timeout()
                )
        except ApiException as e:
            action = "update status of" if status else "update"
            raise convert_api_exception(e, f"{action} {obj['kind']} {namespace}/{name}") from e

        logger.debug(f"Updated {resource_kind.kind} {namespace or ''}/{name}{suffix}")
        return self._to_dict(result, resource_kind)

    def _timeout(self):
        """Request timeout for the next call, capped by the pass deadline."""
        deadline = pass_deadline.get()
        if deadline is None:
            return self.request_timeout
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise DeadlineExceededError("reconcile deadline exceeded")
        if self.request_timeout is None:
            return remaining
        return min(remaining, self.request_timeout)

    def _typed(self, verb, resource_kind, suffix=""):
        api = self._apis[resource_kind.api]
        return getattr(api, f"{verb}_{resource_kind.resource}{suffix}")

    def _to_dict(self, result, resource_kind):
        obj = self.api_client.sanitize_for_serialization(result)
        # List items of typed APIs come back without apiVersion/kind
        obj["apiVersion"] = resource_kind.api_version
        obj["kind"] = resource_kind.kind
        return obj
