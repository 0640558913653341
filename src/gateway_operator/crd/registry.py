"""Registration table of every resource kind the operator reads or writes."""

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Optional

from gateway_operator.errors import UnknownKindError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResourceKind:
    """How to reach one kind through the Kubernetes API.

    ``api`` selects the client class: "core", "apps", "rbac" for the typed
    APIs (with ``resource`` as the snake_case name used in method names) or
    "custom" for custom objects.
    """

    group: str
    version: str
    kind: str
    plural: str
    namespaced: bool = True
    api: str = "custom"
    resource: Optional[str] = None

    @property
    def api_version(self):
        return f"{self.group}/{self.version}" if self.group else self.version


def register_kind(group, version, kind, plural=None, scope="Namespaced"):
    """Decorator tagging a spec model with the kind it describes.

    Args:
        group: API group (e.g., 'gateway-operator.io')
        version: API version (e.g., 'v1alpha1')
        kind: Kind name (e.g., 'DataPlane')
        plural: Plural name (defaults to kind.lower() + 's')
        scope: 'Namespaced' or 'Cluster'
    """

    def decorator(model_class):
        if not hasattr(model_class, "__annotations__"):
            raise ValueError(
                f"CRD model {model_class.__name__} must have type annotations"
            )

        model_class._crd_kind = ResourceKind(
            group=group,
            version=version,
            kind=kind,
            plural=plural or f"{kind.lower()}s",
            namespaced=scope == "Namespaced",
        )
        return model_class

    return decorator


BUILTIN_KINDS = (
    ResourceKind("", "v1", "Service", "services", api="core", resource="service"),
    ResourceKind("", "v1", "Secret", "secrets", api="core", resource="secret"),
    ResourceKind("", "v1", "ConfigMap", "configmaps", api="core", resource="config_map"),
    ResourceKind(
        "", "v1", "ServiceAccount", "serviceaccounts",
        api="core", resource="service_account",
    ),
    ResourceKind("apps", "v1", "Deployment", "deployments", api="apps", resource="deployment"),
    ResourceKind(
        "rbac.authorization.k8s.io", "v1", "ClusterRole", "clusterroles",
        namespaced=False, api="rbac", resource="cluster_role",
    ),
    ResourceKind(
        "rbac.authorization.k8s.io", "v1", "ClusterRoleBinding", "clusterrolebindings",
        namespaced=False, api="rbac", resource="cluster_role_binding",
    ),
)


class Scheme:
    """Immutable kind table, passed by reference to everything that talks to the API."""

    def __init__(self, kinds):
        table = {}
        for resource_kind in kinds:
            if resource_kind.kind in table:
                raise ValueError(f"Kind {resource_kind.kind} registered twice")
            table[resource_kind.kind] = resource_kind
        self._kinds = MappingProxyType(table)

    def kind_for(self, kind):
        try:
            return self._kinds[kind]
        except KeyError:
            raise UnknownKindError(f"Kind {kind} is not registered in the scheme") from None

    def __contains__(self, kind):
        return kind in self._kinds

    def kinds(self):
        return list(self._kinds.values())


def build_scheme(models=None):
    """Build the scheme from tagged models plus the built-in kinds.

    Args:
        models: Spec model classes decorated with @register_kind
            (defaults to every model in gateway_operator.models)
    """
    if models is None:
        from gateway_operator.models import ALL_MODELS

        models = ALL_MODELS

    kinds = list(BUILTIN_KINDS)
    for model in models:
        resource_kind = getattr(model, "_crd_kind", None)
        if resource_kind is None:
            raise ValueError(
                f"Model {model.__name__} not properly decorated with @register_kind"
            )
        kinds.append(resource_kind)
        logger.debug(f"Registered kind: {resource_kind.api_version}/{resource_kind.kind}")

    return Scheme(kinds)
