"""ControlPlane plugin: provisions the ingress controller and its RBAC."""

import logging

from gateway_operator.controllers import ControlPlaneReconciler, Controller
from gateway_operator.handlers import controlplane_handler

from .base import PluginBase

logger = logging.getLogger(__name__)


class ControlPlanePlugin(PluginBase):
    """Plugin running the ControlPlane controller."""

    enabled_setting = "controlplane_controller_enabled"

    @property
    def name(self) -> str:
        return "controlplane"

    @property
    def version(self) -> str:
        return "1.0.0"

    @property
    def description(self) -> str:
        return "Provisions ControlPlane controllers, dormant until a DataPlane is assigned"

    @property
    def kinds(self):
        return [
            "ControlPlane",
            "DataPlane",
            "ServiceAccount",
            "ClusterRole",
            "ClusterRoleBinding",
            "Deployment",
        ]

    def _initialise_plugin(self):
        context = self.context
        reconciler = ControlPlaneReconciler(context.client, context.config, context.recorder)
        self.controller = Controller(self.name, reconciler, context.config)

    def register_handlers(self):
        logger.info("Registering controlplane handlers...")
        controlplane_handler.register(
            self.controller, self.context.client.scheme, self.context.client
        )
