"""Gateway plugin: turns Gateways of our classes into a DataPlane and a ControlPlane."""

import logging

from gateway_operator.controllers import Controller, GatewayReconciler
from gateway_operator.handlers import gateway_handler

from .base import PluginBase

logger = logging.getLogger(__name__)


class GatewayPlugin(PluginBase):
    """Plugin running the Gateway controller."""

    enabled_setting = "gateway_controller_enabled"

    @property
    def name(self) -> str:
        return "gateway"

    @property
    def version(self) -> str:
        return "1.0.0"

    @property
    def description(self) -> str:
        return "Reconciles Gateways into owned DataPlanes and ControlPlanes"

    @property
    def kinds(self):
        return [
            "Gateway",
            "GatewayClass",
            "GatewayConfiguration",
            "DataPlane",
            "ControlPlane",
            "Service",
        ]

    def _initialise_plugin(self):
        context = self.context
        reconciler = GatewayReconciler(context.client, context.config, context.recorder)
        self.controller = Controller(self.name, reconciler, context.config)

    def register_handlers(self):
        logger.info("Registering gateway handlers...")
        gateway_handler.register(
            self.controller,
            self.context.client.scheme,
            self.context.client,
            self.context.config.controller_name,
        )
