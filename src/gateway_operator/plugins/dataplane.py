"""DataPlane plugin: provisions the proxy Service, TLS secret and Deployment."""

import logging

from gateway_operator.controllers import Controller, DataPlaneReconciler
from gateway_operator.handlers import dataplane_handler
from gateway_operator.validation import DataPlaneValidator

from .base import PluginBase

logger = logging.getLogger(__name__)


class DataPlanePlugin(PluginBase):
    """Plugin running the DataPlane controller."""

    enabled_setting = "dataplane_controller_enabled"

    @property
    def name(self) -> str:
        return "dataplane"

    @property
    def version(self) -> str:
        return "1.0.0"

    @property
    def description(self) -> str:
        return "Provisions DataPlane proxies behind a Service with an mTLS admin certificate"

    @property
    def kinds(self):
        return ["DataPlane", "Service", "Secret", "Deployment", "ConfigMap"]

    def _initialise_plugin(self):
        context = self.context
        self.validator = DataPlaneValidator(context.client)
        reconciler = DataPlaneReconciler(
            context.client, context.config, context.recorder, self.validator
        )
        self.controller = Controller(self.name, reconciler, context.config)

    def register_handlers(self):
        logger.info("Registering dataplane handlers...")
        dataplane_handler.register(
            self.controller,
            self.context.client.scheme,
            validator=self.validator if self.context.webhook_enabled else None,
        )
