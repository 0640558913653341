"""Base plugin architecture for the gateway operator.

Every controller (gateway, dataplane, controlplane) is a plugin: it builds
its reconciler and work queue on initialisation, registers its kopf watches,
and runs its workers between start and stop.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
import logging
from typing import Any

logger = logging.getLogger(__name__)


@dataclass
class PluginContext:
    """Shared collaborators handed to every plugin."""

    config: Any
    client: Any
    recorder: Any = None
    webhook_enabled: bool = False


class PluginBase(ABC):
    """Base class for all gateway operator plugins."""

    # OperatorConfig field switching the plugin on or off
    enabled_setting = None

    def __init__(self):
        self._initialised = False
        self._running = False
        self.context = None
        self.controller = None

    @property
    @abstractmethod
    def name(self):
        """Controller name, also used for work queue and handler ids."""
        pass

    @property
    @abstractmethod
    def version(self):
        """Version reported in health and metadata."""
        pass

    @property
    @abstractmethod
    def description(self):
        """One line shown in the startup summary."""
        pass

    @property
    @abstractmethod
    def kinds(self):
        """Kinds reconciled or watched by this plugin."""
        pass

    def enabled(self, config):
        if self.enabled_setting is None:
            return True
        return bool(getattr(config, self.enabled_setting, True))

    def initialise(self, context):
        """Check the scheme and build the controller, once per process.

        Returns:
            bool: False if the controller cannot run
        """
        if self._initialised:
            logger.warning(f"{self.name} controller initialised twice")
            return True

        try:
            logger.info(f"Initialising {self.name} controller v{self.version}")
            self.context = context

            missing = [kind for kind in self.kinds if kind not in context.client.scheme]
            if missing:
                logger.error(f"{self.name} controller needs kinds missing from the scheme: {missing}")
                return False

            self._initialise_plugin()

            self._initialised = True
            logger.debug(f"{self.name} controller ready to start")
            return True

        except Exception as e:
            logger.error(f"Failed to initialise {self.name} controller: {e}")
            return False

    @abstractmethod
    def _initialise_plugin(self):
        """Build the reconciler and controller of this plugin."""
        pass

    @abstractmethod
    def register_handlers(self):
        """Register kopf handlers feeding this plugin's controller."""
        pass

    @property
    def initialised(self):
        return self._initialised

    async def start(self):
        if not self._initialised or self._running:
            return
        await self.controller.start()
        self._running = True

    async def stop(self):
        if not self._running:
            return
        await self.controller.stop()
        self._running = False

    def shutdown(self):
        """Drop the controller after its workers have stopped."""
        if not self._initialised:
            return

        logger.info(f"Releasing {self.name} controller")
        self.controller = None
        self._initialised = False

    def get_health_status(self):
        """Liveness probe entry: lifecycle state and work queue depth."""
        queue = self.controller.queue if self.controller else None
        if self._running:
            status = "healthy"
        elif self._initialised:
            status = "not_running"
        else:
            status = "not_initialised"
        return {
            "name": self.name,
            "version": self.version,
            "initialised": self._initialised,
            "running": self._running,
            "queue_depth": len(queue) if queue is not None else 0,
            "status": status,
        }

    def get_metadata(self):
        return {
            "name": self.name,
            "version": self.version,
            "description": self.description,
            "kinds": list(self.kinds),
        }
