"""Registry loading the controller plugins of one operator process."""

import importlib
import logging

from .base import PluginBase

logger = logging.getLogger(__name__)

BUILTIN_PLUGINS = [
    "gateway_operator.plugins.dataplane",
    "gateway_operator.plugins.controlplane",
    "gateway_operator.plugins.gateway",
]


def find_plugin_class(module):
    """The PluginBase subclass defined in ``module``, if any."""
    for value in vars(module).values():
        if (
            isinstance(value, type)
            and issubclass(value, PluginBase)
            and value is not PluginBase
            and value.__module__ == module.__name__
        ):
            return value
    return None


class PluginRegistry:
    """Holds the controllers enabled for this process, keyed by plugin name.

    The registry is built per process from a PluginContext; nothing about it
    is global, so tests can build as many as they like.
    """

    def __init__(self, context):
        self.context = context
        self._plugins = {}

    def discover_plugins(self):
        """Instantiate every built-in controller enabled in the configuration.

        Returns:
            int: Number of plugins registered
        """
        loaded = 0
        for module_name in BUILTIN_PLUGINS:
            plugin_class = find_plugin_class(importlib.import_module(module_name))
            if plugin_class is None:
                logger.error(f"No controller plugin found in {module_name}")
                continue

            plugin = plugin_class()
            if not plugin.enabled(self.context.config):
                logger.info(f"{plugin.name} controller disabled by {plugin.enabled_setting}")
                continue
            if self.register_plugin(plugin):
                loaded += 1

        logger.info(f"Loaded {loaded} controller plugins")
        return loaded

    def register_plugin(self, plugin):
        """Add a plugin instance; a second plugin of the same name is refused.

        Returns:
            bool: True if the plugin was added
        """
        if not isinstance(plugin, PluginBase):
            logger.error(f"Not a controller plugin: {type(plugin)}")
            return False

        if plugin.name in self._plugins:
            logger.warning(f"Controller plugin {plugin.name} is already registered")
            return False

        self._plugins[plugin.name] = plugin
        logger.debug(f"Registered {plugin.name} controller v{plugin.version}")
        return True

    def initialise_all_plugins(self):
        """Build the reconciler and controller of every registered plugin.

        Returns:
            Dict[str, bool]: plugin name to initialisation success
        """
        results = {name: plugin.initialise(self.context) for name, plugin in self._plugins.items()}

        failed = [name for name, ok in results.items() if not ok]
        if failed:
            logger.error(f"Controllers failed to initialise: {', '.join(failed)}")
        logger.info(f"Initialised {len(results) - len(failed)}/{len(results)} controllers")
        return results

    def register_all_handlers(self):
        """Register the kopf watches of every initialised controller."""
        for plugin in self._plugins.values():
            if not plugin.initialised:
                logger.warning(f"Not registering watches of uninitialised {plugin.name} controller")
                continue
            plugin.register_handlers()

    async def start_all_plugins(self):
        for plugin in self._plugins.values():
            await plugin.start()

    async def stop_all_plugins(self):
        """Stop the workers of every controller, then drop their state."""
        for plugin in self._plugins.values():
            try:
                await plugin.stop()
            except Exception as e:
                logger.error(f"Error stopping {plugin.name} controller: {e}")
            plugin.shutdown()

    def get_plugin(self, name):
        return self._plugins.get(name)

    def list_plugin_names(self):
        return list(self._plugins)

    def get_plugins_health_status(self):
        return {name: plugin.get_health_status() for name, plugin in self._plugins.items()}

    def get_plugins_metadata(self):
        return [plugin.get_metadata() for plugin in self._plugins.values()]
