import asyncio
import kopf
import logging
import kubernetes
import os

from gateway_operator.cluster import ClusterClient
from gateway_operator.config import OperatorConfig
from gateway_operator.crd.registry import build_scheme
from gateway_operator.plugins import PluginContext, PluginRegistry
from gateway_operator.services.ca_manager import ensure_cluster_ca
from gateway_operator.services.events import EventRecorder
from gateway_operator.services.webhook import configure_webhook_server

logging.basicConfig(
    level=getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Global plugin registry instance
plugin_registry = None


def load_kubernetes_config():
    try:
        kubernetes.config.load_incluster_config()
        logger.info("Loaded in-cluster Kubernetes config")
    except kubernetes.config.ConfigException:
        kubernetes.config.load_kube_config()
        logger.info("Loaded local Kubernetes config")


@kopf.on.startup()
async def startup_fn(settings: kopf.OperatorSettings, **kwargs):
    """Bootstrap the cluster CA, then start the controller plugins."""
    global plugin_registry

    logger.info("Gateway Operator is starting up...")

    load_kubernetes_config()
    config = OperatorConfig.from_env()
    scheme = build_scheme()
    client = ClusterClient(scheme, request_timeout=config.request_timeout)

    await asyncio.to_thread(
        ensure_cluster_ca,
        client,
        config.cluster_ca_secret_name,
        config.cluster_ca_secret_namespace,
    )

    webhook_enabled = configure_webhook_server(settings, config)

    context = PluginContext(
        config=config,
        client=client,
        recorder=EventRecorder(),
        webhook_enabled=webhook_enabled,
    )
    plugin_registry = PluginRegistry(context)

    discovered_count = plugin_registry.discover_plugins()
    if discovered_count == 0:
        logger.error("No plugins discovered - operator will have no functionality")
        raise RuntimeError("No plugins available")

    init_results = plugin_registry.initialise_all_plugins()
    successful_inits = sum(1 for success in init_results.values() if success)

    if successful_inits == 0:
        logger.error("No plugins initialised successfully")
        raise RuntimeError("Plugin initialisation failed")

    plugin_registry.register_all_handlers()
    await plugin_registry.start_all_plugins()

    # Configure operator settings
    settings.batching.worker_limit = config.worker_limit
    settings.posting.enabled = config.posting_enabled
    settings.watching.server_timeout = config.server_timeout

    # Log startup summary
    for metadata in plugin_registry.get_plugins_metadata():
        logger.info(f"Controller {metadata['name']} v{metadata['version']}: {metadata['description']}")
    logger.info(f"Controller name: {config.controller_name}")
    logger.info(f"Worker limit: {config.worker_limit}")
    logger.info(f"Admission webhook enabled: {webhook_enabled}")
    logger.info("Gateway Operator startup complete")


@kopf.on.cleanup()
async def cleanup_fn(**kwargs):
    """Stop the controller workers."""
    logger.info("Gateway Operator is shutting down...")

    global plugin_registry
    if plugin_registry:
        await plugin_registry.stop_all_plugins()

    logger.info("Gateway Operator shutdown complete")


@kopf.on.probe(id="plugins")
def plugins_health(**kwargs):
    if plugin_registry is None:
        return {}
    return plugin_registry.get_plugins_health_status()


def main():
    config = OperatorConfig.from_env()
    try:
        kopf.run(
            clusterwide=True,
            standalone=not config.leader_election,
            peering_name=config.peering_name,
            priority=config.peering_priority,
            liveness_endpoint=config.liveness_endpoint,
        )
    except KeyboardInterrupt:
        logger.info("Operator stopped by user")
    except Exception as e:
        logger.error(f"Operator failed: {e}")
        raise


if __name__ == "__main__":
    main()
