import kopf
import logging
import astarte_operator.handlers.astarte as astarte_handlers
from astarte_operator.types.settings import Settings
from astarte_operator.resources.astarte import Astarte
from astarte_operator.resources.base import BaseResource
from astarte_operator.sensors import init_metrics_server, SensorDelegate, PrometheusMonitor
from kubernetes_asyncio import config
from kubernetes_asyncio.client.api_client import ApiClient


# Configure Kopf settings
@kopf.on.startup()
async def setup(
    settings: kopf.OperatorSettings, memo: kopf.Memo, logger: logging.Logger, **kwargs
):
    # Load Kubernetes config - try in-cluster first (for production), then local kubeconfig (for dev)
    try:
        config.load_incluster_config()
        logger.info("Loaded in-cluster Kubernetes configuration")
    except config.ConfigException:
        logger.info("In-cluster config not found, trying local kubeconfig")
        try:
            await config.load_kube_config()
            logger.info("Loaded local Kubernetes configuration")
        except config.ConfigException as e:
            logger.error(f"Failed to load Kubernetes configuration: {e}")
            raise

    memo.conf = Settings()
    Astarte.conf = memo.conf

    # One ApiClient shared by every instance to prevent connection leaks
    shared_client = ApiClient()
    Astarte.shared_api_client = shared_client
    logger.info("Shared Kubernetes API client initialized")

    sensor_delegate = SensorDelegate()
    sensor_delegate.add(PrometheusMonitor())
    memo.sensor = sensor_delegate
    Astarte.sensor = sensor_delegate
    BaseResource.sensor = sensor_delegate
    logger.info("Sensor infrastructure initialized with PrometheusMonitor")

    try:
        init_metrics_server()
    except RuntimeError as e:
        # The operator works without metrics
        logger.error(f"Failed to start metrics server: {e}")
        logger.warning("Continuing without metrics server")

    # Post events of level WARNING and above to the Kubernetes API
    settings.posting.enabled = True
    settings.posting.level = logging.WARNING


@kopf.on.cleanup()
async def cleanup(logger: logging.Logger, **kwargs):
    """Cleanup handler for operator shutdown."""
    logger.info("Shutting down operator...")

    if Astarte.shared_api_client is not None:
        await Astarte.shared_api_client.close()
        Astarte.shared_api_client = None
        logger.info("Shared API client closed")

    astarte_handlers.reconciliation_locks.clear()
    logger.info("Operator shutdown complete")


__all__ = ["astarte_handlers"]
