"""Prometheus monitoring backend for the Astarte operator.

PrometheusMonitor collects operator lifecycle events and exposes them as
Prometheus metrics:

1. Reconciliation passes - duration, throughput and errors
2. Kubernetes object convergence - operation counts, latency and drift
3. Cluster lifecycle - health, blocked upgrades and status write conflicts

All metrics are labelled with the instance name and namespace.
"""

from typing import Dict, List, Optional, Any
import time
import logging

from prometheus_client import Counter, Histogram, Gauge

from astarte_operator.sensors.base import OperatorSensor

logger = logging.getLogger(__name__)

#: Numeric value of each health level exported by the health gauge
HEALTH_LEVELS = {"green": 0, "yellow": 1, "red": 2}


class PrometheusMonitor(OperatorSensor):
    """Prometheus metrics monitor for the Astarte operator.

    Metrics are organized by prefix:
    - astarteop_reconcile_* - Reconciliation pass metrics
    - astarteop_resource_* - Kubernetes object convergence metrics
    - astarteop_cluster_* / astarteop_upgrade_* / astarteop_status_* - lifecycle metrics
    """

    def __init__(self):
        super().__init__()

        # =============================================================================
        # Reconciliation Loop Metrics
        # =============================================================================

        self.reconcile_duration = Histogram(
            'astarteop_reconcile_duration_seconds',
            'Time spent in a reconciliation pass',
            labelnames=['instance_name', 'namespace', 'trigger_source', 'result'],
            buckets=[0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0],
        )

        self.reconcile_total = Counter(
            'astarteop_reconcile_total',
            'Total number of reconciliation passes',
            labelnames=['instance_name', 'namespace', 'trigger_source', 'result'],
        )

        self.reconcile_errors = Counter(
            'astarteop_reconcile_errors_total',
            'Total number of failed reconciliation passes',
            labelnames=['instance_name', 'namespace', 'error_type'],
        )

        # =============================================================================
        # Kubernetes Resource Sync Metrics
        # =============================================================================

        self.resource_sync_duration = Histogram(
            'astarteop_resource_sync_duration_seconds',
            'Time spent converging Kubernetes objects',
            labelnames=['instance_name', 'component_name', 'namespace', 'resource_type', 'operation', 'result'],
            buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0],
        )

        self.resource_sync_total = Counter(
            'astarteop_resource_sync_total',
            'Total number of object create/patch operations',
            labelnames=['instance_name', 'component_name', 'namespace', 'resource_type', 'operation', 'result'],
        )

        self.resource_sync_errors = Counter(
            'astarteop_resource_sync_errors_total',
            'Total number of failed object operations',
            labelnames=['instance_name', 'component_name', 'namespace', 'resource_type', 'error_type'],
        )

        self.resource_drift_detected = Counter(
            'astarteop_resource_drift_detected_total',
            'Total number of drifted objects',
            labelnames=['instance_name', 'component_name', 'namespace', 'resource_type', 'drift_field'],
        )

        # =============================================================================
        # Cluster Lifecycle Metrics
        # =============================================================================

        self.cluster_health = Gauge(
            'astarteop_cluster_health',
            'Last computed health of an instance (0 green, 1 yellow, 2 red)',
            labelnames=['instance_name', 'namespace'],
        )

        self.cluster_not_ready_components = Gauge(
            'astarteop_cluster_not_ready_components',
            'Number of subsystems found not ready by the last health computation',
            labelnames=['instance_name', 'namespace'],
        )

        self.upgrade_blocked_total = Counter(
            'astarteop_upgrade_blocked_total',
            'Total number of upgrades refused because the cluster was unhealthy',
            labelnames=['instance_name', 'namespace', 'to_version'],
        )

        self.status_conflicts_total = Counter(
            'astarteop_status_conflicts_total',
            'Total number of status writes retried after a conflict',
            labelnames=['instance_name', 'namespace'],
        )

        self.status_updates = Counter(
            'astarteop_status_updates_total',
            'Total number of status writes',
            labelnames=['instance_name', 'namespace', 'phase'],
        )

        logger.info("PrometheusMonitor initialized with all metrics")

    # =============================================================================
    # Reconciliation Lifecycle Hooks
    # =============================================================================

    def on_reconcile_start(
        self,
        instance_name: str,
        namespace: str,
        generation: int,
        trigger_source: str,
    ) -> Optional[Dict[str, Any]]:
        """Record reconciliation start time."""
        return {
            'start_time': time.time(),
            'trigger_source': trigger_source,
        }

    def on_reconcile_complete(
        self,
        instance_name: str,
        namespace: str,
        state: Optional[Dict[str, Any]],
        success: bool,
        error: Optional[Exception] = None,
    ) -> None:
        """Record reconciliation duration and result."""
        if state:
            duration = time.time() - state['start_time']
            trigger_source = state['trigger_source']
            result = 'success' if success else 'failure'

            self.reconcile_duration.labels(
                instance_name=instance_name,
                namespace=namespace,
                trigger_source=trigger_source,
                result=result,
            ).observe(duration)

            self.reconcile_total.labels(
                instance_name=instance_name,
                namespace=namespace,
                trigger_source=trigger_source,
                result=result,
            ).inc()

        if error:
            self.reconcile_errors.labels(
                instance_name=instance_name,
                namespace=namespace,
                error_type=error.__class__.__name__,
            ).inc()

    # =============================================================================
    # Resource Operation Hooks
    # =============================================================================

    def on_resource_sync_start(
        self,
        instance_name: str,
        component_name: str,
        resource_name: str,
        namespace: str,
        resource_type: str,
    ) -> Optional[Dict[str, Any]]:
        """Record resource sync start time."""
        return {'start_time': time.time()}

    def on_resource_sync_complete(
        self,
        instance_name: str,
        component_name: str,
        resource_name: str,
        namespace: str,
        resource_type: str,
        state: Optional[Dict[str, Any]],
        operation: str,
        success: bool,
        error: Optional[Exception] = None,
    ) -> None:
        """Record resource sync duration and result."""
        result = 'success' if success else 'failure'
        if state:
            self.resource_sync_duration.labels(
                instance_name=instance_name,
                component_name=component_name,
                namespace=namespace,
                resource_type=resource_type,
                operation=operation,
                result=result,
            ).observe(time.time() - state['start_time'])

        self.resource_sync_total.labels(
            instance_name=instance_name,
            component_name=component_name,
            namespace=namespace,
            resource_type=resource_type,
            operation=operation,
            result=result,
        ).inc()

        if error:
            self.resource_sync_errors.labels(
                instance_name=instance_name,
                component_name=component_name,
                namespace=namespace,
                resource_type=resource_type,
                error_type=error.__class__.__name__,
            ).inc()

    def on_resource_drift_detected(
        self,
        instance_name: str,
        component_name: str,
        resource_name: str,
        namespace: str,
        resource_type: str,
        drift_fields: List[str],
    ) -> None:
        """Record drift detection per drifted field."""
        for field in drift_fields:
            self.resource_drift_detected.labels(
                instance_name=instance_name,
                component_name=component_name,
                namespace=namespace,
                resource_type=resource_type,
                drift_field=field,
            ).inc()

    # =============================================================================
    # Cluster Lifecycle Hooks
    # =============================================================================

    def on_health_computed(
        self, instance_name: str, namespace: str, health: str, not_ready: int
    ) -> None:
        self.cluster_health.labels(instance_name=instance_name, namespace=namespace).set(
            HEALTH_LEVELS.get(health, HEALTH_LEVELS["red"])
        )
        self.cluster_not_ready_components.labels(
            instance_name=instance_name, namespace=namespace
        ).set(not_ready)

    def on_upgrade_blocked(
        self,
        instance_name: str,
        namespace: str,
        from_version: str,
        to_version: str,
        health: str,
    ) -> None:
        self.upgrade_blocked_total.labels(
            instance_name=instance_name, namespace=namespace, to_version=to_version
        ).inc()

    def on_status_conflict(self, instance_name: str, namespace: str, attempt: int) -> None:
        self.status_conflicts_total.labels(
            instance_name=instance_name, namespace=namespace
        ).inc()

    def on_status_update(self, instance_name: str, namespace: str, phase: str) -> None:
        self.status_updates.labels(
            instance_name=instance_name, namespace=namespace, phase=phase
        ).inc()
