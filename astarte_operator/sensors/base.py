"""Base sensor classes for operator monitoring.

This module defines the base OperatorSensor class that provides lifecycle hooks
for monitoring the reconciliation of Astarte instances. All hooks are no-ops by
default, allowing subclasses to override only the events they care about.

Hooks come in pairs where an operation spans time: `on_X_start()` returns an
optional state dict which is handed back to the matching `on_X_complete()`.
"""

from typing import Dict, List, Optional, Any
import logging

logger = logging.getLogger(__name__)


class OperatorSensor:
    """Base sensor class for Astarte operator monitoring.

    Hooks are grouped in three categories:
    1. Reconciliation passes
    2. Managed object convergence
    3. Cluster lifecycle (health, upgrades and status writes)

    Example:
        class LoggingSensor(OperatorSensor):
            def on_upgrade_blocked(self, instance_name, namespace, from_version, to_version, health):
                logger.warning(f"{instance_name}: upgrade to {to_version} blocked ({health})")
    """

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
        """Called when a reconciliation pass begins.

        Args:
            instance_name: Astarte resource name
            namespace: Kubernetes namespace
            generation: Resource generation number
            trigger_source: What triggered the pass (create, resume, update, timer)

        Returns:
            Optional state dict passed to on_reconcile_complete
        """
        pass

    def on_reconcile_complete(
        self,
        instance_name: str,
        namespace: str,
        state: Optional[Dict[str, Any]],
        success: bool,
        error: Optional[Exception] = None,
    ) -> None:
        """Called when a reconciliation pass completes.

        Args:
            instance_name: Astarte resource name
            namespace: Kubernetes namespace
            state: State dict returned from on_reconcile_start
            success: Whether the pass succeeded
            error: Exception if the pass failed
        """
        pass

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
        """Called before a managed object is created or patched.

        Args:
            instance_name: Astarte resource name
            component_name: Subsystem owning the object (rabbitmq, housekeeping, ...)
            resource_name: Actual K8s object name
            namespace: Kubernetes namespace
            resource_type: Type of object (stateful_set, service, config_map, ...)

        Returns:
            Optional state dict passed to on_resource_sync_complete
        """
        pass

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
        """Called after a managed object was created or patched.

        Args:
            operation: create or patch
            success: Whether the API call succeeded
            error: Exception if the call failed
        """
        pass

    def on_resource_drift_detected(
        self,
        instance_name: str,
        component_name: str,
        resource_name: str,
        namespace: str,
        resource_type: str,
        drift_fields: List[str],
    ) -> None:
        """Called when a live object no longer matches its desired state."""
        pass

    # =============================================================================
    # Cluster Lifecycle Hooks
    # =============================================================================

    def on_health_computed(
        self,
        instance_name: str,
        namespace: str,
        health: str,
        not_ready: int,
    ) -> None:
        """Called after the health of an instance was computed.

        Args:
            health: green, yellow or red
            not_ready: Number of subsystems found not ready
        """
        pass

    def on_upgrade_blocked(
        self,
        instance_name: str,
        namespace: str,
        from_version: str,
        to_version: str,
        health: str,
    ) -> None:
        """Called when an upgrade is refused because the cluster is unhealthy."""
        pass

    def on_status_conflict(
        self,
        instance_name: str,
        namespace: str,
        attempt: int,
    ) -> None:
        """Called when a status write hit a stale-write conflict and will be retried."""
        pass

    def on_status_update(
        self,
        instance_name: str,
        namespace: str,
        phase: str,
    ) -> None:
        """Called after the status of an instance was persisted."""
        pass

    def asdict(self) -> Dict[str, Any]:
        """Return sensor state as dictionary (for debugging/introspection)."""
        return {}
