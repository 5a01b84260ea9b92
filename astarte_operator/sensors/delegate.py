"""Sensor delegation for fan-out pattern.

SensorDelegate routes sensor events to multiple monitoring backends. Each
backend receives the same events and keeps its own state; a failing backend is
logged and never breaks a reconciliation pass.
"""

from typing import Set, Dict, List, Optional, Any
import logging

from astarte_operator.sensors.base import OperatorSensor

logger = logging.getLogger(__name__)


class SensorDelegate(OperatorSensor):
    """Delegate sensor that fans out events to multiple backends.

    Example:
        delegate = SensorDelegate()
        delegate.add(PrometheusMonitor())

        state = delegate.on_reconcile_start("astarte", "astarte-ns", 5, "timer")
        delegate.on_reconcile_complete("astarte", "astarte-ns", state, True)
    """

    def __init__(self) -> None:
        self._sensors: Set[OperatorSensor] = set()

    def add(self, sensor: OperatorSensor) -> None:
        logger.info(f"Adding sensor: {sensor.__class__.__name__}")
        self._sensors.add(sensor)

    def clear(self) -> None:
        logger.info(f"Clearing {len(self._sensors)} sensors")
        self._sensors.clear()

    def _each(self, hook: str, *args: Any) -> None:
        for sensor in self._sensors:
            try:
                getattr(sensor, hook)(*args)
            except Exception as e:
                logger.error(
                    f"Error in {sensor.__class__.__name__}.{hook}: {e}",
                    exc_info=True,
                )

    def _start(self, hook: str, *args: Any) -> Optional[Dict[OperatorSensor, Any]]:
        if not self._sensors:
            return None
        states = {}
        for sensor in self._sensors:
            try:
                state = getattr(sensor, hook)(*args)
                if state is not None:
                    states[sensor] = state
            except Exception as e:
                logger.error(
                    f"Error in {sensor.__class__.__name__}.{hook}: {e}",
                    exc_info=True,
                )
        return states if states else None

    # =============================================================================
    # Reconciliation Lifecycle Hooks
    # =============================================================================

    def on_reconcile_start(
        self,
        instance_name: str,
        namespace: str,
        generation: int,
        trigger_source: str,
    ) -> Optional[Dict[OperatorSensor, Any]]:
        """Delegate reconcile_start to all sensors.

        Returns:
            Dict mapping each sensor to its returned state, or None if no sensors
            returned any state
        """
        return self._start(
            "on_reconcile_start", instance_name, namespace, generation, trigger_source
        )

    def on_reconcile_complete(
        self,
        instance_name: str,
        namespace: str,
        state: Optional[Dict[OperatorSensor, Any]],
        success: bool,
        error: Optional[Exception] = None,
    ) -> None:
        """Delegate reconcile_complete to all sensors with their specific state."""
        for sensor in self._sensors:
            try:
                sensor_state = state.get(sensor) if state else None
                sensor.on_reconcile_complete(
                    instance_name, namespace, sensor_state, success, error
                )
            except Exception as e:
                logger.error(
                    f"Error in {sensor.__class__.__name__}.on_reconcile_complete: {e}",
                    exc_info=True,
                )

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
    ) -> Optional[Dict[OperatorSensor, Any]]:
        return self._start(
            "on_resource_sync_start",
            instance_name,
            component_name,
            resource_name,
            namespace,
            resource_type,
        )

    def on_resource_sync_complete(
        self,
        instance_name: str,
        component_name: str,
        resource_name: str,
        namespace: str,
        resource_type: str,
        state: Optional[Dict[OperatorSensor, Any]],
        operation: str,
        success: bool,
        error: Optional[Exception] = None,
    ) -> None:
        for sensor in self._sensors:
            try:
                sensor_state = state.get(sensor) if state else None
                sensor.on_resource_sync_complete(
                    instance_name,
                    component_name,
                    resource_name,
                    namespace,
                    resource_type,
                    sensor_state,
                    operation,
                    success,
                    error,
                )
            except Exception as e:
                logger.error(
                    f"Error in {sensor.__class__.__name__}.on_resource_sync_complete: {e}",
                    exc_info=True,
                )

    def on_resource_drift_detected(
        self,
        instance_name: str,
        component_name: str,
        resource_name: str,
        namespace: str,
        resource_type: str,
        drift_fields: List[str],
    ) -> None:
        self._each(
            "on_resource_drift_detected",
            instance_name,
            component_name,
            resource_name,
            namespace,
            resource_type,
            drift_fields,
        )

    # =============================================================================
    # Cluster Lifecycle Hooks
    # =============================================================================

    def on_health_computed(
        self, instance_name: str, namespace: str, health: str, not_ready: int
    ) -> None:
        self._each("on_health_computed", instance_name, namespace, health, not_ready)

    def on_upgrade_blocked(
        self,
        instance_name: str,
        namespace: str,
        from_version: str,
        to_version: str,
        health: str,
    ) -> None:
        self._each(
            "on_upgrade_blocked", instance_name, namespace, from_version, to_version, health
        )

    def on_status_conflict(self, instance_name: str, namespace: str, attempt: int) -> None:
        self._each("on_status_conflict", instance_name, namespace, attempt)

    def on_status_update(self, instance_name: str, namespace: str, phase: str) -> None:
        self._each("on_status_update", instance_name, namespace, phase)

    def asdict(self) -> Dict[str, Any]:
        return {
            sensor.__class__.__name__: sensor.asdict() for sensor in self._sensors
        }
