"""Astarte Operator Sensor Framework.

Non-invasive instrumentation of operator lifecycle events through hooks:

- OperatorSensor: Base class defining lifecycle hooks
- SensorDelegate: Fan-out of events to multiple sensor backends
- PrometheusMonitor: Prometheus metrics exporter

Usage:
    from astarte_operator.sensors import SensorDelegate, PrometheusMonitor

    delegate = SensorDelegate()
    delegate.add(PrometheusMonitor())
"""

from astarte_operator.sensors.base import OperatorSensor
from astarte_operator.sensors.delegate import SensorDelegate
from astarte_operator.sensors.prometheus import PrometheusMonitor
from astarte_operator.sensors.server import init_metrics_server

__all__ = [
    'OperatorSensor',
    'SensorDelegate',
    'PrometheusMonitor',
    'init_metrics_server',
]
