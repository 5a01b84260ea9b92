from enum import Enum
from typing import Optional
from astarte_operator.types.base import BaseModel


class ReconciliationPhase(Enum):
    UNKNOWN = ""
    RECONCILING = "Reconciling"
    UPGRADING = "Upgrading"
    RECONCILED = "Reconciled"
    FAILED = "Failed"
    MANUAL_MAINTENANCE = "Disabled, in Manual Maintenance Mode"


class ClusterHealth(Enum):
    GREEN = "green"
    YELLOW = "yellow"
    RED = "red"


class EventReason(Enum):
    """Machine-readable reason codes attached to lifecycle events."""

    INCONSISTENT_VERSION = "ErrInconsistentVersion"
    UNSUPPORTED_VERSION = "ErrUnsupportedVersion"
    MIGRATION = "Migration"
    RECONCILIATION_FAILED = "ErrReconcile"
    CRITICAL_ERROR = "ErrCritical"
    STATUS = "Status"
    UPGRADE = "Upgrade"
    UPGRADE_ERROR = "ErrUpgrade"
    UPGRADE_BLOCKED = "UpgradeBlocked"


class AstarteStatus(BaseModel):
    """Observed state of an Astarte instance, as persisted in `.status`."""

    phase: ReconciliationPhase
    astarte_version: Optional[str]
    operator_version: Optional[str]
    health: Optional[ClusterHealth]
    base_api_url: Optional[str]
    broker_url: Optional[str]
