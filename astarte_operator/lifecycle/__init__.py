from .sequencer import build_reconcile_plan, reconcile_resources
from .health import compute_cluster_health, health_from_count
from .status import (
    compute_new_status,
    ensure_coherency,
    ensure_computed_status,
    mark_failed,
    update_status,
)
from .upgrade import check_and_perform_upgrade, may_upgrade, needs_upgrade
from .migrate import migrate_if_needed
from .finalizer import finalize

__all__ = [
    "build_reconcile_plan",
    "reconcile_resources",
    "compute_cluster_health",
    "health_from_count",
    "compute_new_status",
    "ensure_coherency",
    "ensure_computed_status",
    "mark_failed",
    "update_status",
    "check_and_perform_upgrade",
    "may_upgrade",
    "needs_upgrade",
    "migrate_if_needed",
    "finalize",
]
