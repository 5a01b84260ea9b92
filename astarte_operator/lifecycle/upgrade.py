"""Gate deciding whether a change of platform version may be rolled out."""
from typing import Optional, Tuple
from astarte_operator.common.models.version import (
    SNAPSHOT_SUFFIX,
    Version,
    normalize_snapshot,
    normalized_version,
)
from astarte_operator.lifecycle.health import compute_cluster_health
from astarte_operator.lifecycle.status import update_status
from astarte_operator.resources.astarte import Astarte
from astarte_operator.types.models import (
    AstarteStatus,
    ClusterHealth,
    EventReason,
    ReconciliationPhase,
)
from astarte_operator.utils.errors import InvalidVersionError


def may_upgrade(
    computed: ClusterHealth, reported: Optional[ClusterHealth]
) -> Tuple[bool, str]:
    """An upgrade is allowed when the cluster is healthy now or was at the last observation.

    The second case covers health degrading because a previous attempt of this
    very upgrade is in flight.
    """
    if computed == ClusterHealth.GREEN:
        return True, "cluster health is green"
    if reported == ClusterHealth.GREEN:
        return True, "last reported cluster health is green"
    reported_value = reported.value if reported else "unknown"
    return (
        False,
        f"cluster health is {computed.value} and last reported health is {reported_value}",
    )


def stored_version(astarte: Astarte) -> Optional[Version]:
    """Platform version recorded in status, None when upgrade checks do not apply."""
    stored = astarte.status.astarte_version
    if not stored:
        return None
    if stored == astarte.conf.snapshot_version:
        astarte.logger.info(
            f"Stored version is {stored}: skipping upgrade checks for development snapshots."
        )
        return None
    try:
        return normalized_version(stored)
    except InvalidVersionError:
        astarte.event(
            "Warning",
            EventReason.UNSUPPORTED_VERSION,
            f"Stored version {stored} cannot be parsed: skipping upgrade checks",
        )
        return None


def needs_upgrade(astarte: Astarte) -> bool:
    current = stored_version(astarte)
    if current is None:
        return False
    return current != astarte.requested_version()


async def check_and_perform_upgrade(astarte: Astarte) -> bool:
    """Return True when the upgrade may go on, False when the pass must stop here."""
    stored = astarte.status.astarte_version
    target = astarte.spec.version
    health = await compute_cluster_health(astarte)
    allowed, reason = may_upgrade(health, astarte.status.health)
    if not allowed:
        message = f"Cannot upgrade Astarte from {stored} to {target}: {reason}"
        astarte.logger.error(message)
        astarte.event("Warning", EventReason.CRITICAL_ERROR, message)
        astarte.event(
            "Warning",
            EventReason.UPGRADE_BLOCKED,
            "Revert the requested version or wait for the cluster to become healthy",
        )
        if astarte.sensor:
            astarte.sensor.on_upgrade_blocked(
                astarte.name, astarte.namespace, stored, target, health.value
            )
        return False

    if SNAPSHOT_SUFFIX in stored:
        base = normalize_snapshot(stored)
        astarte.event(
            "Normal",
            EventReason.UPGRADE,
            f"Stored version {stored} is a snapshot: assuming {base} as the base release",
        )
        stored = base

    astarte.logger.info(f"Upgrading Astarte from {stored} to {target} ({reason}).")
    astarte.event("Normal", EventReason.UPGRADE, f"Upgrading Astarte from {stored} to {target}")

    def mutate(status: AstarteStatus) -> None:
        status.phase = ReconciliationPhase.UPGRADING

    try:
        await update_status(astarte, mutate)
    except Exception as ex:
        astarte.event(
            "Warning", EventReason.UPGRADE_ERROR, f"Could not record the upgrade: {ex}"
        )
        raise
    return True
