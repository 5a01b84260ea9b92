"""Persistence of the observed state of an Astarte instance.

Every status write is a read-modify-write of `.status`: the instance is read
again, the caller's mutation is applied to the freshly loaded status and the
result is written back. A stale-write conflict (409) restarts the cycle after a
growing delay, a bounded number of times. Keys in `.status` this operator does
not own are carried over untouched.
"""
import asyncio
from typing import Callable, Dict, Any
from kubernetes_asyncio.client import ApiException
import astarte_operator
from astarte_operator.lifecycle.health import compute_cluster_health
from astarte_operator.resources.astarte import Astarte
from astarte_operator.resources.components.vernemq import broker_url
from astarte_operator.types.models import (
    AstarteStatus,
    ClusterHealth,
    EventReason,
    ReconciliationPhase,
)
from astarte_operator.types.schemas import AstarteStatusSchema
from astarte_operator.utils.errors import conflict_error
from astarte_operator.utils.helpers import without_nulls

StatusMutation = Callable[[AstarteStatus], None]


def dump_status(status: AstarteStatus) -> Dict[str, Any]:
    """camelCase representation of the keys this operator owns."""
    return without_nulls(AstarteStatusSchema().dump(status))


async def update_status(astarte: Astarte, mutate: StatusMutation) -> AstarteStatus:
    """Apply `mutate` to the latest status and persist it, retrying on conflicts.

    Raises the last ApiException when every attempt hit a conflict, and any
    other error as soon as it happens.
    """
    conf = astarte.conf
    attempts = max(1, conf.status_update_retry_attempts)
    delay = conf.status_update_retry_backoff_seconds
    for attempt in range(1, attempts + 1):
        body = await astarte.fetch_instance()
        current = dict(body.get("status") or {})
        status = AstarteStatusSchema().load(current)
        mutate(status)
        body["status"] = {**current, **dump_status(status)}
        try:
            updated = await astarte.replace_instance_status(body)
        except ApiException as ex:
            if not conflict_error(ex) or attempt == attempts:
                raise
            astarte.logger.info(
                f"Conflict while updating status (attempt {attempt}/{attempts}), retrying in {delay}s."
            )
            if astarte.sensor:
                astarte.sensor.on_status_conflict(astarte.name, astarte.namespace, attempt)
            await asyncio.sleep(delay)
            delay *= conf.status_update_retry_backoff_factor
            continue
        astarte.load(updated or body)
        if astarte.sensor:
            astarte.sensor.on_status_update(
                astarte.name, astarte.namespace, astarte.status.phase.value
            )
        return astarte.status


def compute_new_status(
    astarte: Astarte, current: AstarteStatus, health: ClusterHealth
) -> AstarteStatus:
    """Status after a successful pass; `current` is not modified."""
    spec = astarte.spec
    status = AstarteStatus(**vars(current))
    status.astarte_version = spec.version
    status.operator_version = astarte_operator.__version__
    status.health = health
    status.base_api_url = f"https://{spec.api.host}"
    status.broker_url = broker_url(spec.vernemq.host, spec.vernemq.port)
    if spec.manual_maintenance_mode:
        status.phase = ReconciliationPhase.MANUAL_MAINTENANCE
    else:
        status.phase = ReconciliationPhase.RECONCILED
    return status


async def ensure_computed_status(astarte: Astarte) -> AstarteStatus:
    """Compute health once and persist the status of a completed pass."""
    previous_health = astarte.status.health
    health = await compute_cluster_health(astarte)

    def mutate(status: AstarteStatus) -> None:
        status.__dict__.update(vars(compute_new_status(astarte, status, health)))

    status = await update_status(astarte, mutate)

    if previous_health is not None and previous_health != health:
        event_type = "Warning" if previous_health == ClusterHealth.GREEN else "Normal"
        astarte.event(
            event_type,
            EventReason.STATUS,
            f"Cluster health changed from {previous_health.value} to {health.value}",
        )
    return status


def is_pristine(status: AstarteStatus) -> bool:
    """True when no pass of this operator ever recorded anything."""
    return status.phase is ReconciliationPhase.UNKNOWN and not status.astarte_version


async def ensure_coherency(astarte: Astarte) -> bool:
    """Bring legacy instances to the current status format.

    Only an instance that was never reconciled (phase Unknown, no version) is
    a migration candidate. Returns True when a migration ran; the caller must
    re-read the instance.
    """
    # migrate persists through update_status
    from astarte_operator.lifecycle.migrate import migrate_if_needed

    if not is_pristine(astarte.status):
        return False

    housekeeping = await astarte.fetch_deployment(
        astarte.apps_v1_api, astarte.housekeeping_deployment_name, astarte.namespace
    )

    if housekeeping is not None:
        astarte.logger.info("Found an instance managed by a previous operator: migrating it.")
        await migrate_if_needed(astarte)
        return True

    astarte.event("Normal", EventReason.STATUS, "Running first resource reconciliation")
    return False


async def mark_failed(astarte: Astarte) -> AstarteStatus:
    def mutate(status: AstarteStatus) -> None:
        status.phase = ReconciliationPhase.FAILED

    return await update_status(astarte, mutate)
