import asyncio
import kopf
from logging import Logger
from collections import defaultdict
from typing import Any, Dict, Mapping
from kubernetes_asyncio.client import ApiException
from astarte_operator.resources import Astarte
from astarte_operator.lifecycle import (
    ensure_coherency,
    ensure_computed_status,
    check_and_perform_upgrade,
    finalize,
    mark_failed,
    needs_upgrade,
    reconcile_resources,
    update_status,
)
from astarte_operator.types.models import EventReason, ReconciliationPhase
from astarte_operator.utils.errors import InvalidVersionError, convert_api_exception

ASTARTE_KIND = Astarte.KIND
RETRY_DELAY = 30

# Phases a pass leaves by recording that reconciliation is in progress
_RESTARTING_PHASES = (
    ReconciliationPhase.UNKNOWN,
    ReconciliationPhase.FAILED,
    ReconciliationPhase.MANUAL_MAINTENANCE,
)

# Locks serializing the passes of each instance
reconciliation_locks: Dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)


def get_sensor():
    """Get sensor from Astarte class."""
    return getattr(Astarte, "sensor", None)


def lock_key(namespace: str, name: str) -> str:
    return f"{namespace}/{name}"


async def ensure_version(astarte: Astarte) -> None:
    """Stop the pass when the requested version cannot be parsed."""
    try:
        astarte.requested_version()
    except InvalidVersionError as ex:
        astarte.event(
            "Warning",
            EventReason.INCONSISTENT_VERSION,
            f"Requested version {astarte.spec.version!r} is not valid: {ex}",
        )
        await mark_failed(astarte)
        raise kopf.TemporaryError(
            f"Invalid requested version {astarte.spec.version!r}",
            delay=astarte.conf.inconsistent_version_retry_delay_seconds,
        ) from ex


def report_failure(astarte: Astarte, message: str) -> None:
    if astarte is not None:
        astarte.event("Warning", EventReason.RECONCILIATION_FAILED, message)


async def mark_reconciling(astarte: Astarte) -> None:
    def mutate(status):
        status.phase = ReconciliationPhase.RECONCILING

    await update_status(astarte, mutate)


async def reconcile_pass(astarte: Astarte) -> None:
    """One pass: validate, migrate, gate upgrades, converge, persist status."""
    if astarte.spec.manual_maintenance_mode:
        astarte.logger.info("Manual maintenance mode is on: only refreshing status.")
        await ensure_computed_status(astarte)
        return

    await ensure_version(astarte)

    if await ensure_coherency(astarte):
        await astarte.refresh()

    if needs_upgrade(astarte):
        if not await check_and_perform_upgrade(astarte):
            return
    elif astarte.status.phase in _RESTARTING_PHASES:
        await mark_reconciling(astarte)

    await reconcile_resources(astarte)
    await ensure_computed_status(astarte)


async def reconcile(
    body: Mapping[str, Any],
    name: str,
    namespace: str,
    meta: Mapping[str, Any],
    logger: Logger,
    trigger_source: str,
) -> None:
    """Run a pass under the instance lock, turning failures into kopf retries."""
    sensor = get_sensor()
    sensor_state = None
    if sensor:
        sensor_state = sensor.on_reconcile_start(
            name, namespace, meta.get("generation", 0), trigger_source
        )

    success = True
    error = None
    async with reconciliation_locks[lock_key(namespace, name)]:
        astarte = None
        try:
            astarte = Astarte.from_body(body, logger=logger)
            logger.debug(f"Reconciling {ASTARTE_KIND}/{name} in {namespace} namespace.")
            await reconcile_pass(astarte)
            logger.debug(f"Reconciled {ASTARTE_KIND}/{name} in {namespace} namespace.")
        except (kopf.TemporaryError, kopf.PermanentError) as ex:
            success = False
            error = ex
            raise
        except ApiException as ex:
            success = False
            error = ex
            logger.error(f"Kubernetes API error during reconciliation: {ex.reason}")
            report_failure(astarte, str(ex.reason))
            convert_api_exception(ex, permanent=False)
        except Exception as ex:
            success = False
            error = ex
            logger.exception(f"Reconciliation failed: {ex}")
            report_failure(astarte, str(ex))
            raise kopf.TemporaryError(str(ex), delay=RETRY_DELAY) from ex
        finally:
            if sensor:
                sensor.on_reconcile_complete(name, namespace, sensor_state, success, error)


@kopf.on.resume(kind=ASTARTE_KIND)
@kopf.on.create(kind=ASTARTE_KIND)
async def on_create(body, name, namespace, meta, reason, logger: Logger, **kwargs):
    """Reconcile a new or resumed Astarte instance."""
    await reconcile(body, name, namespace, meta, logger, trigger_source=str(reason))


@kopf.on.update(kind=ASTARTE_KIND, field="spec")
async def on_spec_update(body, name, namespace, meta, logger: Logger, **kwargs):
    await reconcile(body, name, namespace, meta, logger, trigger_source="update")


@kopf.timer(ASTARTE_KIND, interval=Astarte.conf.reconcile_interval_seconds, initial_delay=5.0)
async def periodic_reconciliation(body, name, namespace, meta, logger: Logger, **kwargs):
    if (meta or {}).get("deletionTimestamp"):
        return
    await reconcile(body, name, namespace, meta, logger, trigger_source="timer")


@kopf.on.delete(kind=ASTARTE_KIND)
async def on_delete(body, name, namespace, logger: Logger, **kwargs):
    """Remove the objects owner references leave behind."""
    async with reconciliation_locks[lock_key(namespace, name)]:
        astarte = Astarte.from_body(body, logger=logger)
        leftovers = await finalize(astarte)
    reconciliation_locks.pop(lock_key(namespace, name), None)
    if leftovers:
        logger.warning(f"Finalized {ASTARTE_KIND}/{name} leaving {len(leftovers)} objects behind.")
    else:
        logger.info(f"Finalized {ASTARTE_KIND}/{name}.")
