"""Adoption of instances created by a previous generation of the operator.

Such instances carry no `astarteVersion` in their status, may store resource
allocations as bare numbers, and own StatefulSets whose selectors can no longer
be patched. Migration normalizes the spec, releases those StatefulSets without
deleting their pods, and records the running version read from the
housekeeping image.
"""
import copy
from typing import Any, Dict, List
from benedict import benedict
from kubernetes_asyncio.client import V1DeleteOptions
import astarte_operator
from astarte_operator.lifecycle.status import is_pristine, update_status
from astarte_operator.resources.astarte import Astarte
from astarte_operator.types.models import (
    AstarteStatus,
    ClusterHealth,
    EventReason,
    ReconciliationPhase,
)
from astarte_operator.utils.errors import MigrationError
from astarte_operator.utils.quantity import normalize_resource_requirements

#: Keypaths of every resource allocation found in a spec
RESOURCE_KEYPATHS = (
    "cfssl.resources",
    "rabbitmq.resources",
    "cassandra.resources",
    "vernemq.resources",
    "components.resources",
    "components.appengineApi.resources",
    "components.dataUpdaterPlant.resources",
    "components.housekeeping.backend.resources",
    "components.housekeeping.api.resources",
    "components.pairing.backend.resources",
    "components.pairing.api.resources",
    "components.realmManagement.backend.resources",
    "components.realmManagement.api.resources",
    "components.triggerEngine.resources",
    "components.dashboard.resources",
)

#: StatefulSets released with an orphan delete, by name suffix
LEGACY_STATEFUL_SETS = ("rabbitmq", "cfssl", "cassandra", "vernemq")


def normalize_spec_resources(spec: Dict[str, Any]) -> Dict[str, Any]:
    """Copy of `spec` with every cpu/memory allocation turned into a quantity string.

    Raises QuantityError on the first value that cannot be normalized.
    """
    # Labels and annotations may contain dots: address values by keylist only
    document = benedict(copy.deepcopy(spec), keypath_separator=None)
    for keypath in RESOURCE_KEYPATHS:
        keylist = keypath.split(".")
        normalized = normalize_resource_requirements(document.get(keylist))
        if normalized is not None:
            document[keylist] = normalized
    return document.dict()


def version_from_image(image: str) -> str:
    """Tag of an image reference; the registry part may carry a port."""
    name, _, tag = (image or "").rpartition(":")
    if not name or not tag or "/" in tag or "@" in name:
        raise MigrationError(f"Cannot infer the Astarte version from image {image!r}")
    return tag


async def infer_platform_version(astarte: Astarte) -> str:
    """Tag of the image run by the housekeeping Deployment."""
    deployment = await astarte.fetch_deployment(
        astarte.apps_v1_api, astarte.housekeeping_deployment_name, astarte.namespace
    )
    if deployment is None:
        raise MigrationError(f"Deployment {astarte.housekeeping_deployment_name} not found")
    image = deployment.spec.template.spec.containers[0].image
    try:
        return version_from_image(image)
    except MigrationError as ex:
        astarte.event("Warning", EventReason.CRITICAL_ERROR, str(ex))
        raise


async def orphan_legacy_stateful_sets(astarte: Astarte) -> List[str]:
    names = [astarte.resource_name(suffix) for suffix in LEGACY_STATEFUL_SETS]
    for name in names:
        astarte.logger.info(f"Releasing StatefulSet {name} without deleting its pods.")
        await astarte.delete_stateful_set(
            astarte.apps_v1_api,
            name,
            astarte.namespace,
            V1DeleteOptions(propagation_policy="Orphan"),
        )
    return names


async def migrate_if_needed(astarte: Astarte) -> bool:
    """Migrate a legacy instance; returns False when there is nothing to do.

    Everything that can be refused (quantities, the running version) is
    computed before the first write.
    """
    if not is_pristine(astarte.status):
        return False

    body = await astarte.fetch_instance()
    spec = normalize_spec_resources(body.get("spec") or {})
    version = await infer_platform_version(astarte)

    body["spec"] = spec
    await astarte.replace_instance(body)
    await orphan_legacy_stateful_sets(astarte)

    api_host = astarte.spec.api.host
    broker_host = astarte.spec.vernemq.host

    def mutate(status: AstarteStatus) -> None:
        status.phase = ReconciliationPhase.RECONCILING
        status.operator_version = astarte_operator.__version__
        status.health = ClusterHealth.RED
        status.base_api_url = api_host
        status.broker_url = broker_host
        status.astarte_version = version

    await update_status(astarte, mutate)
    astarte.event(
        "Normal",
        EventReason.MIGRATION,
        f"Migrated Astarte {version} from a previous version of the operator",
    )
    return True
