from typing import Optional
from kubernetes_asyncio.client import ApiException
from astarte_operator.common.models.labels import Labels
from astarte_operator.resources.astarte import Astarte
from astarte_operator.types.models import ClusterHealth
from astarte_operator.utils.errors import InvalidVersionError

#: Penalty applied when the microservice Deployments cannot be listed
UNLISTABLE_DEPLOYMENTS_PENALTY = 5


def health_from_count(not_ready: int) -> ClusterHealth:
    if not_ready <= 0:
        return ClusterHealth.GREEN
    if not_ready == 1:
        return ClusterHealth.YELLOW
    return ClusterHealth.RED


def _is_unready(workload) -> bool:
    if workload is None:
        return True
    return not (workload.status and workload.status.ready_replicas)


async def count_not_ready_deployments(astarte: Astarte) -> int:
    """Microservice Deployments that should have replicas but have none ready."""
    try:
        deployments = await astarte.list_deployments(
            astarte.apps_v1_api,
            astarte.namespace,
            {
                Labels.COMPONENT_LABEL: Labels.ASTARTE_COMPONENT,
                Labels.KUBERNETES_INSTANCE_LABEL: astarte.name,
            },
        )
    except ApiException as ex:
        astarte.logger.warning(f"Could not list Astarte deployments: {ex.reason}")
        return UNLISTABLE_DEPLOYMENTS_PENALTY

    not_ready = 0
    for deployment in deployments.items or []:
        desired = deployment.spec.replicas if deployment.spec else None
        if desired and _is_unready(deployment):
            not_ready += 1
    return not_ready


async def _fetch_workload(astarte: Astarte, kind: str, name: str) -> Optional[object]:
    fetch = astarte.fetch_stateful_set if kind == "stateful_set" else astarte.fetch_deployment
    try:
        return await fetch(astarte.apps_v1_api, name, astarte.namespace)
    except ApiException:
        return None


async def _cfssl_kind(astarte: Astarte, name: str) -> str:
    try:
        return "stateful_set" if astarte.is_version_before("1.0.0") else "deployment"
    except InvalidVersionError:
        # Maintenance passes run with any declared version: score what exists
        if await _fetch_workload(astarte, "deployment", name) is not None:
            return "deployment"
        return "stateful_set"


async def count_not_ready_dependencies(astarte: Astarte) -> int:
    """Deployed infrastructure subsystems that are missing or have no ready replica."""
    spec = astarte.spec
    workloads = []
    for subsystem in ("vernemq", "rabbitmq", "cassandra"):
        if getattr(spec, subsystem).deploy:
            workloads.append(("stateful_set", astarte.resource_name(subsystem)))
    if spec.cfssl.deploy:
        name = astarte.resource_name("cfssl")
        workloads.append((await _cfssl_kind(astarte, name), name))

    not_ready = 0
    for kind, name in workloads:
        if _is_unready(await _fetch_workload(astarte, kind, name)):
            not_ready += 1
    return not_ready


async def compute_cluster_health(astarte: Astarte) -> ClusterHealth:
    """Health of the instance, from the readiness of its workloads.

    Each Astarte microservice Deployment with no ready replica counts once, and
    so does each deployed dependency (VerneMQ, RabbitMQ, Cassandra, CFSSL) that
    is missing or not ready. Nothing is written.
    """
    not_ready = await count_not_ready_deployments(astarte)
    not_ready += await count_not_ready_dependencies(astarte)
    health = health_from_count(not_ready)
    if astarte.sensor:
        astarte.sensor.on_health_computed(
            astarte.name, astarte.namespace, health.value, not_ready
        )
    return health
