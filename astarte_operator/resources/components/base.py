import secrets
from logging import Logger
from typing import Any, Dict, List, Optional
from kubernetes_asyncio.client import (
    AppsV1Api,
    BatchV1Api,
    CoreV1Api,
    SchedulingV1Api,
    V1Affinity,
    V1ConfigMap,
    V1Deployment,
    V1EnvVar,
    V1EnvVarSource,
    V1Job,
    V1LabelSelector,
    V1ObjectFieldSelector,
    V1ObjectMeta,
    V1PersistentVolumeClaim,
    V1PersistentVolumeClaimSpec,
    V1PodAffinityTerm,
    V1PriorityClass,
    V1ResourceRequirements,
    V1Secret,
    V1SecretKeySelector,
    V1Service,
    V1StatefulSet,
    V1WeightedPodAffinityTerm,
    V1PodAntiAffinity,
)
from astarte_operator.common.models.labels import Labels
from astarte_operator.resources.astarte import Astarte
from astarte_operator.resources.base import BaseResource, SyncOutcome
from astarte_operator.types.models import PersistentStorage

ASTARTE_HIGH_PRIORITY = "astarte-high-priority-non-preemptive"
ASTARTE_MID_PRIORITY = "astarte-mid-priority-non-preemptive"
ASTARTE_LOW_PRIORITY = "astarte-low-priority-non-preemptive"

PRIORITY_CLASS_NAMES = (ASTARTE_HIGH_PRIORITY, ASTARTE_MID_PRIORITY, ASTARTE_LOW_PRIORITY)

ERLANG_COOKIE_KEY = "erlang-cookie"


class AstarteComponentResource(BaseResource):
    """A subsystem of an Astarte instance, converged by `ensure()`."""

    #: Name used in logs and sync metrics
    COMPONENT_TYPE: str = "component"

    #: PriorityClass used when pod priorities are enabled
    PRIORITY_CLASS: str = ASTARTE_MID_PRIORITY

    astarte: Astarte

    def __init__(self, astarte: Astarte, component_name: str, labels: Labels = None):
        self.astarte = astarte
        super().__init__(
            cluster=astarte.name,
            namespace=astarte.namespace,
            component_name=component_name,
            labels=labels or Labels(astarte.labels.as_dict()),
        )

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}<{self.component_name}>"

    async def ensure(self) -> None:
        raise NotImplementedError()

    @property
    def logger(self) -> Logger:
        return self.astarte.logger

    @property
    def sensor(self):
        return self.astarte.sensor

    @property
    def spec(self):
        return self.astarte.spec

    @property
    def apps_v1_api(self) -> AppsV1Api:
        return self.astarte.apps_v1_api

    @property
    def core_v1_api(self) -> CoreV1Api:
        return self.astarte.core_v1_api

    @property
    def batch_v1_api(self) -> BatchV1Api:
        return self.astarte.batch_v1_api

    @property
    def scheduling_v1_api(self) -> SchedulingV1Api:
        return self.astarte.scheduling_v1_api

    # Convergence of the object kinds managed by components

    async def converge_service(self, service: V1Service) -> SyncOutcome:
        name = service.metadata.name
        return await self.converge(
            "service",
            service,
            fetch=lambda: self.fetch_service(self.core_v1_api, name, self.namespace),
            create=lambda obj: self.create_service(self.core_v1_api, self.namespace, obj),
            patch=lambda obj: self.patch_service(self.core_v1_api, name, self.namespace, obj),
            owner=self.astarte.owner,
        )

    async def converge_deployment(self, deployment: V1Deployment) -> SyncOutcome:
        name = deployment.metadata.name
        return await self.converge(
            "deployment",
            deployment,
            fetch=lambda: self.fetch_deployment(self.apps_v1_api, name, self.namespace),
            create=lambda obj: self.create_deployment(self.apps_v1_api, self.namespace, obj),
            patch=lambda obj: self.patch_deployment(self.apps_v1_api, name, self.namespace, obj),
            owner=self.astarte.owner,
        )

    async def converge_stateful_set(self, stateful_set: V1StatefulSet) -> SyncOutcome:
        name = stateful_set.metadata.name
        return await self.converge(
            "stateful_set",
            stateful_set,
            fetch=lambda: self.fetch_stateful_set(self.apps_v1_api, name, self.namespace),
            create=lambda obj: self.create_stateful_set(self.apps_v1_api, self.namespace, obj),
            patch=lambda obj: self.patch_stateful_set(self.apps_v1_api, name, self.namespace, obj),
            owner=self.astarte.owner,
        )

    async def converge_config_map(self, config_map: V1ConfigMap) -> SyncOutcome:
        name = config_map.metadata.name
        return await self.converge(
            "config_map",
            config_map,
            fetch=lambda: self.fetch_config_map(self.core_v1_api, name, self.namespace),
            create=lambda obj: self.create_config_map(self.core_v1_api, self.namespace, obj),
            patch=lambda obj: self.replace_config_map(self.core_v1_api, name, self.namespace, obj),
            owner=self.astarte.owner,
        )

    async def converge_secret(self, secret: V1Secret, create_only: bool = True) -> SyncOutcome:
        """Generated secrets are create-only; their content must never be regenerated."""
        name = secret.metadata.name
        patch = None
        if not create_only:
            patch = lambda obj: self.replace_secret(self.core_v1_api, name, self.namespace, obj)  # noqa: E731
        return await self.converge(
            "secret",
            secret,
            fetch=lambda: self.fetch_secret(self.core_v1_api, name, self.namespace),
            create=lambda obj: self.create_secret(self.core_v1_api, self.namespace, obj),
            patch=patch,
            owner=self.astarte.owner,
        )

    async def converge_job(self, job: V1Job) -> SyncOutcome:
        name = job.metadata.name
        return await self.converge(
            "job",
            job,
            fetch=lambda: self.fetch_job(self.batch_v1_api, name, self.namespace),
            create=lambda obj: self.create_job(self.batch_v1_api, self.namespace, obj),
            owner=self.astarte.owner,
        )

    async def converge_priority_class(self, priority_class: V1PriorityClass) -> SyncOutcome:
        # Cluster-scoped: no owner reference
        name = priority_class.metadata.name
        return await self.converge(
            "priority_class",
            priority_class,
            fetch=lambda: self.fetch_priority_class(self.scheduling_v1_api, name),
            create=lambda obj: self.create_priority_class(self.scheduling_v1_api, obj),
            patch=lambda obj: self.patch_priority_class(self.scheduling_v1_api, name, obj),
        )

    # Builders shared by the components

    def object_meta(self, name: str, labels: Labels = None) -> V1ObjectMeta:
        return V1ObjectMeta(
            name=name,
            namespace=self.namespace,
            labels=(labels or self.labels).as_dict(),
        )

    def prepare_resource_requirements(
        self, resources: Optional[Dict[str, Any]]
    ) -> Optional[V1ResourceRequirements]:
        if not resources:
            return None
        return V1ResourceRequirements(
            requests=resources.get("requests"),
            limits=resources.get("limits"),
        )

    def prepare_additional_env(self, additional_env: Optional[List[Dict]]) -> List[V1EnvVar]:
        env = []
        for item in additional_env or []:
            env.append(
                V1EnvVar(
                    name=item["name"],
                    value=item.get("value"),
                    value_from=item.get("valueFrom"),
                )
            )
        return env

    def pod_ip_env(self, name: str = "MY_POD_IP") -> V1EnvVar:
        return V1EnvVar(
            name=name,
            value_from=V1EnvVarSource(
                field_ref=V1ObjectFieldSelector(field_path="status.podIP")
            ),
        )

    def secret_env(self, name: str, secret_name: str, key: str) -> V1EnvVar:
        return V1EnvVar(
            name=name,
            value_from=V1EnvVarSource(
                secret_key_ref=V1SecretKeySelector(name=secret_name, key=key)
            ),
        )

    def prepare_affinity(self, anti_affinity: bool, app: str) -> Optional[V1Affinity]:
        """Preferred anti-affinity spreading replicas of `app` across nodes."""
        if not anti_affinity:
            return None
        return V1Affinity(
            pod_anti_affinity=V1PodAntiAffinity(
                preferred_during_scheduling_ignored_during_execution=[
                    V1WeightedPodAffinityTerm(
                        weight=100,
                        pod_affinity_term=V1PodAffinityTerm(
                            label_selector=V1LabelSelector(match_labels={"app": app}),
                            topology_key="kubernetes.io/hostname",
                        ),
                    )
                ]
            )
        )

    def prepare_volume_claim_template(
        self, name: str, storage: Optional[PersistentStorage], default_size: str
    ) -> V1PersistentVolumeClaim:
        size = getattr(storage, "size", None) or default_size
        storage_class = getattr(storage, "class_name", None) or self.spec.storage_class_name
        return V1PersistentVolumeClaim(
            metadata=V1ObjectMeta(name=name),
            spec=V1PersistentVolumeClaimSpec(
                access_modes=["ReadWriteOnce"],
                storage_class_name=storage_class,
                resources=V1ResourceRequirements(requests={"storage": size}),
            ),
        )

    def prepare_priority_class_name(self) -> Optional[str]:
        if not self.spec.features.astarte_pod_priorities.enable:
            return None
        return self.PRIORITY_CLASS

    def pod_labels(self, labels: Labels, extra: Optional[Dict[str, str]]) -> Dict[str, str]:
        pod_labels = dict(extra or {})
        pod_labels.update(labels.as_dict())
        return pod_labels

    @staticmethod
    def replicas_or_default(replicas: Optional[int], default: int = 1) -> int:
        return replicas if replicas is not None else default

    # Removal of workloads whose component is not deployed

    async def remove_deployment(self, name: str, with_service: bool = False) -> None:
        existing = await self.fetch_deployment(self.apps_v1_api, name, self.namespace)
        if existing is not None:
            self.logger.info(f"Deleting Deployment {name}, which is no longer needed.")
            await self.delete_deployment(self.apps_v1_api, name, self.namespace)
        if with_service:
            await self.delete_service(self.core_v1_api, name, self.namespace)

    async def remove_stateful_set(self, name: str) -> None:
        existing = await self.fetch_stateful_set(self.apps_v1_api, name, self.namespace)
        if existing is not None:
            self.logger.info(f"Deleting StatefulSet {name}, which is no longer needed.")
            await self.delete_stateful_set(self.apps_v1_api, name, self.namespace)

    async def ensure_erlang_cookie(self, secret_name: str) -> SyncOutcome:
        """Random Erlang distribution cookie, generated once."""
        return await self.converge_secret(
            V1Secret(
                metadata=self.object_meta(secret_name),
                type="Opaque",
                string_data={ERLANG_COOKIE_KEY: secrets.token_urlsafe(48)},
            )
        )
