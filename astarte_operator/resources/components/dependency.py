from typing import List, Optional, Tuple
from kubernetes_asyncio.client import (
    V1Container,
    V1ContainerPort,
    V1EnvVar,
    V1LabelSelector,
    V1ObjectMeta,
    V1PersistentVolumeClaim,
    V1PodSpec,
    V1PodTemplateSpec,
    V1Service,
    V1ServicePort,
    V1ServiceSpec,
    V1StatefulSet,
    V1StatefulSetSpec,
    V1StatefulSetUpdateStrategy,
    V1VolumeMount,
)
from astarte_operator.common.models.labels import Labels
from astarte_operator.resources.astarte import Astarte
from astarte_operator.resources.components.base import (
    AstarteComponentResource,
    ASTARTE_HIGH_PRIORITY,
)


class StatefulDependency(AstarteComponentResource):
    """Infrastructure subsystem run as a StatefulSet behind a headless Service.

    Subclasses describe the container; this class takes care of the Service,
    the StatefulSet, its data volume and the removal of the StatefulSet when
    the subsystem is not deployed.
    """

    SUBSYSTEM: str
    PRIORITY_CLASS = ASTARTE_HIGH_PRIORITY
    DEFAULT_STORAGE_SIZE = "4Gi"
    DATA_MOUNT_PATH = "/data"

    #: (name, port) pairs exposed by the headless Service
    SERVICE_PORTS: Tuple[Tuple[str, int], ...] = ()

    def __init__(self, astarte: Astarte):
        super().__init__(
            astarte,
            self.SUBSYSTEM,
            Labels.for_dependency(astarte.name, self.SUBSYSTEM, self.ASTARTE_OPERATOR_NAME),
        )

    @property
    def resource_spec(self):
        return getattr(self.spec, self.SUBSYSTEM)

    @property
    def workload_name(self) -> str:
        return self.astarte.resource_name(self.SUBSYSTEM)

    @property
    def data_volume_name(self) -> str:
        return f"{self.workload_name}-data"

    def validate(self) -> None:
        """Raise ConfigurationError when the declaration cannot be realized."""

    async def ensure_prerequisites(self) -> None:
        """Objects that must exist whether or not the workload is deployed."""

    def prepare_container(self) -> V1Container:
        raise NotImplementedError()

    def prepare_container_ports(self) -> List[V1ContainerPort]:
        return [V1ContainerPort(name=name, container_port=port) for name, port in self.SERVICE_PORTS]

    def prepare_data_volume_mount(self) -> V1VolumeMount:
        return V1VolumeMount(name=self.data_volume_name, mount_path=self.DATA_MOUNT_PATH)

    def prepare_env(self) -> List[V1EnvVar]:
        return self.prepare_additional_env(self.resource_spec.additional_env)

    def prepare_service(self) -> V1Service:
        return V1Service(
            api_version="v1",
            kind="Service",
            metadata=self.object_meta(self.workload_name),
            spec=V1ServiceSpec(
                type="ClusterIP",
                cluster_ip="None",
                selector=self.labels.selector().as_dict(),
                ports=[
                    V1ServicePort(name=name, port=port, target_port=name, protocol="TCP")
                    for name, port in self.SERVICE_PORTS
                ],
            ),
        )

    def prepare_volume_claim_templates(self) -> List[V1PersistentVolumeClaim]:
        return [
            self.prepare_volume_claim_template(
                self.data_volume_name,
                getattr(self.resource_spec, "storage", None),
                self.DEFAULT_STORAGE_SIZE,
            )
        ]

    def prepare_replicas(self) -> int:
        return self.replicas_or_default(self.resource_spec.replicas)

    def prepare_stateful_set(self) -> V1StatefulSet:
        resource = self.resource_spec
        return V1StatefulSet(
            api_version="apps/v1",
            kind="StatefulSet",
            metadata=self.object_meta(self.workload_name),
            spec=V1StatefulSetSpec(
                service_name=self.workload_name,
                replicas=self.prepare_replicas(),
                selector=V1LabelSelector(match_labels=self.labels.selector().as_dict()),
                update_strategy=V1StatefulSetUpdateStrategy(type="RollingUpdate"),
                template=V1PodTemplateSpec(
                    metadata=V1ObjectMeta(
                        labels=self.pod_labels(self.labels, getattr(resource, "pod_labels", None))
                    ),
                    spec=V1PodSpec(
                        containers=[self.prepare_container()],
                        image_pull_secrets=self.astarte.image_pull_secrets(),
                        priority_class_name=self.prepare_priority_class_name(),
                        affinity=self.prepare_affinity(
                            getattr(resource, "anti_affinity", True),
                            self.labels.as_dict()[Labels.APP_LABEL],
                        ),
                    ),
                ),
                volume_claim_templates=self.prepare_volume_claim_templates(),
            ),
        )

    async def ensure(self) -> None:
        self.validate()
        await self.ensure_prerequisites()
        if not self.resource_spec.deploy:
            self.logger.info(f"Skipping {self.SUBSYSTEM} deployment.")
            await self.remove_stateful_set(self.workload_name)
            return
        await self.converge_service(self.prepare_service())
        await self.converge_stateful_set(self.prepare_stateful_set())

    def image_pull_policy(self) -> Optional[str]:
        return self.spec.image_pull_policy
