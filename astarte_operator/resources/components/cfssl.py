import json
from typing import List
from kubernetes_asyncio.client import (
    V1ConfigMap,
    V1ConfigMapVolumeSource,
    V1Container,
    V1ContainerPort,
    V1Deployment,
    V1DeploymentSpec,
    V1DeploymentStrategy,
    V1EnvVar,
    V1LabelSelector,
    V1ObjectMeta,
    V1PodSpec,
    V1PodTemplateSpec,
    V1Service,
    V1ServicePort,
    V1ServiceSpec,
    V1Volume,
    V1VolumeMount,
)
from astarte_operator.utils.errors import ConfigurationError
from astarte_operator.resources.components.dependency import StatefulDependency

CONTAINER_PORT = 8080
SERVICE_PORT = 80
CONFIG_MOUNT_PATH = "/config"

CFSSL_CONFIG = {
    "signing": {
        "default": {
            "usages": ["signing", "key encipherment", "client auth"],
            "expiry": "8760h",
        }
    }
}

CSR_CONFIG = {
    "CN": "Astarte Root CA",
    "key": {"algo": "rsa", "size": 2048},
    "names": [{"C": "IT", "L": "Milan", "O": "Astarte User", "ST": "Lombardy"}],
    "ca": {"expiry": "262800h"},
}


class CFSSL(StatefulDependency):
    """Certificate authority signing the device certificates.

    Platforms before 1.0.0 keep the CA material on a volume, so CFSSL runs as a
    StatefulSet. Later platforms hold it in a Secret and CFSSL runs as a Deployment.
    The workload kind that does not apply is removed.
    """

    SUBSYSTEM = "cfssl"
    COMPONENT_TYPE = "cfssl"
    DEFAULT_STORAGE_SIZE = "2Gi"
    DATA_MOUNT_PATH = "/data"
    SERVICE_PORTS = (("http", CONTAINER_PORT),)

    @property
    def config_map_name(self) -> str:
        return self.astarte.resource_name("cfssl-config")

    @property
    def uses_stateful_set(self) -> bool:
        return self.astarte.is_version_before("1.0.0")

    def validate(self) -> None:
        cfssl = self.resource_spec
        if not cfssl.deploy and not cfssl.url:
            raise ConfigurationError("When not deploying CFSSL, the 'url' must be specified")

    def default_version(self) -> str:
        if self.uses_stateful_set:
            return "1.4.1-astarte.0"
        return "1.5.0-astarte.3"

    def prepare_config_map(self) -> V1ConfigMap:
        return V1ConfigMap(
            metadata=self.object_meta(self.config_map_name),
            data={
                "config.json": json.dumps(CFSSL_CONFIG, indent=2, sort_keys=True),
                "csr_root_ca.json": json.dumps(CSR_CONFIG, indent=2, sort_keys=True),
            },
        )

    def prepare_service(self) -> V1Service:
        return V1Service(
            api_version="v1",
            kind="Service",
            metadata=self.object_meta(self.workload_name),
            spec=V1ServiceSpec(
                type="ClusterIP",
                selector=self.labels.selector().as_dict(),
                ports=[
                    V1ServicePort(
                        name="http", port=SERVICE_PORT, target_port="http", protocol="TCP"
                    )
                ],
            ),
        )

    def prepare_env(self) -> List[V1EnvVar]:
        if self.uses_stateful_set:
            return []
        return [
            V1EnvVar(
                name="CFSSL_CA_SECRET_NAME", value=self.astarte.resource_name("cfssl-ca")
            ),
            V1EnvVar(name="KUBERNETES", value="1"),
        ]

    def prepare_replicas(self) -> int:
        return 1

    def prepare_container(self) -> V1Container:
        cfssl = self.resource_spec
        volume_mounts = [V1VolumeMount(name="config", mount_path=CONFIG_MOUNT_PATH)]
        if self.uses_stateful_set:
            volume_mounts.append(self.prepare_data_volume_mount())
        return V1Container(
            name="cfssl",
            image=cfssl.image
            or self.astarte.channel_image("cfssl", cfssl.version or self.default_version()),
            image_pull_policy=self.image_pull_policy(),
            ports=[V1ContainerPort(name="http", container_port=CONTAINER_PORT)],
            env=self.prepare_env(),
            resources=self.prepare_resource_requirements(cfssl.resources),
            volume_mounts=volume_mounts,
        )

    def prepare_config_volume(self) -> V1Volume:
        return V1Volume(
            name="config",
            config_map=V1ConfigMapVolumeSource(name=self.config_map_name),
        )

    def prepare_stateful_set(self):
        stateful_set = super().prepare_stateful_set()
        stateful_set.spec.template.spec.volumes = [self.prepare_config_volume()]
        return stateful_set

    def prepare_deployment(self) -> V1Deployment:
        return V1Deployment(
            api_version="apps/v1",
            kind="Deployment",
            metadata=self.object_meta(self.workload_name),
            spec=V1DeploymentSpec(
                replicas=1,
                selector=V1LabelSelector(match_labels=self.labels.selector().as_dict()),
                strategy=V1DeploymentStrategy(type="RollingUpdate"),
                template=V1PodTemplateSpec(
                    metadata=V1ObjectMeta(
                        labels=self.pod_labels(self.labels, self.resource_spec.pod_labels)
                    ),
                    spec=V1PodSpec(
                        containers=[self.prepare_container()],
                        image_pull_secrets=self.astarte.image_pull_secrets(),
                        priority_class_name=self.prepare_priority_class_name(),
                        volumes=[self.prepare_config_volume()],
                    ),
                ),
            ),
        )

    async def ensure(self) -> None:
        self.validate()
        if not self.resource_spec.deploy:
            self.logger.info("Skipping CFSSL deployment.")
            await self.remove_stateful_set(self.workload_name)
            await self.remove_deployment(self.workload_name)
            return
        await self.converge_config_map(self.prepare_config_map())
        await self.converge_service(self.prepare_service())
        if self.uses_stateful_set:
            await self.remove_deployment(self.workload_name)
            await self.converge_stateful_set(self.prepare_stateful_set())
        else:
            await self.remove_stateful_set(self.workload_name)
            await self.converge_deployment(self.prepare_deployment())
