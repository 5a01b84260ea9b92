from typing import List
from kubernetes_asyncio.client import V1Container, V1EnvVar
from astarte_operator.types.models import AstarteComponent
from astarte_operator.resources.components.dependency import StatefulDependency

DEFAULT_BROKER_PORT = 8883


def broker_url(host: str, port: int = None) -> str:
    return f"mqtts://{host}:{port or DEFAULT_BROKER_PORT}"


class VerneMQ(StatefulDependency):
    """MQTT broker the devices connect to."""

    SUBSYSTEM = "vernemq"
    COMPONENT_TYPE = "vernemq"
    DEFAULT_STORAGE_SIZE = "4Gi"
    DATA_MOUNT_PATH = "/opt/vernemq/data"
    SERVICE_PORTS = (
        ("mqtt-ssl", 8883),
        ("mqtt", 1883),
        ("mqtt-reverse", 1885),
        ("metrics", 8888),
    )

    @property
    def cfssl_url(self) -> str:
        cfssl = self.spec.cfssl
        if not cfssl.deploy and cfssl.url:
            return cfssl.url
        return f"http://{self.astarte.resource_name('cfssl')}.{self.namespace}.svc.cluster.local"

    def prepare_env(self) -> List[V1EnvVar]:
        vernemq = self.resource_spec
        housekeeping = AstarteComponent.HOUSEKEEPING
        env = [
            V1EnvVar(name="CFSSL_URL", value=self.cfssl_url),
            V1EnvVar(name="VERNEMQ_PUBLIC_HOST", value=vernemq.host),
            V1EnvVar(name="VERNEMQ_PUBLIC_PORT", value=str(vernemq.port or DEFAULT_BROKER_PORT)),
            V1EnvVar(
                name="DOCKER_VERNEMQ_ASTARTE_VMQ_PLUGIN__HOUSEKEEPING_URL",
                value=f"http://{housekeeping.service_name(self.astarte.name)}:4000",
            ),
        ]
        return [self.pod_ip_env()] + env + super().prepare_env()

    def prepare_container(self) -> V1Container:
        vernemq = self.resource_spec
        return V1Container(
            name="vernemq",
            image=vernemq.image or self.astarte.channel_image("vernemq", vernemq.version),
            image_pull_policy=self.image_pull_policy(),
            ports=self.prepare_container_ports(),
            env=self.prepare_env(),
            resources=self.prepare_resource_requirements(vernemq.resources),
            volume_mounts=[self.prepare_data_volume_mount()],
        )
