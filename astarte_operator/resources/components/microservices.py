from typing import List, Optional
from kubernetes_asyncio.client import (
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
    V1SecretVolumeSource,
    V1Service,
    V1ServicePort,
    V1ServiceSpec,
    V1Volume,
    V1VolumeMount,
)
from astarte_operator.common.models.labels import Labels
from astarte_operator.types.models import AstarteComponent, GenericClusteredResource
from astarte_operator.resources.astarte import Astarte
from astarte_operator.resources.components.base import (
    AstarteComponentResource,
    ERLANG_COOKIE_KEY,
)
from astarte_operator.resources.components.rabbitmq import (
    PASSWORD_KEY,
    USERNAME_KEY,
)

HTTP_PORT = 4000
BEAM_CONFIG_PATH = "/beamconfig"
JWT_PUBLIC_KEY_PATH = "/jwtpubkey"

#: Order in which the microservices are converged
MICROSERVICES = (
    AstarteComponent.HOUSEKEEPING,
    AstarteComponent.HOUSEKEEPING_API,
    AstarteComponent.REALM_MANAGEMENT,
    AstarteComponent.REALM_MANAGEMENT_API,
    AstarteComponent.PAIRING,
    AstarteComponent.PAIRING_API,
    AstarteComponent.FLOW,
    AstarteComponent.TRIGGER_ENGINE,
    AstarteComponent.DATA_UPDATER_PLANT,
    AstarteComponent.APPENGINE_API,
)

# Components declaring both a backend and an API section
_SPLIT_COMPONENTS = {
    AstarteComponent.HOUSEKEEPING: ("housekeeping", "backend"),
    AstarteComponent.HOUSEKEEPING_API: ("housekeeping", "api"),
    AstarteComponent.REALM_MANAGEMENT: ("realm_management", "backend"),
    AstarteComponent.REALM_MANAGEMENT_API: ("realm_management", "api"),
    AstarteComponent.PAIRING: ("pairing", "backend"),
    AstarteComponent.PAIRING_API: ("pairing", "api"),
}


class AstarteMicroservice(AstarteComponentResource):
    """A Deployment of one Astarte component, with a Service for API components."""

    COMPONENT_TYPE = "microservice"

    component: AstarteComponent

    def __init__(self, astarte: Astarte, component: AstarteComponent):
        self.component = component
        super().__init__(
            astarte,
            component.value,
            Labels.for_microservice(astarte.name, component.value, self.ASTARTE_OPERATOR_NAME),
        )

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}<{self.component.value}>"

    @property
    def resource_spec(self) -> GenericClusteredResource:
        components = self.spec.components
        if self.component in _SPLIT_COMPONENTS:
            section, part = _SPLIT_COMPONENTS[self.component]
            return getattr(getattr(components, section), part)
        return getattr(components, self.component.value)

    @property
    def workload_name(self) -> str:
        return self.component.service_name(self.astarte.name)

    @property
    def env_prefix(self) -> str:
        return self.component.value.upper()

    @property
    def erlang_cookie_secret_name(self) -> str:
        return self.astarte.resource_name("erlang-clustering-cookie")

    # Environment

    def prepare_rabbitmq_env(self) -> List[V1EnvVar]:
        rabbitmq = self.spec.rabbitmq
        connection = rabbitmq.connection
        host = getattr(connection, "host", None)
        if rabbitmq.deploy or not host:
            host = self.astarte.resource_name("rabbitmq")
        credentials = self.astarte.resource_name("rabbitmq-user-credentials")
        env = [
            V1EnvVar(name="RPC_AMQP_CONNECTION_HOST", value=host),
            V1EnvVar(
                name="RPC_AMQP_CONNECTION_PORT",
                value=str(getattr(connection, "port", None) or 5672),
            ),
            self.secret_env("RPC_AMQP_CONNECTION_USERNAME", credentials, USERNAME_KEY),
            self.secret_env("RPC_AMQP_CONNECTION_PASSWORD", credentials, PASSWORD_KEY),
        ]
        virtual_host = getattr(connection, "virtual_host", None)
        if virtual_host:
            env.append(V1EnvVar(name="RPC_AMQP_CONNECTION_VIRTUAL_HOST", value=virtual_host))
        return env

    def prepare_cassandra_env(self) -> List[V1EnvVar]:
        cassandra = self.spec.cassandra
        nodes = cassandra.nodes
        if not nodes and not cassandra.deploy:
            connection = cassandra.connection
            nodes = f"{connection.host}:{connection.port or 9042}"
        if not nodes:
            nodes = f"{self.astarte.resource_name('cassandra')}:9042"
        return [V1EnvVar(name="CASSANDRA_NODES", value=nodes)]

    def prepare_component_env(self) -> List[V1EnvVar]:
        """Settings only a given component understands."""
        env = []
        component = self.component
        if component.is_api:
            env.append(V1EnvVar(name=f"{self.env_prefix}_PORT", value=str(HTTP_PORT)))
            if getattr(self.resource_spec, "disable_authentication", None):
                env.append(
                    V1EnvVar(name=f"{self.env_prefix}_DISABLE_AUTHENTICATION", value="true")
                )
        if component is AstarteComponent.HOUSEKEEPING_API:
            env.append(
                V1EnvVar(
                    name="HOUSEKEEPING_API_JWT_PUBLIC_KEY_PATH",
                    value=f"{JWT_PUBLIC_KEY_PATH}/public-key",
                )
            )
        if component is AstarteComponent.PAIRING:
            cfssl = self.spec.cfssl
            cfssl_url = cfssl.url if (cfssl.url and not cfssl.deploy) else (
                f"http://{self.astarte.resource_name('cfssl')}"
            )
            env.extend(
                [
                    V1EnvVar(name="PAIRING_CFSSL_URL", value=cfssl_url),
                    V1EnvVar(
                        name="PAIRING_BROKER_URL",
                        value=f"mqtts://{self.spec.vernemq.host}:{self.spec.vernemq.port or 8883}",
                    ),
                ]
            )
        return env

    def prepare_env(self) -> List[V1EnvVar]:
        env = [
            self.pod_ip_env(),
            V1EnvVar(name="RELEASE_NAME", value=self.component.value),
            self.secret_env("ERLANG_COOKIE", self.erlang_cookie_secret_name, ERLANG_COOKIE_KEY),
        ]
        env.extend(self.prepare_rabbitmq_env())
        env.extend(self.prepare_cassandra_env())
        env.extend(self.prepare_component_env())
        env.extend(self.prepare_additional_env(self.resource_spec.additional_env))
        return env

    # Objects

    def prepare_volumes(self) -> List[V1Volume]:
        volumes = [
            V1Volume(
                name="beamconfig",
                config_map=V1ConfigMapVolumeSource(
                    name=self.astarte.resource_name("generic-erlang-configuration")
                ),
            )
        ]
        if self.component is AstarteComponent.HOUSEKEEPING_API:
            volumes.append(
                V1Volume(
                    name="jwtpubkey",
                    secret=V1SecretVolumeSource(
                        secret_name=self.astarte.resource_name("housekeeping-public-key")
                    ),
                )
            )
        return volumes

    def prepare_volume_mounts(self) -> List[V1VolumeMount]:
        mounts = [V1VolumeMount(name="beamconfig", mount_path=BEAM_CONFIG_PATH)]
        if self.component is AstarteComponent.HOUSEKEEPING_API:
            mounts.append(V1VolumeMount(name="jwtpubkey", mount_path=JWT_PUBLIC_KEY_PATH))
        return mounts

    def prepare_container(self) -> V1Container:
        resource = self.resource_spec
        ports = None
        if self.component.is_api:
            ports = [V1ContainerPort(name="http", container_port=HTTP_PORT)]
        return V1Container(
            name=self.component.dashed,
            image=self.astarte.component_image(self.component, resource.image, resource.version),
            image_pull_policy=self.spec.image_pull_policy,
            ports=ports,
            env=self.prepare_env(),
            resources=self.prepare_resource_requirements(resource.resources),
            volume_mounts=self.prepare_volume_mounts(),
        )

    def prepare_deployment(self) -> V1Deployment:
        resource = self.resource_spec
        return V1Deployment(
            api_version="apps/v1",
            kind="Deployment",
            metadata=self.object_meta(self.workload_name),
            spec=V1DeploymentSpec(
                replicas=self.replicas_or_default(resource.replicas),
                selector=V1LabelSelector(match_labels=self.labels.selector().as_dict()),
                strategy=V1DeploymentStrategy(type="RollingUpdate"),
                template=V1PodTemplateSpec(
                    metadata=V1ObjectMeta(labels=self.pod_labels(self.labels, resource.pod_labels)),
                    spec=V1PodSpec(
                        containers=[self.prepare_container()],
                        image_pull_secrets=self.astarte.image_pull_secrets(),
                        priority_class_name=self.prepare_priority_class_name(),
                        affinity=self.prepare_affinity(
                            resource.anti_affinity, self.labels.as_dict()[Labels.APP_LABEL]
                        ),
                        volumes=self.prepare_volumes() or None,
                    ),
                ),
            ),
        )

    def prepare_service(self) -> Optional[V1Service]:
        if not self.component.is_api:
            return None
        return V1Service(
            api_version="v1",
            kind="Service",
            metadata=self.object_meta(self.workload_name),
            spec=V1ServiceSpec(
                type="ClusterIP",
                selector=self.labels.selector().as_dict(),
                ports=[
                    V1ServicePort(name="http", port=HTTP_PORT, target_port="http", protocol="TCP")
                ],
            ),
        )

    async def ensure(self) -> None:
        if not self.resource_spec.deploy:
            self.logger.info(f"Skipping {self.component.value} deployment.")
            await self.remove_deployment(self.workload_name, with_service=self.component.is_api)
            return
        service = self.prepare_service()
        if service is not None:
            await self.converge_service(service)
        await self.converge_deployment(self.prepare_deployment())


def microservices(astarte: Astarte) -> List[AstarteMicroservice]:
    return [AstarteMicroservice(astarte, component) for component in MICROSERVICES]
