from typing import List
from kubernetes_asyncio.client import V1Container, V1EnvVar
from astarte_operator.utils.errors import ConfigurationError
from astarte_operator.resources.components.dependency import StatefulDependency

DEFAULT_IMAGE = "gcr.io/google-samples/cassandra:v13"


class Cassandra(StatefulDependency):
    """Database."""

    SUBSYSTEM = "cassandra"
    COMPONENT_TYPE = "cassandra"
    DEFAULT_STORAGE_SIZE = "30Gi"
    DATA_MOUNT_PATH = "/cassandra_data"
    SERVICE_PORTS = (("cql", 9042), ("intra-node", 7000))

    def validate(self) -> None:
        cassandra = self.resource_spec
        if cassandra.deploy:
            return
        host = getattr(cassandra.connection, "host", None)
        if not (host or cassandra.nodes):
            raise ConfigurationError(
                "When not deploying Cassandra, either 'nodes' or 'connection.host' must be specified"
            )

    @property
    def seed(self) -> str:
        return f"{self.workload_name}-0.{self.workload_name}.{self.namespace}.svc.cluster.local"

    def prepare_env(self) -> List[V1EnvVar]:
        cassandra = self.resource_spec
        env = [
            V1EnvVar(name="CASSANDRA_SEEDS", value=self.seed),
            V1EnvVar(name="CASSANDRA_CLUSTER_NAME", value=self.workload_name),
            V1EnvVar(name="CASSANDRA_DC", value="DC1"),
            V1EnvVar(name="CASSANDRA_RACK", value="Rack1"),
            V1EnvVar(name="CASSANDRA_ENDPOINT_SNITCH", value="GossipingPropertyFileSnitch"),
        ]
        if cassandra.max_heap_size:
            env.append(V1EnvVar(name="MAX_HEAP_SIZE", value=cassandra.max_heap_size))
        if cassandra.heap_new_size:
            env.append(V1EnvVar(name="HEAP_NEWSIZE", value=cassandra.heap_new_size))
        return [self.pod_ip_env("POD_IP")] + env + super().prepare_env()

    def prepare_container(self) -> V1Container:
        cassandra = self.resource_spec
        image = cassandra.image or DEFAULT_IMAGE
        if not cassandra.image and cassandra.version:
            image = f"{self.astarte.image_org}/cassandra:{cassandra.version}"
        return V1Container(
            name="cassandra",
            image=image,
            image_pull_policy=self.image_pull_policy(),
            ports=self.prepare_container_ports(),
            env=self.prepare_env(),
            resources=self.prepare_resource_requirements(cassandra.resources),
            volume_mounts=[self.prepare_data_volume_mount()],
        )
