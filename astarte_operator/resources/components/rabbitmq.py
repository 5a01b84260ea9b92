import secrets
from typing import List
from kubernetes_asyncio.client import V1Container, V1EnvVar, V1Secret
from astarte_operator.utils.errors import ConfigurationError
from astarte_operator.resources.components.base import ERLANG_COOKIE_KEY
from astarte_operator.resources.components.dependency import StatefulDependency

DEFAULT_USERNAME = "astarte-admin"
USERNAME_KEY = "admin-username"
PASSWORD_KEY = "admin-password"


class RabbitMQ(StatefulDependency):
    """Message broker."""

    SUBSYSTEM = "rabbitmq"
    COMPONENT_TYPE = "rabbitmq"
    DEFAULT_STORAGE_SIZE = "4Gi"
    DATA_MOUNT_PATH = "/var/lib/rabbitmq"
    SERVICE_PORTS = (("amqp", 5672), ("management", 15672))

    @property
    def credentials_secret_name(self) -> str:
        return self.astarte.resource_name("rabbitmq-user-credentials")

    @property
    def cookie_secret_name(self) -> str:
        return f"{self.workload_name}-cookie"

    def validate(self) -> None:
        rabbitmq = self.resource_spec
        if rabbitmq.deploy:
            return
        connection = rabbitmq.connection
        if connection is None:
            raise ConfigurationError(
                "When not deploying RabbitMQ, the 'connection' section is compulsory"
            )
        if not connection.host:
            raise ConfigurationError(
                "When not deploying RabbitMQ, it is compulsory to specify at least a Host"
            )
        if not (connection.username and connection.password):
            raise ConfigurationError(
                "When not deploying RabbitMQ, a username/password combination must be provided"
            )

    def default_version(self) -> str:
        if self.astarte.is_version_before("1.0.0"):
            return "3.7.21"
        return "3.8.34"

    async def ensure_prerequisites(self) -> None:
        connection = self.resource_spec.connection
        username = getattr(connection, "username", None)
        password = getattr(connection, "password", None)
        explicit = bool(username and password)
        secret = V1Secret(
            metadata=self.object_meta(self.credentials_secret_name),
            type="Opaque",
            string_data={
                USERNAME_KEY: username or DEFAULT_USERNAME,
                PASSWORD_KEY: password or secrets.token_urlsafe(24),
            },
        )
        # Declared credentials are applied on every pass, generated ones are kept forever
        await self.converge_secret(secret, create_only=not explicit)

        if self.resource_spec.deploy:
            await self.ensure_erlang_cookie(self.cookie_secret_name)

    def prepare_env(self) -> List[V1EnvVar]:
        env = [
            V1EnvVar(name="RABBITMQ_USE_LONGNAME", value="true"),
            V1EnvVar(
                name="RABBITMQ_NODENAME",
                value="rabbit@$(MY_POD_IP)",
            ),
            V1EnvVar(name="K8S_SERVICE_NAME", value=self.workload_name),
            self.secret_env("RABBITMQ_ERLANG_COOKIE", self.cookie_secret_name, ERLANG_COOKIE_KEY),
            self.secret_env("RABBITMQ_DEFAULT_USER", self.credentials_secret_name, USERNAME_KEY),
            self.secret_env("RABBITMQ_DEFAULT_PASS", self.credentials_secret_name, PASSWORD_KEY),
        ]
        return [self.pod_ip_env()] + env + super().prepare_env()

    def prepare_container(self) -> V1Container:
        rabbitmq = self.resource_spec
        image = rabbitmq.image or f"rabbitmq:{rabbitmq.version or self.default_version()}"
        return V1Container(
            name="rabbitmq",
            image=image,
            image_pull_policy=self.image_pull_policy(),
            ports=self.prepare_container_ports(),
            env=self.prepare_env(),
            resources=self.prepare_resource_requirements(rabbitmq.resources),
            volume_mounts=[self.prepare_data_volume_mount()],
        )
