import json
from typing import Dict, List
from kubernetes_asyncio.client import (
    V1ConfigMap,
    V1ConfigMapVolumeSource,
    V1Container,
    V1ContainerPort,
    V1EnvVar,
    V1Service,
    V1ServicePort,
    V1ServiceSpec,
    V1Volume,
    V1VolumeMount,
)
from astarte_operator.types.models import AstarteComponent, DashboardSpec
from astarte_operator.resources.astarte import Astarte
from astarte_operator.resources.components.base import ASTARTE_LOW_PRIORITY
from astarte_operator.resources.components.microservices import AstarteMicroservice

HTTP_PORT = 80
CONFIG_MOUNT_PATH = "/usr/share/nginx/html/user-config"


class Dashboard(AstarteMicroservice):
    """Web dashboard, configured through a ConfigMap holding its API endpoints."""

    COMPONENT_TYPE = "dashboard"
    PRIORITY_CLASS = ASTARTE_LOW_PRIORITY

    def __init__(self, astarte: Astarte):
        super().__init__(astarte, AstarteComponent.DASHBOARD)

    @property
    def resource_spec(self) -> DashboardSpec:
        return self.spec.components.dashboard

    @property
    def config_map_name(self) -> str:
        return self.astarte.resource_name("dashboard-config")

    def prepare_dashboard_config(self) -> Dict[str, str]:
        dashboard = self.resource_spec
        base_url = f"https://{self.spec.api.host}"
        config = {
            "realm_management_api_url": dashboard.realm_management_api_url
            or f"{base_url}/realmmanagement",
            "appengine_api_url": dashboard.appengine_api_url or f"{base_url}/appengine",
            "pairing_api_url": dashboard.pairing_api_url or f"{base_url}/pairing",
            "flow_api_url": dashboard.flow_api_url or f"{base_url}/flow",
            "enable_flow_preview": True,
        }
        if dashboard.default_realm:
            config["default_realm"] = dashboard.default_realm
        return config

    def prepare_config_map(self) -> V1ConfigMap:
        return V1ConfigMap(
            metadata=self.object_meta(self.config_map_name),
            data={"config.json": json.dumps(self.prepare_dashboard_config(), sort_keys=True)},
        )

    def prepare_env(self) -> List[V1EnvVar]:
        return self.prepare_additional_env(self.resource_spec.additional_env)

    def prepare_volumes(self) -> List[V1Volume]:
        return [
            V1Volume(
                name="config",
                config_map=V1ConfigMapVolumeSource(name=self.config_map_name),
            )
        ]

    def prepare_volume_mounts(self) -> List[V1VolumeMount]:
        return [V1VolumeMount(name="config", mount_path=CONFIG_MOUNT_PATH)]

    def prepare_container(self) -> V1Container:
        dashboard = self.resource_spec
        image = dashboard.image or self.astarte.channel_image(
            self.component.docker_image_name, dashboard.version
        )
        return V1Container(
            name="astarte-dashboard",
            image=image,
            image_pull_policy=self.spec.image_pull_policy,
            ports=[V1ContainerPort(name="http", container_port=HTTP_PORT)],
            env=self.prepare_env() or None,
            resources=self.prepare_resource_requirements(dashboard.resources),
            volume_mounts=self.prepare_volume_mounts(),
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
                    V1ServicePort(name="http", port=HTTP_PORT, target_port="http", protocol="TCP")
                ],
            ),
        )

    async def ensure(self) -> None:
        if not self.resource_spec.deploy:
            self.logger.info("Skipping dashboard deployment.")
            await self.remove_deployment(self.workload_name, with_service=True)
            return
        await self.converge_config_map(self.prepare_config_map())
        await self.converge_service(self.prepare_service())
        await self.converge_deployment(self.prepare_deployment())
