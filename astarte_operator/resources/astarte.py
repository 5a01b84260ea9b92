import kopf
import logging
from logging import Logger
from typing import Any, Dict, Mapping, Optional
from marshmallow import ValidationError
from kubernetes_asyncio.client import (
    AppsV1Api,
    BatchV1Api,
    CoreV1Api,
    CustomObjectsApi,
    SchedulingV1Api,
)
from kubernetes_asyncio.client.api_client import ApiClient
from astarte_operator.utils.objects import cached_property
from astarte_operator.types.settings import Settings
from astarte_operator.types.models import (
    AstarteSpec,
    AstarteStatus,
    AstarteComponent,
    EventReason,
)
from astarte_operator.types.schemas import AstarteSpecSchema, AstarteStatusSchema
from astarte_operator.common.models.labels import Labels
from astarte_operator.common.models.version import Version, normalized_version
from astarte_operator.resources.base import BaseResource


class Astarte(BaseResource):
    """Astarte kubernetes resource."""

    logger: Logger
    conf: Settings = Settings()
    sensor = None
    shared_api_client: ApiClient = None  # Shared across all Astarte instances

    KIND = "Astarte"
    GROUP_NAME = "api.astarte-platform.org"
    GROUP_VERSION = "v1alpha2"
    PLURAL_NAME = "astartes"

    name: str
    body: Mapping[str, Any]
    spec: AstarteSpec
    status: AstarteStatus

    def __init__(self, name: str, namespace: str, labels: Optional[Dict[str, str]] = None):
        _labels = Labels(dict(labels or {}))
        _labels.include_kubernetes_instance(name).include_kubernetes_managed_by(
            self.ASTARTE_OPERATOR_NAME
        )
        super().__init__(
            cluster=name,
            namespace=namespace,
            component_name=name,
            labels=_labels,
        )
        self.name = name

    @classmethod
    def from_body(cls, body: Mapping[str, Any], logger: Logger = None) -> "Astarte":
        """Build an Astarte from the raw custom object."""
        metadata = body["metadata"]
        astarte = Astarte(metadata["name"], metadata.get("namespace"))
        astarte.logger = logger or logging.getLogger(__name__)
        astarte.load(body)
        return astarte

    def load(self, body: Mapping[str, Any]) -> None:
        try:
            self.spec = AstarteSpecSchema().load(dict(body.get("spec") or {}))
        except ValidationError as ex:
            raise kopf.PermanentError(f"Invalid {self.KIND} spec: {ex.messages}") from ex
        self.status = AstarteStatusSchema().load(dict(body.get("status") or {}))
        self.body = body
        self.__dict__.pop("platform_version", None)

    async def refresh(self) -> "Astarte":
        """Re-read the instance from the API server."""
        self.load(await self.fetch_instance())
        return self

    async def fetch_instance(self) -> Dict[str, Any]:
        return await self.custom_objects_api.get_namespaced_custom_object(
            group=self.GROUP_NAME,
            version=self.GROUP_VERSION,
            namespace=self.namespace,
            plural=self.PLURAL_NAME,
            name=self.name,
        )

    async def replace_instance_status(self, body: Dict[str, Any]) -> Dict[str, Any]:
        """Write `.status`; fails with 409 when `body` carries a stale resourceVersion."""
        return await self.custom_objects_api.replace_namespaced_custom_object_status(
            group=self.GROUP_NAME,
            version=self.GROUP_VERSION,
            namespace=self.namespace,
            plural=self.PLURAL_NAME,
            name=self.name,
            body=body,
        )

    async def replace_instance(self, body: Dict[str, Any]) -> Dict[str, Any]:
        return await self.custom_objects_api.replace_namespaced_custom_object(
            group=self.GROUP_NAME,
            version=self.GROUP_VERSION,
            namespace=self.namespace,
            plural=self.PLURAL_NAME,
            name=self.name,
            body=body,
        )

    def event(self, type: str, reason: EventReason, message: str) -> None:
        """Post a Kubernetes event on the instance."""
        kopf.event(self.body, type=type, reason=reason.value, message=message)

    @property
    def owner(self) -> Mapping[str, Any]:
        return self.body

    # Versions

    def requested_version(self) -> Version:
        """Declared platform version; raises InvalidVersionError."""
        return normalized_version(self.spec.version)

    @cached_property
    def platform_version(self) -> Version:
        """Declared platform version without pre-release, used for feature switches."""
        return self.requested_version().strip_prerelease()

    def is_version_before(self, version: str) -> bool:
        return self.platform_version.is_before(version)

    @property
    def image_org(self) -> str:
        return self.spec.distribution_channel or self.conf.default_image_org

    def channel_image(self, image_name: str, version: str = None) -> str:
        """`{org}/{image}:{version}`, defaulting to the declared platform version."""
        return f"{self.image_org}/{image_name}:{version or self.spec.version}"

    def component_image(
        self, component: AstarteComponent, image: str = None, version: str = None
    ) -> str:
        if image:
            return image
        return self.channel_image(component.docker_image_name, version)

    def image_pull_secrets(self):
        return self.spec.image_pull_secrets or None

    # Names

    def resource_name(self, suffix: str) -> str:
        return f"{self.name}-{suffix}"

    @property
    def housekeeping_deployment_name(self) -> str:
        return AstarteComponent.HOUSEKEEPING.service_name(self.name)

    # Kubernetes clients

    @cached_property
    def api_client(self) -> ApiClient:
        # Use the shared API client if available, otherwise create a new one
        if self.shared_api_client is not None:
            return self.shared_api_client
        return ApiClient()

    @cached_property
    def apps_v1_api(self) -> AppsV1Api:
        return AppsV1Api(self.api_client)

    @cached_property
    def core_v1_api(self) -> CoreV1Api:
        return CoreV1Api(self.api_client)

    @cached_property
    def batch_v1_api(self) -> BatchV1Api:
        return BatchV1Api(self.api_client)

    @cached_property
    def scheduling_v1_api(self) -> SchedulingV1Api:
        return SchedulingV1Api(self.api_client)

    @cached_property
    def custom_objects_api(self) -> CustomObjectsApi:
        return CustomObjectsApi(self.api_client)
