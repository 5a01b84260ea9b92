import kopf
import mmh3
import hashlib
import logging
from enum import Enum
from logging import Logger
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union
from astarte_operator.utils.helpers import canonicalize_dict
from astarte_operator.common.models.labels import Labels
from astarte_operator.utils.errors import already_exists_error
from kubernetes_asyncio.client import (
    ApiException,
    AppsV1Api,
    BatchV1Api,
    CoreV1Api,
    SchedulingV1Api,
    V1ConfigMap,
    V1DeleteOptions,
    V1Deployment,
    V1DeploymentList,
    V1Job,
    V1PersistentVolumeClaimList,
    V1PriorityClass,
    V1Secret,
    V1Service,
    V1StatefulSet,
)

HASH_ANNOTATION = "astarte-platform.org/resource-hash"


class SyncOutcome(Enum):
    """Result of converging one managed object."""

    CREATED = "created"
    UPDATED = "updated"
    UNCHANGED = "unchanged"


class BaseResource:
    """Base resource model."""

    ASTARTE_OPERATOR_NAME = "astarte-operator"

    logger: Logger = logging.getLogger(__name__)
    sensor = None

    _cluster: str
    _namespace: str
    _component_name: str
    _labels: Labels

    def __init__(
        self, cluster: str, namespace: str, component_name: str, labels: Labels
    ):
        self._cluster = cluster
        self._namespace = namespace
        self._component_name = component_name
        self._labels = labels

    @property
    def cluster(self) -> str:
        return self._cluster

    @property
    def namespace(self) -> str:
        return self._namespace

    @property
    def component_name(self) -> str:
        return self._component_name

    @property
    def labels(self) -> Labels:
        return self._labels

    def compute_hash(self, data: Any) -> str:
        """Compute a murmur3 hash."""
        if isinstance(data, dict):
            _data = canonicalize_dict(data)
        elif isinstance(data, str):
            _data = data.encode()
        else:
            raise ValueError(f"Hash of {type(data)} is not supported.")
        mumur_str = str(mmh3.hash128(_data))

        full_hash = hashlib.sha256(mumur_str.encode("utf-8")).hexdigest()

        # First 16 characters are enough for an annotation value
        return full_hash[:16]

    def prepare_hash_annotation(self, hash: Union[str, int]) -> Dict[str, str]:
        """Prepare hash annotation for k8s resources."""
        return {HASH_ANNOTATION: str(hash)}

    def prepare_desired_hash(self, obj: Any) -> str:
        """Hash of a desired object, ignoring any hash annotation it already carries."""
        data = obj.to_dict()
        metadata = data.get("metadata")
        if metadata:
            annotations = dict(metadata.get("annotations") or {})
            annotations.pop(HASH_ANNOTATION, None)
            metadata["annotations"] = annotations or None
        return self.compute_hash(data)

    @staticmethod
    def stored_hash(obj: Any) -> Optional[str]:
        metadata = getattr(obj, "metadata", None)
        annotations = getattr(metadata, "annotations", None) or {}
        return annotations.get(HASH_ANNOTATION)

    async def converge(
        self,
        resource_type: str,
        desired: Any,
        fetch: Callable[[], Awaitable[Any]],
        create: Callable[[Any], Awaitable[Any]],
        patch: Optional[Callable[[Any], Awaitable[Any]]] = None,
        owner: Optional[Dict[str, Any]] = None,
    ) -> SyncOutcome:
        """Create `desired` if it does not exist, patch it if it drifted.

        Drift is detected by comparing the hash of the desired object with the one
        stored in the live object's annotations. When `patch` is None the object is
        create-only and an existing one is never touched. When `owner` is given the
        object gets an owner reference to it.
        """
        name = desired.metadata.name
        if owner is not None:
            kopf.adopt(desired, owner=owner)
        desired_hash = self.prepare_desired_hash(desired)
        desired.metadata.annotations = {
            **(desired.metadata.annotations or {}),
            **self.prepare_hash_annotation(desired_hash),
        }

        actual = await fetch()
        if actual is None:
            await self._instrumented(resource_type, name, "create", create(desired))
            self.logger.info(f"Created {resource_type} {name}.")
            return SyncOutcome.CREATED

        if patch is None or self.stored_hash(actual) == desired_hash:
            return SyncOutcome.UNCHANGED

        if self.sensor:
            self.sensor.on_resource_drift_detected(
                self.cluster, self.component_name, name, self.namespace, resource_type, ["spec"]
            )
        await self._instrumented(resource_type, name, "patch", patch(desired))
        self.logger.info(f"Updated {resource_type} {name}.")
        return SyncOutcome.UPDATED

    async def _instrumented(self, resource_type: str, name: str, operation: str, call: Awaitable):
        sensor_state = None
        if self.sensor:
            sensor_state = self.sensor.on_resource_sync_start(
                self.cluster, self.component_name, name, self.namespace, resource_type
            )
        success = True
        error = None
        try:
            return await call
        except Exception as ex:
            success = False
            error = ex
            raise
        finally:
            if self.sensor:
                self.sensor.on_resource_sync_complete(
                    self.cluster,
                    self.component_name,
                    name,
                    self.namespace,
                    resource_type,
                    sensor_state,
                    operation,
                    success,
                    error,
                )

    # Services

    async def fetch_service(
        self, core_v1_api: CoreV1Api, name: str, namespace: str
    ) -> Optional[V1Service]:
        """Retrieve the latest state of a service"""
        try:
            return await core_v1_api.read_namespaced_service(name=name, namespace=namespace)
        except ApiException as ex:
            if ex.status == 404:
                return None
            raise

    async def create_service(
        self, core_v1_api: CoreV1Api, namespace: str, service: V1Service
    ) -> None:
        try:
            await core_v1_api.create_namespaced_service(namespace=namespace, body=service)
        except ApiException as ex:
            if already_exists_error(ex):
                await self.patch_service(
                    core_v1_api,
                    name=service.metadata.name,
                    namespace=namespace,
                    service=service,
                )
            else:
                raise

    async def patch_service(
        self, core_v1_api: CoreV1Api, name: str, namespace: str, service: V1Service
    ):
        await core_v1_api.patch_namespaced_service(
            name=name,
            namespace=namespace,
            body=service,
        )

    async def delete_service(self, core_v1_api: CoreV1Api, name: str, namespace: str):
        try:
            await core_v1_api.delete_namespaced_service(name=name, namespace=namespace)
        except ApiException as ex:
            if ex.status == 404:
                return
            raise

    # Deployments

    async def fetch_deployment(
        self, apps_v1_api: AppsV1Api, name: str, namespace: str
    ) -> Optional[V1Deployment]:
        try:
            return await apps_v1_api.read_namespaced_deployment(name=name, namespace=namespace)
        except ApiException as ex:
            if ex.status == 404:
                return None
            raise

    async def create_deployment(
        self, apps_v1_api: AppsV1Api, namespace: str, deployment: V1Deployment
    ):
        try:
            await apps_v1_api.create_namespaced_deployment(
                namespace=namespace, body=deployment
            )
        except ApiException as ex:
            if already_exists_error(ex):
                await self.replace_deployment(
                    apps_v1_api,
                    name=deployment.metadata.name,
                    namespace=namespace,
                    deployment=deployment,
                )
            else:
                raise

    async def replace_deployment(
        self, apps_v1_api: AppsV1Api, name: str, namespace: str, deployment: V1Deployment
    ):
        await apps_v1_api.replace_namespaced_deployment(
            name=name, namespace=namespace, body=deployment
        )

    async def patch_deployment(
        self, apps_v1_api: AppsV1Api, name: str, namespace: str, deployment: V1Deployment
    ):
        await apps_v1_api.patch_namespaced_deployment(
            name=name, namespace=namespace, body=deployment
        )

    async def delete_deployment(self, apps_v1_api: AppsV1Api, name: str, namespace: str):
        try:
            await apps_v1_api.delete_namespaced_deployment(name=name, namespace=namespace)
        except ApiException as ex:
            if ex.status == 404:
                return
            raise

    async def list_deployments(
        self, apps_v1_api: AppsV1Api, namespace: str, label_selector: Dict[str, str] = None
    ) -> V1DeploymentList:
        label_selector_str = None
        if label_selector:
            label_selector_str = ",".join([f"{k}={v}" for k, v in label_selector.items()])
        return await apps_v1_api.list_namespaced_deployment(
            namespace=namespace, label_selector=label_selector_str
        )

    # StatefulSets

    async def fetch_stateful_set(
        self, apps_v1_api: AppsV1Api, name: str, namespace: str
    ) -> Optional[V1StatefulSet]:
        try:
            return await apps_v1_api.read_namespaced_stateful_set(name=name, namespace=namespace)
        except ApiException as ex:
            if ex.status == 404:
                return None
            raise

    async def create_stateful_set(
        self,
        apps_v1_api: AppsV1Api,
        namespace: str,
        stateful_set: V1StatefulSet,
    ):
        try:
            await apps_v1_api.create_namespaced_stateful_set(
                namespace=namespace, body=stateful_set
            )
        except ApiException as ex:
            if already_exists_error(ex):
                await self.patch_stateful_set(
                    apps_v1_api,
                    name=stateful_set.metadata.name,
                    namespace=namespace,
                    stateful_set=stateful_set,
                )
            else:
                raise

    async def patch_stateful_set(
        self,
        apps_v1_api: AppsV1Api,
        name: str,
        namespace: str,
        stateful_set: V1StatefulSet,
    ):
        await apps_v1_api.patch_namespaced_stateful_set(
            name=name, namespace=namespace, body=self.prepare_stateful_set_patch(stateful_set)
        )

    def prepare_stateful_set_patch(self, stateful_set: V1StatefulSet) -> Dict:
        """Only the mutable parts of a StatefulSet may be patched."""
        return {
            "metadata": {
                "labels": stateful_set.metadata.labels,
                "annotations": stateful_set.metadata.annotations,
            },
            "spec": {
                "replicas": stateful_set.spec.replicas,
                "template": stateful_set.spec.template,
                "updateStrategy": stateful_set.spec.update_strategy,
            },
        }

    async def delete_stateful_set(
        self,
        apps_v1_api: AppsV1Api,
        name: str,
        namespace: str,
        delete_options: V1DeleteOptions = None,
    ):
        try:
            await apps_v1_api.delete_namespaced_stateful_set(
                name=name, namespace=namespace, body=delete_options
            )
        except ApiException as ex:
            if ex.status == 404:
                return
            raise

    # ConfigMaps

    async def fetch_config_map(
        self, core_v1_api: CoreV1Api, name: str, namespace: str
    ) -> Optional[V1ConfigMap]:
        try:
            return await core_v1_api.read_namespaced_config_map(name=name, namespace=namespace)
        except ApiException as ex:
            if ex.status == 404:
                return None
            raise

    async def create_config_map(
        self, core_v1_api: CoreV1Api, namespace: str, config_map: V1ConfigMap
    ):
        try:
            await core_v1_api.create_namespaced_config_map(
                namespace=namespace, body=config_map
            )
        except ApiException as ex:
            if already_exists_error(ex):
                await self.replace_config_map(
                    core_v1_api,
                    name=config_map.metadata.name,
                    namespace=namespace,
                    config_map=config_map,
                )
            else:
                raise

    async def replace_config_map(
        self, core_v1_api: CoreV1Api, name: str, namespace: str, config_map: V1ConfigMap
    ):
        await core_v1_api.replace_namespaced_config_map(
            name=name,
            namespace=namespace,
            body=config_map,
        )

    # Secrets

    async def fetch_secret(
        self, core_v1_api: CoreV1Api, name: str, namespace: str
    ) -> Optional[V1Secret]:
        try:
            return await core_v1_api.read_namespaced_secret(name=name, namespace=namespace)
        except ApiException as ex:
            if ex.status == 404:
                return None
            raise

    async def create_secret(self, core_v1_api: CoreV1Api, namespace: str, secret: V1Secret):
        try:
            await core_v1_api.create_namespaced_secret(namespace=namespace, body=secret)
        except ApiException as ex:
            if already_exists_error(ex):
                await self.replace_secret(
                    core_v1_api,
                    name=secret.metadata.name,
                    namespace=namespace,
                    secret=secret,
                )
            else:
                raise

    async def replace_secret(
        self, core_v1_api: CoreV1Api, name: str, namespace: str, secret: V1Secret
    ):
        await core_v1_api.replace_namespaced_secret(name=name, namespace=namespace, body=secret)

    async def delete_secret(self, core_v1_api: CoreV1Api, name: str, namespace: str):
        """Delete a Secret. Raises on any error but a missing Secret."""
        try:
            await core_v1_api.delete_namespaced_secret(name=name, namespace=namespace)
        except ApiException as ex:
            if ex.status == 404:
                return
            raise

    # Jobs

    async def fetch_job(self, batch_v1_api: BatchV1Api, name: str, namespace: str) -> Optional[V1Job]:
        try:
            return await batch_v1_api.read_namespaced_job(name=name, namespace=namespace)
        except ApiException as ex:
            if ex.status == 404:
                return None
            raise

    async def create_job(self, batch_v1_api: BatchV1Api, namespace: str, job: V1Job):
        try:
            await batch_v1_api.create_namespaced_job(namespace=namespace, body=job)
        except ApiException as ex:
            # Jobs are immutable; an existing one is left alone
            if already_exists_error(ex):
                return
            raise

    # PriorityClasses (cluster-scoped)

    async def fetch_priority_class(
        self, scheduling_v1_api: SchedulingV1Api, name: str
    ) -> Optional[V1PriorityClass]:
        try:
            return await scheduling_v1_api.read_priority_class(name=name)
        except ApiException as ex:
            if ex.status == 404:
                return None
            raise

    async def create_priority_class(
        self, scheduling_v1_api: SchedulingV1Api, priority_class: V1PriorityClass
    ):
        try:
            await scheduling_v1_api.create_priority_class(body=priority_class)
        except ApiException as ex:
            if already_exists_error(ex):
                await self.patch_priority_class(
                    scheduling_v1_api, priority_class.metadata.name, priority_class
                )
            else:
                raise

    async def patch_priority_class(
        self, scheduling_v1_api: SchedulingV1Api, name: str, priority_class: V1PriorityClass
    ):
        # value and preemptionPolicy are immutable; only metadata can move
        await scheduling_v1_api.patch_priority_class(
            name=name,
            body={
                "metadata": {
                    "labels": priority_class.metadata.labels,
                    "annotations": priority_class.metadata.annotations,
                },
                "description": priority_class.description,
            },
        )

    async def delete_priority_class(self, scheduling_v1_api: SchedulingV1Api, name: str):
        try:
            await scheduling_v1_api.delete_priority_class(name=name)
        except ApiException as ex:
            if ex.status == 404:
                return
            raise

    # PersistentVolumeClaims

    async def list_persistent_volume_claims(
        self, core_v1_api: CoreV1Api, namespace: str
    ) -> V1PersistentVolumeClaimList:
        return await core_v1_api.list_namespaced_persistent_volume_claim(namespace=namespace)

    async def delete_persistent_volume_claim(
        self,
        core_v1_api: CoreV1Api,
        name: str,
        namespace: str,
    ):
        """Delete a PersistentVolumeClaim.

        Args:
            core_v1_api: CoreV1Api instance
            name: Name of the PVC to delete
            namespace: Namespace containing the PVC
        """
        try:
            await core_v1_api.delete_namespaced_persistent_volume_claim(
                name=name,
                namespace=namespace,
                body=V1DeleteOptions(),
            )
        except ApiException as ex:
            if ex.status == 404:
                # PVC already deleted, ignore
                return
            raise

    @staticmethod
    def pvc_names(pvcs: V1PersistentVolumeClaimList) -> List[str]:
        return [pvc.metadata.name for pvc in (pvcs.items or [])]
