from typing import Dict, List, Optional
from astarte_operator.types.base import BaseModel


class PersistentStorage(BaseModel):
    """Data volume requested for a stateful dependency."""

    size: Optional[str]
    class_name: Optional[str]


class GenericClusteredResource(BaseModel):
    """Settings shared by every deployable Astarte workload."""

    deploy: bool
    replicas: Optional[int]
    anti_affinity: bool
    version: Optional[str]
    image: Optional[str]
    resources: Optional[Dict]
    additional_env: Optional[List[Dict]]
    pod_labels: Optional[Dict[str, str]]


class GenericAPISpec(GenericClusteredResource):
    disable_authentication: Optional[bool]


class GenericComponentSpec(BaseModel):
    """A component split into an API and a backend workload."""

    api: GenericAPISpec
    backend: GenericClusteredResource


class APISpec(BaseModel):
    host: str
    ssl: bool


class ConnectionSpec(BaseModel):
    host: Optional[str]
    port: Optional[int]
    username: Optional[str]
    password: Optional[str]
    virtual_host: Optional[str]


class RabbitMQSpec(GenericClusteredResource):
    connection: Optional[ConnectionSpec]
    storage: Optional[PersistentStorage]


class CassandraSpec(GenericClusteredResource):
    nodes: Optional[str]
    max_heap_size: Optional[str]
    heap_new_size: Optional[str]
    connection: Optional[ConnectionSpec]
    storage: Optional[PersistentStorage]


class VerneMQSpec(GenericClusteredResource):
    host: str
    port: Optional[int]
    storage: Optional[PersistentStorage]


class CFSSLSpec(BaseModel):
    deploy: bool
    url: Optional[str]
    version: Optional[str]
    image: Optional[str]
    resources: Optional[Dict]
    storage: Optional[PersistentStorage]
    pod_labels: Optional[Dict[str, str]]


class DashboardSpec(GenericClusteredResource):
    realm_management_api_url: Optional[str]
    appengine_api_url: Optional[str]
    pairing_api_url: Optional[str]
    flow_api_url: Optional[str]
    default_realm: Optional[str]


class ComponentsSpec(BaseModel):
    resources: Optional[Dict]
    housekeeping: GenericComponentSpec
    realm_management: GenericComponentSpec
    pairing: GenericComponentSpec
    flow: GenericAPISpec
    appengine_api: GenericAPISpec
    data_updater_plant: GenericClusteredResource
    trigger_engine: GenericClusteredResource
    dashboard: DashboardSpec


class PodPriorities(BaseModel):
    enable: bool
    astarte_high_priority: int
    astarte_mid_priority: int
    astarte_low_priority: int


class Features(BaseModel):
    realm_deletion: bool
    astarte_pod_priorities: PodPriorities


class AstarteSpec(BaseModel):
    """Desired state of an Astarte instance."""

    version: str
    image_pull_policy: Optional[str]
    image_pull_secrets: Optional[List[Dict]]
    distribution_channel: str
    storage_class_name: Optional[str]
    manual_maintenance_mode: bool
    features: Features
    api: APISpec
    rabbitmq: RabbitMQSpec
    cassandra: CassandraSpec
    vernemq: VerneMQSpec
    cfssl: CFSSLSpec
    components: ComponentsSpec
