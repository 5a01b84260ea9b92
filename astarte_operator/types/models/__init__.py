from .astarte_spec import (
    PersistentStorage,
    GenericClusteredResource,
    GenericAPISpec,
    GenericComponentSpec,
    APISpec,
    ConnectionSpec,
    RabbitMQSpec,
    CassandraSpec,
    VerneMQSpec,
    CFSSLSpec,
    DashboardSpec,
    ComponentsSpec,
    PodPriorities,
    Features,
    AstarteSpec,
)
from .astarte_status import (
    ReconciliationPhase,
    ClusterHealth,
    EventReason,
    AstarteStatus,
)
from .component import AstarteComponent

__all__ = [
    "PersistentStorage",
    "GenericClusteredResource",
    "GenericAPISpec",
    "GenericComponentSpec",
    "APISpec",
    "ConnectionSpec",
    "RabbitMQSpec",
    "CassandraSpec",
    "VerneMQSpec",
    "CFSSLSpec",
    "DashboardSpec",
    "ComponentsSpec",
    "PodPriorities",
    "Features",
    "AstarteSpec",
    "ReconciliationPhase",
    "ClusterHealth",
    "EventReason",
    "AstarteStatus",
    "AstarteComponent",
]
