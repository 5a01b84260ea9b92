from .astarte_spec import (
    PersistentStorageSchema,
    GenericClusteredResourceSchema,
    GenericAPISpecSchema,
    GenericComponentSpecSchema,
    APISpecSchema,
    ConnectionSpecSchema,
    RabbitMQSpecSchema,
    CassandraSpecSchema,
    VerneMQSpecSchema,
    CFSSLSpecSchema,
    DashboardSpecSchema,
    ComponentsSpecSchema,
    PodPrioritiesSchema,
    FeaturesSchema,
    AstarteSpecSchema,
)
from .astarte_status import AstarteStatusSchema

__all__ = [
    "PersistentStorageSchema",
    "GenericClusteredResourceSchema",
    "GenericAPISpecSchema",
    "GenericComponentSpecSchema",
    "APISpecSchema",
    "ConnectionSpecSchema",
    "RabbitMQSpecSchema",
    "CassandraSpecSchema",
    "VerneMQSpecSchema",
    "CFSSLSpecSchema",
    "DashboardSpecSchema",
    "ComponentsSpecSchema",
    "PodPrioritiesSchema",
    "FeaturesSchema",
    "AstarteSpecSchema",
    "AstarteStatusSchema",
]
