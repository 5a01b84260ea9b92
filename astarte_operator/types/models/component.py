from enum import Enum


class AstarteComponent(Enum):
    """Astarte microservices managed by the operator."""

    APPENGINE_API = "appengine_api"
    DATA_UPDATER_PLANT = "data_updater_plant"
    FLOW = "flow"
    HOUSEKEEPING = "housekeeping"
    HOUSEKEEPING_API = "housekeeping_api"
    PAIRING = "pairing"
    PAIRING_API = "pairing_api"
    REALM_MANAGEMENT = "realm_management"
    REALM_MANAGEMENT_API = "realm_management_api"
    TRIGGER_ENGINE = "trigger_engine"
    DASHBOARD = "dashboard"

    @property
    def dashed(self) -> str:
        return self.value.replace("_", "-")

    @property
    def is_api(self) -> bool:
        return self in _API_COMPONENTS

    @property
    def docker_image_name(self) -> str:
        if self is AstarteComponent.DASHBOARD:
            return "astarte-dashboard"
        return f"astarte_{self.value}"

    def service_name(self, instance_name: str) -> str:
        return f"{instance_name}-{self.dashed}"


_API_COMPONENTS = frozenset(
    {
        AstarteComponent.APPENGINE_API,
        AstarteComponent.FLOW,
        AstarteComponent.HOUSEKEEPING_API,
        AstarteComponent.PAIRING_API,
        AstarteComponent.REALM_MANAGEMENT_API,
    }
)
