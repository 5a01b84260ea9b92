from typing import Any, Dict
from marshmallow import fields, pre_load
from astarte_operator.types.base import BaseSchema
from astarte_operator.types.models.astarte_status import (
    AstarteStatus,
    ClusterHealth,
    ReconciliationPhase,
)


class AstarteStatusSchema(BaseSchema):
    __model__ = AstarteStatus

    phase = fields.Enum(
        ReconciliationPhase,
        by_value=True,
        data_key="phase",
        load_default=ReconciliationPhase.UNKNOWN,
    )
    astarte_version = fields.Str(
        data_key="astarteVersion", allow_none=True, load_default=None
    )
    operator_version = fields.Str(
        data_key="operatorVersion", allow_none=True, load_default=None
    )
    health = fields.Enum(
        ClusterHealth,
        by_value=True,
        data_key="health",
        allow_none=True,
        load_default=None,
    )
    base_api_url = fields.Str(data_key="baseAPIURL", allow_none=True, load_default=None)
    broker_url = fields.Str(data_key="brokerURL", allow_none=True, load_default=None)

    @pre_load
    def drop_empty_values(self, data: Dict[str, Any], **kwargs: Any) -> Dict[str, Any]:
        """Empty strings written by older controllers mean "not reported"."""
        data = dict(data or {})
        for key in ("astarteVersion", "operatorVersion", "health", "baseAPIURL", "brokerURL"):
            if data.get(key) == "":
                data.pop(key)
        if data.get("phase") is None:
            data.pop("phase", None)
        return data
