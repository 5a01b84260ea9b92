from typing import List
from kubernetes_asyncio.client import V1ObjectMeta, V1PriorityClass
from astarte_operator.resources.astarte import Astarte
from astarte_operator.resources.components.base import (
    AstarteComponentResource,
    ASTARTE_HIGH_PRIORITY,
    ASTARTE_MID_PRIORITY,
    ASTARTE_LOW_PRIORITY,
)


class PriorityClasses(AstarteComponentResource):
    """Non-preemptive PriorityClasses used when pod priorities are enabled."""

    COMPONENT_TYPE = "priority_classes"

    def __init__(self, astarte: Astarte):
        super().__init__(astarte, "priority-classes")

    def prepare_priority_classes(self) -> List[V1PriorityClass]:
        priorities = self.spec.features.astarte_pod_priorities
        values = (
            (ASTARTE_HIGH_PRIORITY, priorities.astarte_high_priority, "high"),
            (ASTARTE_MID_PRIORITY, priorities.astarte_mid_priority, "mid"),
            (ASTARTE_LOW_PRIORITY, priorities.astarte_low_priority, "low"),
        )
        return [
            V1PriorityClass(
                metadata=V1ObjectMeta(name=name, labels=self.labels.as_dict()),
                value=value,
                global_default=False,
                preemption_policy="Never",
                description=f"Astarte {level} priority, non preemptive",
            )
            for name, value, level in values
        ]

    async def ensure(self) -> None:
        if not self.spec.features.astarte_pod_priorities.enable:
            return
        for priority_class in self.prepare_priority_classes():
            await self.converge_priority_class(priority_class)
