from typing import Dict


class ResourceLabels:
    APP_LABEL = "app"

    COMPONENT_LABEL = "component"

    ASTARTE_COMPONENT_LABEL = "astarte-component"

    #: Value of the `component` label on Astarte microservices; the Health Scorer lists by it.
    ASTARTE_COMPONENT = "astarte"

    #: Value of the `component` label on infrastructure workloads (broker, storage, CA, gateway).
    ASTARTE_DEPENDENCY = "astarte-dependency"


class Labels(ResourceLabels):
    KUBERNETES_DOMAIN = "app.kubernetes.io/"

    KUBERNETES_INSTANCE_LABEL = KUBERNETES_DOMAIN + "instance"

    KUBERNETES_PART_OF_LABEL = KUBERNETES_DOMAIN + "part-of"

    KUBERNETES_MANAGED_BY_LABEL = KUBERNETES_DOMAIN + "managed-by"

    APPLICATION_NAME = "astarte"

    _labels: Dict[str, str]

    def __init__(self, labels: Dict[str, str] = None) -> None:
        self._labels = labels if labels else dict()

    def update(self, labels: Dict[str, str]) -> "Labels":
        self._labels.update(labels.copy())
        return self

    def as_dict(self) -> Dict[str, str]:
        """Return labels are dictionary."""
        return self._labels.copy()

    def include(self, label: str, value: str) -> "Labels":
        self.update({label: value})
        return self

    def include_app(self, app: str) -> "Labels":
        return self.include(self.APP_LABEL, app)

    def include_component(self, component: str) -> "Labels":
        return self.include(self.COMPONENT_LABEL, component)

    def include_astarte_component(self, component: str) -> "Labels":
        return self.include(self.ASTARTE_COMPONENT_LABEL, component)

    def include_kubernetes_instance(self, instance_name: str) -> "Labels":
        return self.include(self.KUBERNETES_INSTANCE_LABEL, instance_name)

    def include_kubernetes_part_of(self, instance_name: str) -> "Labels":
        return self.include(
            self.KUBERNETES_PART_OF_LABEL,
            self.get_or_valid_instance_label_value(
                f"{self.APPLICATION_NAME}-{instance_name}"
            ),
        )

    def include_kubernetes_managed_by(self, operator_name: str) -> "Labels":
        return self.include(self.KUBERNETES_MANAGED_BY_LABEL, operator_name)

    def get_or_valid_instance_label_value(self, instance: str):
        """Trim the value into a valid Label value:
        * (([A-Za-z0-9][-A-Za-z0-9_.]*)?[A-Za-z0-9])?
        * 63 characters max
        """
        if not instance:
            return ""
        return instance[:63].rstrip(".-_")

    def selector(self) -> "Labels":
        """Labels stable enough to be used as a workload selector."""
        return Labels({self.APP_LABEL: self._labels[self.APP_LABEL]})

    def __str__(self):
        return f"Labels<{self._labels}>"

    @classmethod
    def for_microservice(
        cls, instance_name: str, component: str, managed_by: str
    ) -> "Labels":
        """Labels of a microservice or dashboard workload."""
        return (
            Labels()
            .include_app(f"{instance_name}-{component.replace('_', '-')}")
            .include_component(cls.ASTARTE_COMPONENT)
            .include_astarte_component(component)
            .include_kubernetes_instance(instance_name)
            .include_kubernetes_part_of(instance_name)
            .include_kubernetes_managed_by(managed_by)
        )

    @classmethod
    def for_dependency(
        cls, instance_name: str, subsystem: str, managed_by: str
    ) -> "Labels":
        """Labels of an infrastructure workload such as the broker or the CA."""
        return (
            Labels()
            .include_app(f"{instance_name}-{subsystem}")
            .include_component(cls.ASTARTE_DEPENDENCY)
            .include_kubernetes_instance(instance_name)
            .include_kubernetes_part_of(instance_name)
            .include_kubernetes_managed_by(managed_by)
        )
