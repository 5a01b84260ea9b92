from kubernetes_asyncio.client import V1ConfigMap
from astarte_operator.resources.astarte import Astarte
from astarte_operator.resources.components.base import AstarteComponentResource

VM_ARGS = """## Name of the node
-name ${RELEASE_NAME}@${MY_POD_IP}

## Cookie for distributed erlang
-setcookie ${ERLANG_COOKIE}

# Enable SMP automatically based on availability
-smp auto
"""


class ErlangConfiguration(AstarteComponentResource):
    """`vm.args` shared by every Erlang based microservice."""

    COMPONENT_TYPE = "erlang_configuration"

    def __init__(self, astarte: Astarte):
        super().__init__(astarte, "erlang-configuration")

    @property
    def config_map_name(self) -> str:
        return self.astarte.resource_name("generic-erlang-configuration")

    def prepare_config_map(self) -> V1ConfigMap:
        return V1ConfigMap(
            metadata=self.object_meta(self.config_map_name),
            data={"vm.args": VM_ARGS},
        )

    async def ensure(self) -> None:
        await self.converge_config_map(self.prepare_config_map())
