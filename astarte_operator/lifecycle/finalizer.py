from typing import List
from kubernetes_asyncio.client import ApiException
from astarte_operator.resources.astarte import Astarte
from astarte_operator.resources.components.base import PRIORITY_CLASS_NAMES

#: Prefixes of the claims created by the StatefulSets of an instance
DATA_VOLUME_SUBSYSTEMS = ("vernemq", "rabbitmq", "cfssl", "cassandra")


def data_volume_prefixes(astarte: Astarte) -> List[str]:
    return [astarte.resource_name(f"{subsystem}-data") for subsystem in DATA_VOLUME_SUBSYSTEMS]


async def finalize(astarte: Astarte) -> List[str]:
    """Remove what owner references do not garbage-collect.

    Returns the names of the objects that could not be removed. Only the
    listing of the claims is fatal.
    """
    leftovers = []
    core_v1_api = astarte.core_v1_api

    ca_secret = astarte.resource_name("cfssl-ca")
    try:
        await astarte.delete_secret(core_v1_api, ca_secret, astarte.namespace)
    except ApiException as ex:
        astarte.logger.warning(f"Could not delete Secret {ca_secret}: {ex.reason}")
        leftovers.append(ca_secret)

    pvcs = await astarte.list_persistent_volume_claims(core_v1_api, astarte.namespace)
    prefixes = tuple(data_volume_prefixes(astarte))
    for name in astarte.pvc_names(pvcs):
        if not name.startswith(prefixes):
            continue
        try:
            await astarte.delete_persistent_volume_claim(core_v1_api, name, astarte.namespace)
            astarte.logger.info(f"Deleted PersistentVolumeClaim {name}.")
        except ApiException as ex:
            astarte.logger.error(f"Could not delete PersistentVolumeClaim {name}: {ex.reason}")
            leftovers.append(name)

    for name in PRIORITY_CLASS_NAMES:
        try:
            await astarte.delete_priority_class(astarte.scheduling_v1_api, name)
        except ApiException as ex:
            astarte.logger.warning(f"Could not delete PriorityClass {name}: {ex.reason}")
            leftovers.append(name)

    if leftovers:
        astarte.logger.warning(f"Objects left behind after finalization: {', '.join(leftovers)}")
    return leftovers
