"""
Override for kopf._cogs.helpers.thirdparty so that kopf recognizes kubernetes_asyncio models.

Kopf only detects the synchronous `kubernetes` client models when adopting children
(`kopf.adopt`) or labelling them. Every object built by the component reconcilers is a
kubernetes_asyncio model, so the detection module is replaced in sys.modules before any
of Kopf's internals import it.

Import this module before anything else imports kopf.
"""
import abc
import sys
import types
from typing import Any, Optional

_PATCHED_MARKER = "_astarte_operator_patched"


def patch_kopf_thirdparty():
    """Replace kopf's third-party model detection with one aware of kubernetes_asyncio."""
    existing = sys.modules.get("kopf._cogs.helpers.thirdparty")
    if existing is not None and getattr(existing, _PATCHED_MARKER, False):
        return

    class _dummy:
        pass

    from kubernetes_asyncio.client import V1ObjectMeta, V1OwnerReference

    class KubernetesModel(abc.ABC):
        @classmethod
        def __subclasshook__(cls, subcls: Any) -> Any:
            if cls is KubernetesModel:
                if any(
                    C.__module__.startswith("kubernetes.client.models.")
                    or C.__module__.startswith("kubernetes_asyncio.client.models.")
                    for C in subcls.__mro__
                ):
                    return True
            return NotImplemented

        @property
        def metadata(self) -> Optional[V1ObjectMeta]:
            raise NotImplementedError

        @metadata.setter
        def metadata(self, _: Optional[V1ObjectMeta]) -> None:
            raise NotImplementedError

    thirdparty_module = types.ModuleType("thirdparty")
    # pykube is not used by this operator; kopf only needs a class to test against.
    thirdparty_module.PykubeObject = _dummy
    thirdparty_module.KubernetesModel = KubernetesModel
    thirdparty_module.V1ObjectMeta = V1ObjectMeta
    thirdparty_module.V1OwnerReference = V1OwnerReference
    setattr(thirdparty_module, _PATCHED_MARKER, True)

    sys.modules["kopf._cogs.helpers.thirdparty"] = thirdparty_module
