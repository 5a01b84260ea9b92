from .astarte import Astarte
from .base import BaseResource, SyncOutcome

__all__ = ["Astarte", "BaseResource", "SyncOutcome"]
