import datetime
import kopf
from astarte_operator.handlers.astarte import reconciliation_locks


@kopf.on.probe(id='now')
def get_current_timestamp(**kwargs):
    return datetime.datetime.now(datetime.timezone.utc).isoformat()


@kopf.on.probe(id='reconciling')
def get_reconciling_instances(**kwargs):
    """Instances with a pass in progress."""
    return sorted(key for key, lock in reconciliation_locks.items() if lock.locked())
