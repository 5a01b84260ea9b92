import os
from typing import Any

_TRUE, _FALSE = {"True", "true", "yes", "1"}, {"False", "false", "no", "0"}


def _getenv(name: str, *default: Any) -> Any:
    try:
        v = os.environ[name]
        if v in _TRUE:
            return True
        elif v in _FALSE:
            return False
        else:
            return v
    except KeyError:
        pass
    if default:
        return default[0]
    raise KeyError(name)


# ------------------------------------------------
# ---- Defaults and environment variables ----
# ------------------------------------------------

#: Maximum number of attempts when persisting status hits a stale-write conflict
STATUS_UPDATE_RETRY_ATTEMPTS = int(_getenv("STATUS_UPDATE_RETRY_ATTEMPTS", 5))

#: Seconds to wait before the first status write retry
STATUS_UPDATE_RETRY_BACKOFF_SECONDS = float(
    _getenv("STATUS_UPDATE_RETRY_BACKOFF_SECONDS", 0.1)
)

#: Multiplier applied to the backoff after every failed status write attempt
STATUS_UPDATE_RETRY_BACKOFF_FACTOR = float(
    _getenv("STATUS_UPDATE_RETRY_BACKOFF_FACTOR", 2.0)
)

#: Seconds before retrying a pass whose requested version could not be parsed
INCONSISTENT_VERSION_RETRY_DELAY_SECONDS = int(
    _getenv("INCONSISTENT_VERSION_RETRY_DELAY_SECONDS", 60)
)

#: Maximum delay between two reconciliation passes of the same instance
RECONCILE_INTERVAL_SECONDS = float(_getenv("RECONCILE_INTERVAL_SECONDS", 60.0))

#: Stored platform version denoting a development snapshot; upgrade checks are skipped for it
SNAPSHOT_VERSION = _getenv("SNAPSHOT_VERSION", "snapshot")

#: Image organization used when a component does not declare its own image
DEFAULT_IMAGE_ORG = _getenv("DEFAULT_IMAGE_ORG", "astarte")

#: Image of the one-shot job exporting the CFSSL CA into a secret (platform < 1.0.0)
CFSSL_CA_SECRET_JOB_IMAGE = _getenv(
    "CFSSL_CA_SECRET_JOB_IMAGE", "astarte/cfssl-ca-secret-job:0.11"
)


class Settings:
    """Operator settings"""

    status_update_retry_attempts: int = STATUS_UPDATE_RETRY_ATTEMPTS
    status_update_retry_backoff_seconds: float = STATUS_UPDATE_RETRY_BACKOFF_SECONDS
    status_update_retry_backoff_factor: float = STATUS_UPDATE_RETRY_BACKOFF_FACTOR
    inconsistent_version_retry_delay_seconds: int = INCONSISTENT_VERSION_RETRY_DELAY_SECONDS
    reconcile_interval_seconds: float = RECONCILE_INTERVAL_SECONDS
    snapshot_version: str = SNAPSHOT_VERSION
    default_image_org: str = DEFAULT_IMAGE_ORG
    cfssl_ca_secret_job_image: str = CFSSL_CA_SECRET_JOB_IMAGE

    def __init__(
        self,
        *args,
        status_update_retry_attempts: int = None,
        status_update_retry_backoff_seconds: float = None,
        status_update_retry_backoff_factor: float = None,
        inconsistent_version_retry_delay_seconds: int = None,
        reconcile_interval_seconds: float = None,
        snapshot_version: str = None,
        default_image_org: str = None,
        cfssl_ca_secret_job_image: str = None,
        **kwargs,
    ):
        if status_update_retry_attempts is not None:
            self.status_update_retry_attempts = status_update_retry_attempts

        if status_update_retry_backoff_seconds is not None:
            self.status_update_retry_backoff_seconds = status_update_retry_backoff_seconds

        if status_update_retry_backoff_factor is not None:
            self.status_update_retry_backoff_factor = status_update_retry_backoff_factor

        if inconsistent_version_retry_delay_seconds is not None:
            self.inconsistent_version_retry_delay_seconds = (
                inconsistent_version_retry_delay_seconds
            )

        if reconcile_interval_seconds is not None:
            self.reconcile_interval_seconds = reconcile_interval_seconds

        if snapshot_version is not None:
            self.snapshot_version = snapshot_version

        if default_image_org is not None:
            self.default_image_org = default_image_org

        if cfssl_ca_secret_job_image is not None:
            self.cfssl_ca_secret_job_image = cfssl_ca_secret_job_image
