import json
import kopf
import kubernetes_asyncio

_ALREADY_EXISTS = "alreadyexists"
_CONFLICT = "conflict"


class AstarteOperatorError(Exception):
    """Base class for errors raised by the reconciliation core."""


class InvalidVersionError(AstarteOperatorError, ValueError):
    """The requested platform version cannot be parsed."""


class QuantityError(AstarteOperatorError, ValueError):
    """A resource allocation value cannot be normalized into a quantity."""


class MigrationError(AstarteOperatorError):
    """Legacy state could not be migrated to the current format."""


class ConfigurationError(AstarteOperatorError):
    """The declared instance cannot be realized as written."""


def _reason(ex: kubernetes_asyncio.client.ApiException) -> str:
    try:
        err = json.loads(ex.body) if ex.body else {}
    except (json.JSONDecodeError, TypeError):
        return ""
    return (err.get("reason") or "").lower()


def already_exists_error(ex: kubernetes_asyncio.client.ApiException) -> bool:
    if not isinstance(ex, kubernetes_asyncio.client.ApiException):
        return False
    else:
        return ex.status == 409 and _reason(ex) == _ALREADY_EXISTS


def conflict_error(ex: kubernetes_asyncio.client.ApiException) -> bool:
    """True for a stale-write conflict (409 that is not an AlreadyExists)."""
    if not isinstance(ex, kubernetes_asyncio.client.ApiException):
        return False
    else:
        return ex.status == 409 and _reason(ex) in (_CONFLICT, "")


def convert_api_exception(ex: kubernetes_asyncio.client.ApiException, permanent: bool = None):
    """
    Convert kubernetes ApiException to a Kopf-friendly exception.

    Args:
        ex: The ApiException to convert
        permanent: If True, raises PermanentError (won't retry). If False, raises TemporaryError (will retry).
                   If None, automatically determines based on status code.

    Raises:
        kopf.TemporaryError or kopf.PermanentError with serializable error details
    """
    if not isinstance(ex, kubernetes_asyncio.client.ApiException):
        raise ex

    error_msg = f"Kubernetes API error ({ex.status}): {ex.reason}"

    try:
        if ex.body:
            body = json.loads(ex.body)
            if "message" in body:
                error_msg = f"{error_msg} - {body['message']}"
    except (json.JSONDecodeError, AttributeError, TypeError):
        pass

    # 4xx errors (except 408, 409, 429) are typically permanent
    if permanent is None:
        is_permanent = 400 <= ex.status < 500 and ex.status not in [408, 409, 429]
    else:
        is_permanent = permanent

    if is_permanent:
        raise kopf.PermanentError(error_msg) from ex
    else:
        raise kopf.TemporaryError(error_msg, delay=30) from ex
