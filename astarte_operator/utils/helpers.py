import jsonpickle
from datetime import datetime, timezone
from typing import Any, Dict, Mapping


def now() -> str:
    return datetime.now(timezone.utc).isoformat()


def sort_dict_keys(d):
    """Recursively sort dictionary keys and handle nested structures.

    Args:
        d: Data structure (dict, list, or primitive type)

    Returns:
        Sorted version of the data structure
    """
    if isinstance(d, dict):
        return {key: sort_dict_keys(value) for key, value in sorted(d.items())}
    elif isinstance(d, list):
        return [sort_dict_keys(item) for item in d]
    else:
        return d


def canonicalize_dict(data):
    """
    Returns a canonical JSON representation of a dictionary.

    Keys are sorted recursively so that the representation stays the same
    regardless of insertion order.
    """
    return jsonpickle.dumps(sort_dict_keys(data), unpicklable=False)


def without_nulls(data: Mapping[str, Any]) -> Dict[str, Any]:
    """Drop keys whose value is None (one level deep)."""
    return {k: v for k, v in data.items() if v is not None}


def dashed(value: str) -> str:
    """housekeeping_api -> housekeeping-api"""
    return value.replace("_", "-")
