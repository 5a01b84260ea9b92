"""Normalization of resource allocation values into Kubernetes quantities.

Older generations of the Astarte resource stored `resources.requests` and
`resources.limits` entries inconsistently: as integers, as floats or as quantity
strings. These helpers turn any of those shapes into one canonical quantity string,
and refuse anything else.
"""
from decimal import Decimal
from typing import Any, Dict, Optional
from kubernetes.utils import parse_quantity as parse_kubernetes_quantity

from astarte_operator.utils.errors import QuantityError

#: Only these entries of requests/limits are carried over from legacy documents.
NORMALIZED_RESOURCES = ("cpu", "memory")


def parse_quantity(value: str) -> Decimal:
    """Parse a quantity string (e.g. "500m", "1Gi", "2e3") into its numeric value."""
    if not isinstance(value, str):
        raise QuantityError(f"Could not parse {value!r} as a quantity. Type is {type(value).__name__}")
    try:
        quantity = parse_kubernetes_quantity(value.strip())
    except ValueError as ex:
        raise QuantityError(f"Could not parse {value!r} as a quantity: {ex}") from ex
    if not quantity.is_finite():
        raise QuantityError(f"Could not parse {value!r} as a quantity")
    return quantity


def normalize_quantity(value: Any) -> str:
    """Turn an integer, float or quantity string into a canonical quantity string.

    Integers and floats are truncated to whole units, the way the previous
    controller generation interpreted them. Strings are validated and returned
    stripped. Any other shape (including booleans) is refused.
    """
    if isinstance(value, bool):
        raise QuantityError(f"Could not parse {value!r} as a quantity. Type is bool")
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return str(int(value))
    if isinstance(value, str):
        parse_quantity(value)
        return value.strip()
    raise QuantityError(
        f"Could not parse {value!r} as a quantity. Type is {type(value).__name__}"
    )


def normalize_resource_requirements(resources: Optional[Dict]) -> Optional[Dict]:
    """Normalize a `{requests, limits}` mapping found in a legacy document.

    Returns None when there is nothing to normalize.
    """
    if not resources:
        return None
    if not isinstance(resources, dict):
        raise QuantityError(f"Expected a mapping of resource requirements, got {resources!r}")
    normalized = {}
    for section in ("requests", "limits"):
        if section not in resources:
            continue
        entries = resources[section] or {}
        if not isinstance(entries, dict):
            raise QuantityError(f"Expected a mapping for {section}, got {entries!r}")
        normalized[section] = {
            name: normalize_quantity(entries[name])
            for name in NORMALIZED_RESOURCES
            if name in entries
        }
    return normalized
