"""
Snapshot serializer and differ.

The compact form is UTF-8 JSON with sorted keys and no whitespace:

    {"features":{"haveCalendar":true},"usageLimits":{"maxPets":4}}

Ids whose effective value is null are omitted. Two snapshots differ when
their (namespace, id, value) sets differ; key order never matters and a
boolean never equals a number.
"""

import json
import math
from typing import Any, Dict, FrozenSet, Mapping, Tuple, Union

from ..expressions import value_kind
from ..models import Value
from .snapshot import EntitlementSnapshot

FEATURES_KEY = "features"
USAGE_LIMITS_KEY = "usageLimits"

Payload = Dict[str, Dict[str, Value]]
Comparable = Union[EntitlementSnapshot, bytes, Mapping[str, Mapping[str, Any]]]
Entry = Tuple[str, str, str, Any]


def to_payload(snapshot: EntitlementSnapshot) -> Payload:
    """Nested dict form of ``snapshot`` without null values."""
    return {
        FEATURES_KEY: {k: v for k, v in snapshot.features.items() if v is not None},
        USAGE_LIMITS_KEY: {k: v for k, v in snapshot.usage_limits.items() if v is not None},
    }


def serialize(snapshot: EntitlementSnapshot) -> bytes:
    """Deterministic compact bytes for ``snapshot``."""
    return json.dumps(
        to_payload(snapshot), sort_keys=True, separators=(",", ":"), allow_nan=False
    ).encode("utf-8")


def deserialize(data: bytes) -> Payload:
    """Read bytes produced by ``serialize`` back into payload form."""
    payload = json.loads(data.decode("utf-8"))
    if not isinstance(payload, dict):
        raise ValueError("Serialized snapshot must be a JSON object")

    result: Payload = {}
    for namespace in (FEATURES_KEY, USAGE_LIMITS_KEY):
        section = payload.get(namespace, {})
        if not isinstance(section, dict):
            raise ValueError(f'Serialized snapshot "{namespace}" must be a JSON object')
        result[namespace] = section
    return result


def _normalize(value: Any) -> Any:
    if isinstance(value, float) and math.isnan(value):
        return "NaN"
    return value


def entries(item: Comparable) -> FrozenSet[Entry]:
    """Order-independent (namespace, id, kind, value) set of ``item``."""
    if isinstance(item, EntitlementSnapshot):
        payload: Mapping[str, Mapping[str, Any]] = to_payload(item)
    elif isinstance(item, (bytes, bytearray)):
        payload = deserialize(bytes(item))
    else:
        payload = item

    # The kind keeps True apart from 1, which hash and compare equal
    return frozenset(
        (namespace, item_id, value_kind(value), _normalize(value))
        for namespace in (FEATURES_KEY, USAGE_LIMITS_KEY)
        for item_id, value in payload.get(namespace, {}).items()
        if value is not None
    )


def diff(a: Comparable, b: Comparable) -> bool:
    """True when ``a`` and ``b`` grant different entitlements."""
    return entries(a) != entries(b)
