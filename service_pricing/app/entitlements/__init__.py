"""
Entitlements package.

- engine: Effective value resolution for a plan and active add-ons.
- snapshot: The resulting EntitlementSnapshot.
- serializer: Compact serialization and change detection between snapshots,
  used to decide whether a new pricing token has to be issued.
"""

from .engine import EntitlementEngine, evaluate_entitlement
from .serializer import deserialize, diff, entries, serialize, to_payload
from .snapshot import EntitlementSnapshot

__all__ = [
    "EntitlementEngine",
    "EntitlementSnapshot",
    "deserialize",
    "diff",
    "entries",
    "evaluate_entitlement",
    "serialize",
    "to_payload",
]
