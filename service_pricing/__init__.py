"""
Pricing access core.

Describes a SaaS monetization model (plans, add-ons, features, usage
limits and dynamic prices) as a versioned document and answers, at
runtime, what a user is entitled to under a plan and a set of add-ons.

Entry points consumed by collaborators (token issuance, request filters):

- parse(document) -> PricingManager
- evaluate_entitlement(manager, plan_id, active_add_on_ids, variables) -> EntitlementSnapshot
- serialize(snapshot) -> bytes
- diff(snapshot_a, snapshot_b) -> bool

Signing, transport and interception wiring live outside this package. A
parsed PricingManager is immutable and may be shared across requests;
caching it is the caller's responsibility.
"""

from .app.entitlements import EntitlementSnapshot, deserialize, diff, evaluate_entitlement, serialize
from .app.models import PricingManager
from .app.parser import parse

__all__ = [
    "EntitlementSnapshot",
    "PricingManager",
    "deserialize",
    "diff",
    "evaluate_entitlement",
    "parse",
    "serialize",
]
