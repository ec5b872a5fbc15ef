"""
Entitlement snapshot model.
"""

from dataclasses import dataclass
from typing import Mapping, Optional, Tuple

from shared.errors import UnknownCapabilityError
from ..models import Value


@dataclass(frozen=True)
class EntitlementSnapshot:
    """Effective values for one plan and set of active add-ons.

    Feature ids and usage limit ids are separate namespaces. A missing id
    raises UnknownCapabilityError; a present id whose value is False, 0
    or empty is a known capability that is disabled.
    """
    plan: Optional[str]
    add_ons: Tuple[str, ...]
    features: Mapping[str, Optional[Value]]
    usage_limits: Mapping[str, Optional[Value]]

    def feature(self, feature_id: str) -> Optional[Value]:
        if feature_id not in self.features:
            raise UnknownCapabilityError("feature", feature_id)
        return self.features[feature_id]

    def usage_limit(self, limit_id: str) -> Optional[Value]:
        if limit_id not in self.usage_limits:
            raise UnknownCapabilityError("usage limit", limit_id)
        return self.usage_limits[limit_id]

    def is_enabled(self, feature_id: str) -> bool:
        """Truthiness of a feature: True, a non-zero number or non-empty text."""
        value = self.feature(feature_id)
        if value is None:
            return False
        return bool(value)
