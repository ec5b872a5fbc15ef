"""
Pricing data models.

All entities are frozen; mappings are exposed through read-only views so a
PricingManager cannot be changed once the parser has built it.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, Dict, Mapping, Optional, Tuple, Union

from .expressions.nodes import CompiledExpression
from .versioning.version import Version

Value = Union[bool, int, float, str]


def freeze(mapping: Optional[Mapping[str, Any]] = None) -> Mapping[str, Any]:
    """Read-only copy of ``mapping``."""
    return MappingProxyType(dict(mapping or {}))


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class FeatureType(str, Enum):
    """Feature categories."""
    CAPABILITY = "CAPABILITY"
    AUTOMATION = "AUTOMATION"
    GUARANTEE = "GUARANTEE"
    SUPPORT = "SUPPORT"
    PAYMENT = "PAYMENT"
    INFORMATION = "INFORMATION"


class UsageLimitType(str, Enum):
    """Usage limit categories."""
    RENEWABLE = "RENEWABLE"
    NON_RENEWABLE = "NON_RENEWABLE"
    RESPONSE_DRIVEN = "RESPONSE_DRIVEN"
    TIME_DRIVEN = "TIME_DRIVEN"


class ValueType(str, Enum):
    """Primitive kind of a feature or usage limit value."""
    BOOLEAN = "BOOLEAN"
    NUMERIC = "NUMERIC"
    TEXT = "TEXT"

    def accepts(self, value: Any) -> bool:
        return VALUE_TYPE_CHECKS[self](value)

    @property
    def shape(self) -> str:
        return VALUE_TYPE_SHAPES[self]


VALUE_TYPE_CHECKS: Dict[ValueType, Callable[[Any], bool]] = {
    ValueType.BOOLEAN: lambda value: isinstance(value, bool),
    ValueType.NUMERIC: _is_number,
    ValueType.TEXT: lambda value: isinstance(value, str),
}

VALUE_TYPE_SHAPES: Dict[ValueType, str] = {
    ValueType.BOOLEAN: "boolean",
    ValueType.NUMERIC: "number",
    ValueType.TEXT: "text",
}

# Adding a ValueType member without a check is a programming error
assert set(VALUE_TYPE_CHECKS) == set(ValueType) == set(VALUE_TYPE_SHAPES)

USAGE_LIMIT_VALUE_TYPES = (ValueType.BOOLEAN, ValueType.NUMERIC)


@dataclass(frozen=True)
class Feature:
    """Catalog feature."""
    id: str
    name: str
    type: FeatureType
    value_type: ValueType
    default_value: Optional[Value] = None
    description: Optional[str] = None
    formula: Optional[CompiledExpression] = None
    variables: Mapping[str, Value] = field(default_factory=freeze)
    tags: Tuple[str, ...] = ()


@dataclass(frozen=True)
class UsageLimit:
    """Catalog usage limit."""
    id: str
    name: str
    type: UsageLimitType
    value_type: ValueType
    default_value: Value
    unit: str
    description: Optional[str] = None
    linked_features: Tuple[str, ...] = ()


@dataclass(frozen=True)
class Price:
    """Literal price, or a formula resolved against its declared variables."""
    amount: Union[int, float]
    formula: Optional[CompiledExpression] = None
    variables: Mapping[str, Value] = field(default_factory=freeze)

    @property
    def is_formula(self) -> bool:
        return self.formula is not None


@dataclass(frozen=True)
class Plan:
    """Pricing plan with sparse overrides."""
    name: str
    description: Optional[str] = None
    price: Optional[Price] = None
    unit: Optional[str] = None
    private: bool = False
    features: Mapping[str, Value] = field(default_factory=freeze)
    usage_limits: Mapping[str, Value] = field(default_factory=freeze)


@dataclass(frozen=True)
class AddOn:
    """Optional bundle of overrides that wins over plan overrides."""
    name: str
    description: Optional[str] = None
    price: Optional[Price] = None
    unit: Optional[str] = None
    available_for: Tuple[str, ...] = ()
    depends_on: Tuple[str, ...] = ()
    excludes: Tuple[str, ...] = ()
    features: Mapping[str, Value] = field(default_factory=freeze)
    usage_limits: Mapping[str, Value] = field(default_factory=freeze)

    def is_available_for(self, plan_name: str) -> bool:
        """An add-on without ``availableFor`` combines with every plan."""
        return not self.available_for or plan_name in self.available_for


@dataclass(frozen=True)
class PricingManager:
    """Root of a parsed pricing configuration."""
    saas_name: str
    currency: str
    created_at: date
    version: Version
    features: Mapping[str, Feature]
    usage_limits: Mapping[str, UsageLimit] = field(default_factory=freeze)
    plans: Mapping[str, Plan] = field(default_factory=freeze)
    add_ons: Mapping[str, AddOn] = field(default_factory=freeze)
    has_annual_payment: bool = False
    starts: Optional[datetime] = None
    ends: Optional[datetime] = None
    url: Optional[str] = None
    pricing_version: Optional[str] = None
    variables: Mapping[str, Value] = field(default_factory=freeze)

    def is_active_at(self, moment: datetime) -> bool:
        """Whether ``moment`` (timezone-aware) falls inside the validity window."""
        if self.starts is not None and moment < self.starts:
            return False
        if self.ends is not None and moment > self.ends:
            return False
        return True
