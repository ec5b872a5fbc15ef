"""
Pricing document parser.

Turns a decoded pricing document into a PricingManager. The document is
first migrated to the canonical syntax version; the canonical tree is
then walked in fixed-order phases, each of which aborts the whole parse
on its first error:

1. basic attributes
2. feature catalog
3. usage limits
4. plans
5. add-ons

No partially built model is ever returned.
"""

import math
from typing import Any, Dict, Mapping, Optional, Set, Tuple, Type, TypeVar

from shared.errors import (
    ConfigError,
    ExpressionEvaluationError,
    InvalidValueError,
    MissingRequiredFieldError,
    TypeMismatchError,
    UnknownEnumValueError,
    UnresolvedReferenceError,
)
from shared.logging import get_logger
from .document import Node, NodeKind
from .expressions import CompiledExpression, ExpressionCompiler, ExpressionEvaluator, value_kind
from .models import (
    USAGE_LIMIT_VALUE_TYPES,
    AddOn,
    Feature,
    FeatureType,
    Plan,
    Price,
    PricingManager,
    UsageLimit,
    UsageLimitType,
    Value,
    ValueType,
    freeze,
)
from .versioning import CANONICAL_VERSION, Version, VersionResolver
from .versioning.temporal import parse_canonical_date, parse_canonical_instant

E = TypeVar("E", FeatureType, UsageLimitType, ValueType)

SCALAR_KINDS = (NodeKind.BOOLEAN, NodeKind.INTEGER, NodeKind.FLOAT, NodeKind.TEXT)
NUMBER_KINDS = (NodeKind.INTEGER, NodeKind.FLOAT)


class PricingParser:
    """Builds PricingManager instances from pricing documents."""

    def __init__(
        self,
        compiler: Optional[ExpressionCompiler] = None,
        evaluator: Optional[ExpressionEvaluator] = None
    ):
        self.logger = get_logger("pricing.parser")
        self.resolver = VersionResolver()
        self.compiler = compiler or ExpressionCompiler()
        self.evaluator = evaluator or ExpressionEvaluator()

    def parse(self, document: Mapping[str, Any]) -> PricingManager:
        """Resolve the syntax version of ``document`` and parse it."""
        try:
            resolved = self.resolver.resolve(document)
            manager = self.parse_canonical(resolved.document, resolved.version)
        except (ConfigError, ExpressionEvaluationError) as e:
            self.logger.warning("Pricing parse failed", code=e.code, error=e.message)
            raise

        self.logger.info(
            "Pricing parsed",
            saas_name=manager.saas_name,
            version=str(manager.version),
            features=len(manager.features),
            usage_limits=len(manager.usage_limits),
            plans=len(manager.plans),
            add_ons=len(manager.add_ons)
        )
        return manager

    def parse_canonical(self, document: Mapping[str, Any], version: Version = CANONICAL_VERSION) -> PricingManager:
        """Parse a document already in canonical syntax."""
        root = Node.from_native(document)
        root.as_mapping()

        attributes = self._parse_basic_attributes(root)
        variables = attributes["variables"]
        features = self._parse_features(root)
        usage_limits = self._parse_usage_limits(root, features)
        plans = self._parse_plans(root, features, usage_limits, variables)
        add_ons = self._parse_add_ons(root, features, usage_limits, plans, variables)

        if not plans and not add_ons:
            raise MissingRequiredFieldError(
                "plans",
                'At least one of "plans" or "addOns" must be defined and non-empty',
            )

        return PricingManager(
            version=version,
            features=freeze(features),
            usage_limits=freeze(usage_limits),
            plans=freeze(plans),
            add_ons=freeze(add_ons),
            **attributes
        )

    # Phase 1

    def _parse_basic_attributes(self, root: Node) -> Dict[str, Any]:
        attributes: Dict[str, Any] = {
            "saas_name": root.require("saasName").as_text(),
            "currency": root.require("currency").as_text(),
            "created_at": parse_canonical_date(root.require("createdAt").as_text(), "createdAt"),
        }

        annual = root.get("hasAnnualPayment")
        attributes["has_annual_payment"] = annual.as_bool() if annual is not None else False

        for bound in ("starts", "ends"):
            node = root.get(bound)
            attributes[bound] = parse_canonical_instant(node.as_text(), bound) if node is not None else None

        starts, ends = attributes["starts"], attributes["ends"]
        if starts is not None and ends is not None and starts > ends:
            raise InvalidValueError(
                "starts",
                f'"starts" ({starts.isoformat()}) must not be after "ends" ({ends.isoformat()})',
            )

        url = root.get("url")
        attributes["url"] = url.as_text() if url is not None else None

        label = root.get("version")
        if label is None:
            attributes["pricing_version"] = None
        elif label.kind in NUMBER_KINDS:
            attributes["pricing_version"] = str(label.value)
        else:
            attributes["pricing_version"] = label.as_text()

        attributes["variables"] = freeze(self._parse_variables(root.get("variables")))
        return attributes

    # Phase 2

    def _parse_features(self, root: Node) -> Dict[str, Feature]:
        node = root.get("features")
        if node is None:
            raise MissingRequiredFieldError("features")

        features = {}
        for feature_id, entry in node.as_mapping().items():
            features[feature_id] = self._parse_feature(feature_id, entry)

        self.logger.debug("Features parsed", count=len(features))
        return features

    def _parse_feature(self, feature_id: str, node: Node) -> Feature:
        node.as_mapping()
        feature_type = self._parse_enum(node, "type", FeatureType)
        value_type = self._parse_enum(node, "valueType", ValueType)
        formula = self._parse_formula(node)

        default_node = node.get("defaultValue")
        if default_node is not None:
            default_value = self._parse_typed_value(default_node, value_type)
        elif formula is None:
            raise MissingRequiredFieldError(f"{node.path}.defaultValue")
        else:
            default_value = None

        tags = node.get("tags")

        return Feature(
            id=feature_id,
            name=self._optional_text(node, "name") or feature_id,
            type=feature_type,
            value_type=value_type,
            default_value=default_value,
            description=self._optional_text(node, "description"),
            formula=formula,
            variables=freeze(self._parse_variables(node.get("variables"))),
            tags=tuple(tags.text_list()) if tags is not None else (),
        )

    # Phase 3

    def _parse_usage_limits(self, root: Node, features: Mapping[str, Feature]) -> Dict[str, UsageLimit]:
        node = root.get("usageLimits")
        if node is None:
            return {}

        usage_limits = {}
        for limit_id, entry in node.as_mapping().items():
            usage_limits[limit_id] = self._parse_usage_limit(limit_id, entry, features)

        self.logger.debug("Usage limits parsed", count=len(usage_limits))
        return usage_limits

    def _parse_usage_limit(self, limit_id: str, node: Node, features: Mapping[str, Feature]) -> UsageLimit:
        node.as_mapping()
        limit_type = self._parse_enum(node, "type", UsageLimitType)
        value_type = self._parse_enum(node, "valueType", ValueType)
        if value_type not in USAGE_LIMIT_VALUE_TYPES:
            raise UnknownEnumValueError(
                f"{node.path}.valueType", value_type.value, [v.value for v in USAGE_LIMIT_VALUE_TYPES]
            )

        linked = node.get("linkedFeatures")
        linked_features = tuple(linked.text_list()) if linked is not None else ()
        for feature_id in linked_features:
            if feature_id not in features:
                raise UnresolvedReferenceError(linked.path, feature_id, "features")

        return UsageLimit(
            id=limit_id,
            name=self._optional_text(node, "name") or limit_id,
            type=limit_type,
            value_type=value_type,
            default_value=self._parse_typed_value(node.require("defaultValue"), value_type),
            unit=node.require("unit").as_text(),
            description=self._optional_text(node, "description"),
            linked_features=linked_features,
        )

    # Phase 4

    def _parse_plans(
        self,
        root: Node,
        features: Mapping[str, Feature],
        usage_limits: Mapping[str, UsageLimit],
        variables: Mapping[str, Value]
    ) -> Dict[str, Plan]:
        node = root.get("plans")
        if node is None:
            return {}

        plans = {}
        for name, entry in node.as_mapping().items():
            entry.as_mapping()
            private = entry.get("private")
            plans[name] = Plan(
                name=name,
                description=self._optional_text(entry, "description"),
                price=self._parse_price(entry, variables),
                unit=self._optional_text(entry, "unit"),
                private=private.as_bool() if private is not None else False,
                features=self._parse_overrides(entry.get("features"), features, "features"),
                usage_limits=self._parse_overrides(entry.get("usageLimits"), usage_limits, "usageLimits"),
            )

        self.logger.debug("Plans parsed", count=len(plans))
        return plans

    # Phase 5

    def _parse_add_ons(
        self,
        root: Node,
        features: Mapping[str, Feature],
        usage_limits: Mapping[str, UsageLimit],
        plans: Mapping[str, Plan],
        variables: Mapping[str, Value]
    ) -> Dict[str, AddOn]:
        node = root.get("addOns")
        if node is None:
            return {}

        entries = node.as_mapping()
        add_on_names = set(entries)
        add_ons = {}
        for name, entry in entries.items():
            entry.as_mapping()
            add_ons[name] = AddOn(
                name=name,
                description=self._optional_text(entry, "description"),
                price=self._parse_price(entry, variables),
                unit=self._optional_text(entry, "unit"),
                available_for=self._parse_references(entry, "availableFor", set(plans), "plans"),
                depends_on=self._parse_add_on_references(entry, "dependsOn", name, add_on_names),
                excludes=self._parse_add_on_references(entry, "excludes", name, add_on_names),
                features=self._parse_overrides(entry.get("features"), features, "features"),
                usage_limits=self._parse_overrides(entry.get("usageLimits"), usage_limits, "usageLimits"),
            )

        self.logger.debug("Add-ons parsed", count=len(add_ons))
        return add_ons

    def _parse_add_on_references(self, entry: Node, key: str, own_name: str, names: Set[str]) -> Tuple[str, ...]:
        references = self._parse_references(entry, key, names, "addOns")
        if own_name in references:
            raise InvalidValueError(
                f"{entry.path}.{key}",
                f'"{entry.path}.{key}" cannot reference the add-on \'{own_name}\' itself',
            )
        return references

    # Shared helpers

    def _parse_references(self, entry: Node, key: str, known: Set[str], catalog: str) -> Tuple[str, ...]:
        node = entry.get(key)
        if node is None:
            return ()
        references = tuple(node.text_list())
        for reference in references:
            if reference not in known:
                raise UnresolvedReferenceError(node.path, reference, catalog)
        return references

    def _parse_overrides(self, node: Optional[Node], catalog: Mapping[str, Any], catalog_name: str) -> Mapping[str, Value]:
        if node is None:
            return freeze()

        overrides = {}
        for item_id, override in node.as_mapping().items():
            item = catalog.get(item_id)
            if item is None:
                raise UnresolvedReferenceError(override.path, item_id, catalog_name)
            if override.is_null:
                continue

            value = override.get("value")
            if value is not None:
                overrides[item_id] = self._parse_typed_value(value, item.value_type)

        return freeze(overrides)

    def _parse_price(self, entry: Node, variables: Mapping[str, Value]) -> Optional[Price]:
        node = entry.get("price")
        local_variables = self._parse_variables(entry.get("variables"))
        if node is None:
            return None

        if node.kind in NUMBER_KINDS:
            return Price(amount=self._finite(node), variables=freeze(local_variables))

        if node.kind != NodeKind.TEXT:
            raise TypeMismatchError(node.path, node.kind.value, "a number or a formula")

        formula = self.compiler.compile(node.value, node.path)
        scope = dict(variables)
        scope.update(local_variables)
        amount = self.evaluator.evaluate(formula, scope)
        if value_kind(amount) != "numeric":
            raise ExpressionEvaluationError(
                f'Price formula of "{node.path}" evaluated to {value_kind(amount)} and must be numeric',
                {"path": node.path, "type": value_kind(amount)},
            )
        return Price(amount=amount, formula=formula, variables=freeze(local_variables))

    def _parse_formula(self, node: Node) -> Optional[CompiledExpression]:
        formula = node.get("formula")
        if formula is None:
            return None
        return self.compiler.compile(formula.as_text(), formula.path)

    def _parse_variables(self, node: Optional[Node]) -> Dict[str, Value]:
        if node is None:
            return {}
        variables = {}
        for name, value in node.as_mapping().items():
            if value.kind not in SCALAR_KINDS:
                raise TypeMismatchError(value.path, value.kind.value, "boolean, number or text")
            variables[name] = self._finite(value)
        return variables

    def _parse_enum(self, node: Node, key: str, enum_type: Type[E]) -> E:
        child = node.require(key)
        literal = child.as_text()
        try:
            return enum_type(literal)
        except ValueError:
            raise UnknownEnumValueError(child.path, literal, [member.value for member in enum_type]) from None

    def _parse_typed_value(self, node: Node, value_type: ValueType) -> Value:
        if node.kind not in SCALAR_KINDS or not value_type.accepts(node.value):
            raise TypeMismatchError(node.path, node.kind.value, value_type.shape)
        return self._finite(node)

    def _finite(self, node: Node) -> Value:
        if node.kind == NodeKind.FLOAT and not math.isfinite(node.value):
            raise InvalidValueError(node.path, f'"{node.path}" value {node.value} must be a finite number')
        return node.value

    def _optional_text(self, node: Node, key: str) -> Optional[str]:
        child = node.get(key)
        return child.as_text() if child is not None else None


def parse(document: Mapping[str, Any]) -> PricingManager:
    """Parse a decoded pricing document into a PricingManager."""
    return PricingParser().parse(document)
