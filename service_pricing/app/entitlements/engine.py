"""
Entitlement evaluation engine.

Effective value of every catalog feature and usage limit, in precedence
order:

1. override of an active add-on (later add-ons in catalog order win)
2. override of the plan
3. catalog value (formula result, or defaultValue)
"""

from typing import Any, Iterable, List, Mapping, Optional, Sequence

from shared.errors import (
    ExpressionEvaluationError,
    IncompatibleAddOnError,
    UnknownAddOnError,
    UnknownPlanError,
)
from shared.logging import get_logger
from ..expressions import ExpressionEvaluator, value_kind
from ..models import AddOn, Feature, PricingManager, Value, freeze
from .snapshot import EntitlementSnapshot

_NO_OVERRIDE = object()


class EntitlementEngine:
    """Computes entitlement snapshots from a PricingManager."""

    def __init__(self, evaluator: Optional[ExpressionEvaluator] = None):
        self.logger = get_logger("pricing.entitlements")
        self.evaluator = evaluator or ExpressionEvaluator()

    def evaluate(
        self,
        manager: PricingManager,
        plan_id: Optional[str],
        active_add_on_ids: Optional[Iterable[str]] = None,
        variables: Optional[Mapping[str, Any]] = None
    ) -> EntitlementSnapshot:
        """Evaluate entitlements for ``plan_id`` with the given add-ons active.

        ``plan_id`` may only be None for a pricing without plans.
        """
        if plan_id is None and not manager.plans:
            plan_features: Mapping[str, Value] = freeze()
            plan_limits: Mapping[str, Value] = freeze()
        else:
            plan = manager.plans.get(plan_id)
            if plan is None:
                raise UnknownPlanError(str(plan_id))
            plan_features, plan_limits = plan.features, plan.usage_limits

        add_ons = self._resolve_add_ons(manager, plan_id, active_add_on_ids)
        request_variables = dict(variables or {})

        features = {}
        for feature_id, feature in manager.features.items():
            value = self._override(feature_id, plan_features, [a.features for a in add_ons])
            if value is _NO_OVERRIDE:
                value = self._catalog_value(manager, feature, request_variables)
            features[feature_id] = value

        usage_limits = {}
        for limit_id, usage_limit in manager.usage_limits.items():
            value = self._override(limit_id, plan_limits, [a.usage_limits for a in add_ons])
            usage_limits[limit_id] = usage_limit.default_value if value is _NO_OVERRIDE else value

        snapshot = EntitlementSnapshot(
            plan=plan_id,
            add_ons=tuple(sorted(add_on.name for add_on in add_ons)),
            features=freeze(features),
            usage_limits=freeze(usage_limits),
        )

        self.logger.debug(
            "Entitlements evaluated",
            saas_name=manager.saas_name,
            plan=plan_id,
            add_ons=list(snapshot.add_ons)
        )
        return snapshot

    def _resolve_add_ons(
        self,
        manager: PricingManager,
        plan_id: Optional[str],
        active_add_on_ids: Optional[Iterable[str]]
    ) -> List[AddOn]:
        if active_add_on_ids is None:
            return []
        if isinstance(active_add_on_ids, str):
            active_add_on_ids = (active_add_on_ids,)

        requested = set(active_add_on_ids)
        for name in sorted(requested):
            if name not in manager.add_ons:
                raise UnknownAddOnError(name)

        # Catalog order gives a deterministic precedence among add-ons
        active = [add_on for name, add_on in manager.add_ons.items() if name in requested]

        for add_on in active:
            if plan_id is not None and not add_on.is_available_for(plan_id):
                raise IncompatibleAddOnError(
                    add_on.name,
                    f"The add-on {add_on.name} is not available for the plan {plan_id}",
                )
            for dependency in add_on.depends_on:
                if dependency not in requested:
                    raise IncompatibleAddOnError(
                        add_on.name,
                        f"The add-on {add_on.name} requires the add-on {dependency} to be active",
                    )
            for excluded in add_on.excludes:
                if excluded in requested:
                    raise IncompatibleAddOnError(
                        add_on.name,
                        f"The add-on {add_on.name} cannot be combined with the add-on {excluded}",
                    )

        return active

    def _override(self, item_id: str, plan_overrides: Mapping[str, Value], add_on_overrides: Sequence[Mapping[str, Value]]) -> Any:
        for overrides in reversed(add_on_overrides):
            if item_id in overrides:
                return overrides[item_id]
        return plan_overrides.get(item_id, _NO_OVERRIDE)

    def _catalog_value(self, manager: PricingManager, feature: Feature, request_variables: Mapping[str, Any]) -> Optional[Value]:
        if feature.formula is None:
            return feature.default_value

        scope = dict(manager.variables)
        scope.update(feature.variables)
        # Request variables rebind declared names only
        for name, value in request_variables.items():
            if name in scope:
                scope[name] = value

        result = self.evaluator.evaluate(feature.formula, scope)
        if not feature.value_type.accepts(result):
            raise ExpressionEvaluationError(
                f"Formula of feature '{feature.id}' evaluated to {value_kind(result)} "
                f"and must be {feature.value_type.shape}",
                {"feature": feature.id, "type": value_kind(result)},
            )
        return result


def evaluate_entitlement(
    manager: PricingManager,
    plan_id: Optional[str],
    active_add_on_ids: Optional[Iterable[str]] = None,
    variables: Optional[Mapping[str, Any]] = None
) -> EntitlementSnapshot:
    """Evaluate the entitlement snapshot for a plan and its active add-ons."""
    return EntitlementEngine().evaluate(manager, plan_id, active_add_on_ids, variables)
