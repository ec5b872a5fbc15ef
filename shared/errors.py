"""
Shared error handling for the pricing access core.

Two disjoint families are defined:

- ConfigError: raised while resolving or parsing a pricing document.
- EvaluationError: raised while evaluating formulas or entitlements
  against an already parsed PricingManager.

Message wording is part of the contract; callers and tests assert it.
"""

from typing import Dict, Any, Optional, Sequence
from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standard error payload handed to collaborators."""

    code: str
    message: str
    details: Dict[str, Any] = {}


class PricingError(Exception):
    """Base exception for the pricing core."""

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(code=self.code, message=self.message, details=self.details)


# Parse-time errors


class ConfigError(PricingError):
    """Pricing document could not be turned into a PricingManager."""


class ConfigStructureError(ConfigError):
    """A key holds the wrong kind of container."""

    def __init__(self, path: str, expected: str, actual: str):
        super().__init__(
            "CONFIG_STRUCTURE_ERROR",
            f'"{path}" must be a {expected}, got {actual}',
            {"path": path, "expected": expected, "actual": actual},
        )


class MissingRequiredFieldError(ConfigError):
    """A mandatory field is absent or null."""

    def __init__(self, path: str, message: Optional[str] = None):
        super().__init__(
            "MISSING_REQUIRED_FIELD",
            message or f'"{path}" is required and was not defined',
            {"path": path},
        )


class TypeMismatchError(ConfigError):
    """A scalar has the wrong primitive type or an unparseable shape."""

    def __init__(self, path: str, actual: str, expected: str):
        super().__init__(
            "TYPE_MISMATCH",
            f'"{path}" type is {actual} and must be {expected}',
            {"path": path, "expected": expected, "actual": actual},
        )


class UnknownEnumValueError(ConfigError):
    """A literal is outside a closed enumeration."""

    def __init__(self, path: str, value: Any, allowed: Sequence[str]):
        super().__init__(
            "UNKNOWN_ENUM_VALUE",
            f'"{path}" value \'{value}\' is not one of: {", ".join(allowed)}',
            {"path": path, "value": value, "allowed": list(allowed)},
        )


class UnresolvedReferenceError(ConfigError):
    """An id references something missing from its catalog."""

    def __init__(self, path: str, reference: str, catalog: str):
        super().__init__(
            "UNRESOLVED_REFERENCE",
            f'"{path}" references \'{reference}\' which is not defined in {catalog}',
            {"path": path, "reference": reference, "catalog": catalog},
        )


class VersionError(ConfigError):
    """Malformed or unsupported version tag, or mixed-version fields."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__("VERSION_ERROR", message, details)


class ExpressionSyntaxError(ConfigError):
    """A formula does not conform to the expression grammar."""

    def __init__(self, path: str, formula: str, reason: str):
        super().__init__(
            "EXPRESSION_SYNTAX_ERROR",
            f'"{path}" formula \'{formula}\' is invalid: {reason}',
            {"path": path, "formula": formula, "reason": reason},
        )


class InvalidValueError(ConfigError):
    """A well-typed value violates a semantic constraint."""

    def __init__(self, path: str, message: str):
        super().__init__("INVALID_VALUE", message, {"path": path})


# Evaluation-time errors


class EvaluationError(PricingError):
    """Evaluation against a parsed PricingManager failed."""


class ExpressionEvaluationError(EvaluationError):
    """Undeclared variable or type-incompatible operand in a formula."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__("EXPRESSION_EVALUATION_ERROR", message, details)


class UnknownCapabilityError(EvaluationError):
    """A feature or usage limit id is not part of the catalog."""

    def __init__(self, kind: str, capability_id: str):
        super().__init__(
            "UNKNOWN_CAPABILITY",
            f"The {kind} {capability_id} does not exist in the current pricing configuration",
            {"kind": kind, "id": capability_id},
        )


class UnknownPlanError(EvaluationError):
    """The requested plan is not defined."""

    def __init__(self, plan: str):
        super().__init__(
            "UNKNOWN_PLAN",
            f"The plan {plan} does not exist in the current pricing configuration",
            {"plan": plan},
        )


class UnknownAddOnError(EvaluationError):
    """A requested add-on is not defined."""

    def __init__(self, add_on: str):
        super().__init__(
            "UNKNOWN_ADD_ON",
            f"The add-on {add_on} does not exist in the current pricing configuration",
            {"add_on": add_on},
        )


class IncompatibleAddOnError(EvaluationError):
    """An add-on cannot be combined with the plan or the other add-ons."""

    def __init__(self, add_on: str, message: str):
        super().__init__("INCOMPATIBLE_ADD_ON", message, {"add_on": add_on})
