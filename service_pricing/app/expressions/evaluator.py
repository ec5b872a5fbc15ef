"""
Interpreter for compiled formulas.

Operands are never coerced: arithmetic and ordering take numbers, boolean
logic takes booleans, and equality takes two operands of the same kind.
"""

import math
from typing import Any, Mapping, Union

from shared.errors import ExpressionEvaluationError
from shared.logging import get_logger
from .nodes import BinaryOp, CompiledExpression, ExpressionNode, Literal, UnaryOp, Variable

Value = Union[bool, int, float, str]

ARITHMETIC_OPERATORS = {"+", "-", "*", "/"}
ORDERING_OPERATORS = {"<", "<=", ">", ">="}
EQUALITY_OPERATORS = {"==", "!="}
LOGICAL_OPERATORS = {"and", "or"}


def value_kind(value: Any) -> str:
    """Name of the operand kind used in error messages."""
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "numeric"
    if isinstance(value, str):
        return "text"
    if value is None:
        return "null"
    return type(value).__name__


def _unsupported(operator: str, left: Any, right: Any) -> ExpressionEvaluationError:
    left_kind, right_kind = value_kind(left), value_kind(right)
    return ExpressionEvaluationError(
        f"The operator '{operator}' is not supported between operands of type "
        f"'{left_kind}' and '{right_kind}'",
        {"operator": operator, "left": left_kind, "right": right_kind},
    )


def _is_finite(value: Any) -> bool:
    return not isinstance(value, float) or math.isfinite(value)


def _out_of_range(operator: str, left: Any, right: Any) -> ExpressionEvaluationError:
    left_kind, right_kind = value_kind(left), value_kind(right)
    return ExpressionEvaluationError(
        f"The operator '{operator}' produced a result outside the finite numeric range "
        f"for operands of type '{left_kind}' and '{right_kind}'",
        {"operator": operator, "left": left_kind, "right": right_kind},
    )


class ExpressionEvaluator:
    """Evaluates compiled formulas against declared variables."""

    def __init__(self):
        self.logger = get_logger("pricing.expressions")

    def evaluate(self, expression: CompiledExpression, variables: Mapping[str, Any]) -> Value:
        """Evaluate ``expression``; every referenced variable must be in ``variables``."""
        try:
            result = self._evaluate(expression.root, variables)
            if not _is_finite(result):
                raise ExpressionEvaluationError(
                    f"Formula '{expression.source}' evaluated to a non-finite number",
                    {"formula": expression.source},
                )
        except ExpressionEvaluationError as e:
            self.logger.debug("Formula evaluation failed", formula=expression.source, error=e.message)
            raise
        return result

    def _evaluate(self, node: ExpressionNode, variables: Mapping[str, Any]) -> Value:
        if isinstance(node, Literal):
            return node.value

        if isinstance(node, Variable):
            if node.name not in variables:
                raise ExpressionEvaluationError(
                    f"Variable '{node.name}' is not declared",
                    {"variable": node.name},
                )
            value = variables[node.name]
            if value_kind(value) not in ("boolean", "numeric", "text"):
                raise ExpressionEvaluationError(
                    f"Variable '{node.name}' has unsupported type '{value_kind(value)}'",
                    {"variable": node.name, "type": value_kind(value)},
                )
            return value

        if isinstance(node, UnaryOp):
            return self._apply_unary(node.operator, self._evaluate(node.operand, variables))

        if isinstance(node, BinaryOp):
            left = self._evaluate(node.left, variables)
            right = self._evaluate(node.right, variables)
            return self._apply_binary(node.operator, left, right)

        raise ExpressionEvaluationError(f"Unsupported expression node '{type(node).__name__}'")

    def _apply_unary(self, operator: str, operand: Value) -> Value:
        expected = "numeric" if operator == "-" else "boolean"
        if value_kind(operand) != expected:
            raise ExpressionEvaluationError(
                f"The operator '{operator}' is not supported for an operand of type '{value_kind(operand)}'",
                {"operator": operator, "operand": value_kind(operand)},
            )
        return -operand if operator == "-" else not operand

    def _apply_binary(self, operator: str, left: Value, right: Value) -> Value:
        left_kind, right_kind = value_kind(left), value_kind(right)

        if operator in ARITHMETIC_OPERATORS or operator in ORDERING_OPERATORS:
            if left_kind != "numeric" or right_kind != "numeric":
                raise _unsupported(operator, left, right)
        elif operator in LOGICAL_OPERATORS:
            if left_kind != "boolean" or right_kind != "boolean":
                raise _unsupported(operator, left, right)
        elif operator in EQUALITY_OPERATORS:
            if left_kind != right_kind:
                raise _unsupported(operator, left, right)
        else:
            raise ExpressionEvaluationError(f"Unknown operator '{operator}'", {"operator": operator})

        if operator in ARITHMETIC_OPERATORS:
            return self._arithmetic(operator, left, right)
        if operator == "<":
            return left < right
        if operator == "<=":
            return left <= right
        if operator == ">":
            return left > right
        if operator == ">=":
            return left >= right
        if operator == "==":
            return left == right
        if operator == "!=":
            return left != right
        if operator == "and":
            return left and right
        return left or right

    def _arithmetic(self, operator: str, left: Value, right: Value) -> Value:
        if operator == "/" and right == 0:
            raise ExpressionEvaluationError(
                "Division by zero: the right operand of '/' evaluated to 0",
                {"operator": operator},
            )

        try:
            if operator == "+":
                result = left + right
            elif operator == "-":
                result = left - right
            elif operator == "*":
                result = left * right
            else:
                result = left / right
        except ArithmeticError as exc:
            # int to float conversion of huge operands
            raise _out_of_range(operator, left, right) from exc

        if not _is_finite(result):
            raise _out_of_range(operator, left, right)
        return result
