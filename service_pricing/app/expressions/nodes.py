"""
Expression tree produced by the compiler.

Every node records its own depth so that the compiler can bound the tree
while building it.
"""

from dataclasses import dataclass
from typing import FrozenSet, Union

Scalar = Union[bool, int, float, str]


@dataclass(frozen=True)
class Literal:
    value: Scalar
    depth: int = 1


@dataclass(frozen=True)
class Variable:
    name: str
    depth: int = 1


@dataclass(frozen=True)
class UnaryOp:
    operator: str
    operand: "ExpressionNode"
    depth: int = 1


@dataclass(frozen=True)
class BinaryOp:
    operator: str
    left: "ExpressionNode"
    right: "ExpressionNode"
    depth: int = 1


ExpressionNode = Union[Literal, Variable, UnaryOp, BinaryOp]


@dataclass(frozen=True)
class CompiledExpression:
    """A validated formula ready for evaluation."""
    source: str
    root: ExpressionNode
    variables: FrozenSet[str]

    def __str__(self) -> str:
        return self.source
