"""
Price expression package.

A deliberately small formula language: arithmetic, comparison, boolean
logic and variable lookup. There is no function call, attribute access
or host-language evaluation.

- tokenizer: Formula text to tokens.
- compiler: Tokens to a depth-bounded expression tree.
- evaluator: Interpreter over the tree with strict operand typing.
"""

from .compiler import ExpressionCompiler
from .evaluator import ExpressionEvaluator, value_kind
from .nodes import CompiledExpression

__all__ = [
    "CompiledExpression",
    "ExpressionCompiler",
    "ExpressionEvaluator",
    "value_kind",
]
