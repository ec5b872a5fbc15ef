"""
Recursive-descent compiler for the formula grammar.

    or         := and (("or" | "||") and)*
    and        := not (("and" | "&&") not)*
    not        := ("not" | "!") not | comparison
    comparison := additive (("<" | "<=" | ">" | ">=" | "==" | "!=") additive)?
    additive   := term (("+" | "-") term)*
    term       := unary (("*" | "/") unary)*
    unary      := "-" unary | primary
    primary    := NUMBER | "true" | "false" | IDENTIFIER | "(" or ")"
"""

from typing import List, Optional, Set

from shared.config import get_config
from shared.errors import ExpressionSyntaxError
from .nodes import BinaryOp, CompiledExpression, ExpressionNode, Literal, UnaryOp, Variable
from .tokenizer import FormulaSyntaxError, Token, TokenType, tokenize

# Symbolic spellings are stored under their keyword name
CANONICAL_OPERATORS = {"&&": "and", "||": "or", "!": "not"}

COMPARISON_OPERATORS = ("<=", ">=", "==", "!=", "<", ">")


class _Parser:
    """Single-use parser over a token list."""

    def __init__(self, tokens: List[Token], max_depth: int):
        self.tokens = tokens
        self.position = 0
        self.max_depth = max_depth
        self.nesting = 0

    def parse(self) -> ExpressionNode:
        if self._peek().type == TokenType.END:
            raise FormulaSyntaxError("formula is empty")
        node = self._or()
        token = self._peek()
        if token.type != TokenType.END:
            raise FormulaSyntaxError(f"unexpected '{token.text}' at position {token.position}")
        return node

    def _peek(self) -> Token:
        return self.tokens[self.position]

    def _advance(self) -> Token:
        token = self.tokens[self.position]
        self.position += 1
        return token

    def _match(self, *operators: str) -> Optional[str]:
        token = self._peek()
        if token.type in (TokenType.OPERATOR, TokenType.KEYWORD) and token.text in operators:
            self._advance()
            return CANONICAL_OPERATORS.get(token.text, token.text)
        return None

    def _check_depth(self, depth: int) -> int:
        if depth > self.max_depth:
            raise FormulaSyntaxError(f"nesting deeper than {self.max_depth} levels")
        return depth

    def _enter(self) -> None:
        self.nesting += 1
        self._check_depth(self.nesting)

    def _binary(self, operator: str, left: ExpressionNode, right: ExpressionNode) -> BinaryOp:
        depth = self._check_depth(max(left.depth, right.depth) + 1)
        return BinaryOp(operator, left, right, depth)

    def _unary(self, operator: str, operand: ExpressionNode) -> UnaryOp:
        return UnaryOp(operator, operand, self._check_depth(operand.depth + 1))

    def _or(self) -> ExpressionNode:
        node = self._and()
        operator = self._match("or", "||")
        while operator:
            node = self._binary(operator, node, self._and())
            operator = self._match("or", "||")
        return node

    def _and(self) -> ExpressionNode:
        node = self._not()
        operator = self._match("and", "&&")
        while operator:
            node = self._binary(operator, node, self._not())
            operator = self._match("and", "&&")
        return node

    def _not(self) -> ExpressionNode:
        operator = self._match("not", "!")
        if operator:
            self._enter()
            node = self._unary(operator, self._not())
            self.nesting -= 1
            return node
        return self._comparison()

    def _comparison(self) -> ExpressionNode:
        node = self._additive()
        operator = self._match(*COMPARISON_OPERATORS)
        if operator:
            node = self._binary(operator, node, self._additive())
        return node

    def _additive(self) -> ExpressionNode:
        node = self._term()
        operator = self._match("+", "-")
        while operator:
            node = self._binary(operator, node, self._term())
            operator = self._match("+", "-")
        return node

    def _term(self) -> ExpressionNode:
        node = self._negation()
        operator = self._match("*", "/")
        while operator:
            node = self._binary(operator, node, self._negation())
            operator = self._match("*", "/")
        return node

    def _negation(self) -> ExpressionNode:
        if self._match("-"):
            self._enter()
            node = self._unary("-", self._negation())
            self.nesting -= 1
            return node
        return self._primary()

    def _primary(self) -> ExpressionNode:
        token = self._advance()

        if token.type == TokenType.NUMBER:
            if any(marker in token.text for marker in ".eE"):
                return Literal(float(token.text))
            return Literal(int(token.text))

        if token.type == TokenType.KEYWORD and token.text in ("true", "false"):
            return Literal(token.text == "true")

        if token.type == TokenType.IDENTIFIER:
            return Variable(token.text)

        if token.type == TokenType.LPAREN:
            self._enter()
            node = self._or()
            if self._advance().type != TokenType.RPAREN:
                raise FormulaSyntaxError(f"missing ')' for '(' at position {token.position}")
            self.nesting -= 1
            return node

        if token.type == TokenType.END:
            raise FormulaSyntaxError("unexpected end of formula")
        raise FormulaSyntaxError(f"unexpected '{token.text}' at position {token.position}")


def referenced_variables(root: ExpressionNode) -> Set[str]:
    names: Set[str] = set()
    pending = [root]
    while pending:
        node = pending.pop()
        if isinstance(node, Variable):
            names.add(node.name)
        elif isinstance(node, UnaryOp):
            pending.append(node.operand)
        elif isinstance(node, BinaryOp):
            pending.extend((node.left, node.right))
    return names


class ExpressionCompiler:
    """Compiles formula text into a bounded expression tree."""

    def __init__(self, max_depth: Optional[int] = None, max_length: Optional[int] = None):
        config = get_config()
        self.max_depth = max_depth or config.expression_max_depth
        self.max_length = max_length or config.expression_max_length

    def compile(self, formula: str, path: str = "formula") -> CompiledExpression:
        """Compile ``formula``; ``path`` names the document field in errors."""
        try:
            if len(formula) > self.max_length:
                raise FormulaSyntaxError(f"longer than {self.max_length} characters")
            root = _Parser(tokenize(formula), self.max_depth).parse()
        except FormulaSyntaxError as exc:
            raise ExpressionSyntaxError(path, formula, str(exc)) from None

        return CompiledExpression(formula, root, frozenset(referenced_variables(root)))
