"""
Tokenizer for price and feature formulas.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import List


class FormulaSyntaxError(ValueError):
    """Raised by the tokenizer and compiler; carries the reason only."""


class TokenType(str, Enum):
    """Token categories."""
    NUMBER = "number"
    IDENTIFIER = "identifier"
    KEYWORD = "keyword"
    OPERATOR = "operator"
    LPAREN = "("
    RPAREN = ")"
    END = "end"


@dataclass(frozen=True)
class Token:
    type: TokenType
    text: str
    position: int


KEYWORDS = {"and", "or", "not", "true", "false"}

# Longest operators first so "<=" wins over "<"
OPERATORS = ("<=", ">=", "==", "!=", "&&", "||", "<", ">", "+", "-", "*", "/", "!")

TOKEN_PATTERN = re.compile(
    r"(?P<space>\s+)"
    r"|(?P<number>\d+(?:\.\d*)?(?:[eE][+-]?\d+)?|\.\d+(?:[eE][+-]?\d+)?)"
    r"|(?P<identifier>[A-Za-z_][A-Za-z0-9_]*)"
    r"|(?P<operator>" + "|".join(re.escape(op) for op in OPERATORS) + r")"
    r"|(?P<lparen>\()"
    r"|(?P<rparen>\))"
)


def tokenize(formula: str) -> List[Token]:
    """Split ``formula`` into tokens, ending with an END token."""
    tokens: List[Token] = []
    position = 0
    while position < len(formula):
        match = TOKEN_PATTERN.match(formula, position)
        if match is None:
            raise FormulaSyntaxError(f"unexpected character '{formula[position]}' at position {position}")

        kind = match.lastgroup
        text = match.group()
        if kind == "number":
            tokens.append(Token(TokenType.NUMBER, text, position))
        elif kind == "identifier":
            token_type = TokenType.KEYWORD if text in KEYWORDS else TokenType.IDENTIFIER
            tokens.append(Token(token_type, text, position))
        elif kind == "operator":
            tokens.append(Token(TokenType.OPERATOR, text, position))
        elif kind == "lparen":
            tokens.append(Token(TokenType.LPAREN, text, position))
        elif kind == "rparen":
            tokens.append(Token(TokenType.RPAREN, text, position))

        position = match.end()

    tokens.append(Token(TokenType.END, "", len(formula)))
    return tokens
