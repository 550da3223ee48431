"""
Expression tokenizer.

Splits the body of a single {{ ... }} segment into tokens for the parser.
"""
import re
from dataclasses import dataclass
from enum import Enum, auto
from typing import List


class TokenType(Enum):
    """Token types for workflow expressions."""
    DOLLAR = auto()        # bare $, as in $('Node')
    VARIABLE = auto()      # $json, $env, $node, $input
    IDENTIFIER = auto()    # item, json, first, field names
    STRING = auto()        # 'text', "text", `text`
    NUMBER = auto()        # 42, 3.5
    DOT = auto()           # .
    LBRACKET = auto()      # [
    RBRACKET = auto()      # ]
    LPAREN = auto()        # (
    RPAREN = auto()        # )
    OR = auto()            # ||
    NULLISH = auto()       # ??
    UNKNOWN = auto()       # anything the grammar does not know
    EOF = auto()           # end of expression


@dataclass
class Token:
    """Represents a single token."""
    type: TokenType
    value: str
    position: int


# Token patterns in order of precedence
TOKEN_PATTERNS = [
    (TokenType.OR, r'\|\|'),
    (TokenType.NULLISH, r'\?\?'),
    (TokenType.VARIABLE, r'\$([A-Za-z_][A-Za-z0-9_]*)'),
    (TokenType.DOLLAR, r'\$'),
    (TokenType.STRING, r"'((?:[^'\\]|\\.)*)'"),
    (TokenType.STRING, r'"((?:[^"\\]|\\.)*)"'),
    (TokenType.STRING, r'`((?:[^`\\$]|\\.)*)`'),
    (TokenType.NUMBER, r'-?\d+(?:\.\d+)?'),
    (TokenType.IDENTIFIER, r'[A-Za-z_][A-Za-z0-9_]*'),
    (TokenType.DOT, r'\.'),
    (TokenType.LBRACKET, r'\['),
    (TokenType.RBRACKET, r'\]'),
    (TokenType.LPAREN, r'\('),
    (TokenType.RPAREN, r'\)'),
]

COMPILED_PATTERNS = [(token_type, re.compile(pattern)) for token_type, pattern in TOKEN_PATTERNS]

_ESCAPE = re.compile(r'\\(.)')


class ExpressionTokenizer:
    """Tokenizes expression bodies."""

    def __init__(self, expression: str):
        self.expression = expression
        self.position = 0
        self.tokens: List[Token] = []

    def tokenize(self) -> List[Token]:
        """Convert expression to list of tokens."""
        while self.position < len(self.expression):
            if self.expression[self.position].isspace():
                self.position += 1
                continue

            for token_type, pattern in COMPILED_PATTERNS:
                match = pattern.match(self.expression, self.position)
                if match:
                    value = match.group(1) if match.lastindex else match.group(0)
                    if token_type == TokenType.STRING:
                        value = _ESCAPE.sub(r'\1', value)
                    self.tokens.append(Token(token_type, value, self.position))
                    self.position = match.end()
                    break
            else:
                # Operators, arithmetic, method calls on values...: left to the parser to reject
                self.tokens.append(Token(TokenType.UNKNOWN, self.expression[self.position], self.position))
                self.position += 1

        self.tokens.append(Token(TokenType.EOF, '', self.position))
        return self.tokens


def tokenize(expression: str) -> List[Token]:
    """Convenience function to tokenize an expression body."""
    return ExpressionTokenizer(expression).tokenize()
