"""
Workflow expression package.

Parses n8n-style {{ }} expressions into structured reference chains.
"""
from .ast_nodes import (
    EnvReference, ExpressionIR, InputReference, Literal, NodeReference,
    RawExpression, ReferenceChain,
)
from .parser import ExpressionParser, ExpressionSyntaxError, is_expression, parse_chain, parse_expression
from .tokenizer import Token, TokenType, tokenize

__all__ = [
    'EnvReference', 'ExpressionIR', 'InputReference', 'Literal', 'NodeReference',
    'RawExpression', 'ReferenceChain',
    'ExpressionParser', 'ExpressionSyntaxError', 'is_expression', 'parse_chain', 'parse_expression',
    'Token', 'TokenType', 'tokenize',
]
