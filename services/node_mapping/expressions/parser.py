"""
Expression parser.

Main entry point for turning n8n expression strings into ExpressionIR.
"""
import re
from typing import List, Optional, Tuple

from .ast_nodes import (
    EnvReference, ExpressionIR, InputReference, Literal, NodeReference,
    PathKey, Reference, ReferenceChain,
)
from .tokenizer import Token, TokenType, tokenize

# {{ ... }} segments; the body may span lines and quoted strings in it may contain "}}"
SEGMENT_PATTERN = re.compile(
    r'\{\{('
    r"(?:'(?:[^'\\]|\\.)*'"
    r'|"(?:[^"\\]|\\.)*"'
    r"|`(?:[^`\\]|\\.)*`"
    r"|(?!\}\}).)*"
    r')\}\}',
    re.DOTALL,
)

ACCESSORS = {"item", "first", "last", "all"}
CALL_ACCESSORS = {"first", "last", "all"}
KEYWORD_LITERALS = {"true": True, "false": False, "null": None, "undefined": None}


class ExpressionSyntaxError(ValueError):
    """Expression text outside the supported grammar"""

    def __init__(self, message: str, position: int = 0):
        super().__init__(message)
        self.position = position


def is_expression(value) -> bool:
    """A string is an expression when it starts with '=' and holds at least one {{ }} segment"""
    return isinstance(value, str) and value.startswith("=") and SEGMENT_PATTERN.search(value) is not None


class ExpressionParser:
    """
    Recursive descent parser for a single expression body.

    Grammar:
        chain       -> alternative (('||' | '??') alternative)* EOF
        alternative -> reference | literal            (a literal must come last)
        reference   -> node_ref | input_ref | env_ref
        node_ref    -> '$' '(' STRING ')' accessor json_path
                     | '$node' '[' STRING ']' json_path
        input_ref   -> '$json' path
                     | '$input' accessor json_path
        env_ref     -> '$env' ('.' IDENTIFIER | '[' STRING ']')
        accessor    -> '.' ('item' | 'first' '(' ')' | 'last' '(' ')' | 'all' '(' ')')
        json_path   -> ('.' 'json' path)?
        path        -> ('.' IDENTIFIER | '[' (STRING | NUMBER) ']')*
        literal     -> STRING | NUMBER | 'true' | 'false' | 'null'
    """

    def __init__(self, tokens: List[Token]):
        self.tokens = tokens
        self.position = 0

    def current(self) -> Token:
        """Get current token."""
        if self.position < len(self.tokens):
            return self.tokens[self.position]
        return self.tokens[-1]  # EOF

    def peek(self, offset: int = 1) -> Token:
        index = self.position + offset
        if index < len(self.tokens):
            return self.tokens[index]
        return self.tokens[-1]

    def advance(self) -> Token:
        """Advance and return previous token."""
        token = self.current()
        self.position += 1
        return token

    def match(self, *types: TokenType) -> bool:
        """Check if current token matches any of the given types."""
        return self.current().type in types

    def expect(self, token_type: TokenType, value: Optional[str] = None) -> Token:
        """Expect current token to be of given type (and value, if given)."""
        token = self.current()
        if token.type == token_type and (value is None or token.value == value):
            return self.advance()
        wanted = f"'{value}'" if value is not None else token_type.name
        raise ExpressionSyntaxError(
            f"Expected {wanted}, got {token.type.name} '{token.value}' at position {token.position}",
            token.position,
        )

    def error(self, message: str) -> ExpressionSyntaxError:
        token = self.current()
        return ExpressionSyntaxError(f"{message} at position {token.position}", token.position)

    def parse(self) -> ReferenceChain:
        """Parse the expression body."""
        references: List[Reference] = []
        fallback: Optional[Literal] = None
        operator: Optional[str] = None

        while True:
            if fallback is not None:
                raise self.error("Literal fallback must be the last alternative")

            if self.match(TokenType.DOLLAR, TokenType.VARIABLE):
                references.append(self.reference())
            elif self.match(TokenType.STRING, TokenType.NUMBER, TokenType.IDENTIFIER):
                fallback = self.literal()
            else:
                raise self.error(f"Unexpected '{self.current().value}'")

            if not self.match(TokenType.OR, TokenType.NULLISH):
                break
            op = self.advance().value
            if operator is not None and op != operator:
                raise self.error("Mixing '||' and '??' is not supported")
            operator = op

        if not self.match(TokenType.EOF):
            raise self.error(f"Unexpected '{self.current().value}'")
        if not references:
            raise ExpressionSyntaxError("Expression has no reference", 0)

        return ReferenceChain(references=tuple(references), fallback=fallback, operator=operator)

    def reference(self) -> Reference:
        if self.match(TokenType.DOLLAR):
            return self.node_call_reference()

        name = self.current().value
        if name == "node":
            return self.legacy_node_reference()
        if name == "json":
            self.advance()
            return InputReference(accessor="item", path=self.path())
        if name == "input":
            self.advance()
            accessor = self.accessor()
            return InputReference(accessor=accessor, path=self.json_path())
        if name == "env":
            return self.env_reference()
        raise self.error(f"Unsupported variable '${name}'")

    def node_call_reference(self) -> NodeReference:
        """$('Name').item.json.path"""
        self.expect(TokenType.DOLLAR)
        self.expect(TokenType.LPAREN)
        node_name = self.expect(TokenType.STRING).value
        self.expect(TokenType.RPAREN)
        accessor = self.accessor()
        return NodeReference(node_name=node_name, accessor=accessor, path=self.json_path())

    def legacy_node_reference(self) -> NodeReference:
        """$node["Name"].json.path"""
        self.expect(TokenType.VARIABLE, "node")
        self.expect(TokenType.LBRACKET)
        node_name = self.expect(TokenType.STRING).value
        self.expect(TokenType.RBRACKET)
        return NodeReference(node_name=node_name, accessor="item", path=self.json_path())

    def env_reference(self) -> EnvReference:
        self.expect(TokenType.VARIABLE, "env")
        if self.match(TokenType.DOT):
            self.advance()
            return EnvReference(self.expect(TokenType.IDENTIFIER).value)
        if self.match(TokenType.LBRACKET):
            self.advance()
            name = self.expect(TokenType.STRING).value
            self.expect(TokenType.RBRACKET)
            return EnvReference(name)
        raise self.error("Expected environment variable name after '$env'")

    def accessor(self) -> str:
        self.expect(TokenType.DOT)
        name = self.expect(TokenType.IDENTIFIER).value
        if name not in ACCESSORS:
            raise self.error(f"Unsupported accessor '{name}'")
        if name in CALL_ACCESSORS:
            self.expect(TokenType.LPAREN)
            self.expect(TokenType.RPAREN)
        return name

    def json_path(self) -> Tuple[PathKey, ...]:
        """Optional '.json' followed by a field path"""
        if not self.match(TokenType.DOT):
            return ()
        if self.peek().type != TokenType.IDENTIFIER or self.peek().value != "json":
            raise self.error("Only '.json' output data can be referenced")
        self.advance()
        self.advance()
        return self.path()

    def path(self) -> Tuple[PathKey, ...]:
        keys: List[PathKey] = []
        while self.match(TokenType.DOT, TokenType.LBRACKET):
            if self.advance().type == TokenType.DOT:
                keys.append(self.expect(TokenType.IDENTIFIER).value)
                if self.match(TokenType.LPAREN):
                    raise self.error(f"Method call '{keys[-1]}()' is not supported")
                continue

            if self.match(TokenType.STRING):
                keys.append(self.advance().value)
            elif self.match(TokenType.NUMBER) and "." not in self.current().value:
                keys.append(int(self.advance().value))
            else:
                raise self.error("Expected string or integer index")
            self.expect(TokenType.RBRACKET)
        return tuple(keys)

    def literal(self) -> Literal:
        token = self.advance()
        if token.type == TokenType.STRING:
            return Literal(token.value)
        if token.type == TokenType.NUMBER:
            return Literal(float(token.value) if "." in token.value else int(token.value))
        if token.value in KEYWORD_LITERALS:
            return Literal(KEYWORD_LITERALS[token.value])
        raise ExpressionSyntaxError(f"Unknown identifier '{token.value}' at position {token.position}", token.position)


def parse_chain(body: str) -> ReferenceChain:
    """Parse the body of one {{ }} segment."""
    return ExpressionParser(tokenize(body)).parse()


def parse_expression(value: str) -> ExpressionIR:
    """
    Parse a full expression value such as "=Hello {{ $json.name }}!".

    Raises:
        ExpressionSyntaxError: if any segment is outside the grammar
    """
    if not is_expression(value):
        raise ExpressionSyntaxError("Value is not an expression", 0)

    text = value[1:]
    segments = []
    cursor = 0
    for match in SEGMENT_PATTERN.finditer(text):
        if match.start() > cursor:
            segments.append(text[cursor:match.start()])
        try:
            segments.append(parse_chain(match.group(1)))
        except ExpressionSyntaxError as e:
            raise ExpressionSyntaxError(str(e), match.start() + 1 + e.position) from e
        cursor = match.end()
    if cursor < len(text):
        segments.append(text[cursor:])

    return ExpressionIR(source=value, segments=tuple(segments))
