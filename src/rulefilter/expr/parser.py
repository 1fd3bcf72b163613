"""Recursive-descent parser for rule files.

A rule file is a sequence of terms, optionally separated by ``,`` or ``;``,
with ``#`` comments running to the end of the line::

    # unconditional
    rewrite((x + 0), x)
    rewrite(((x * c0) / c0), x, (c0 != 0))

Bare identifiers are wildcards, ``$name`` is a runtime variable,
``min``/``max``/``select`` are built-in operators and any other
``name(...)`` becomes a generic call node. Operator precedence follows C.
"""

from __future__ import annotations

import dataclasses
import pathlib
import re
import typing

from rulefilter.core import getLogger
from rulefilter.errors import MalformedExpressionError
from rulefilter.expr.ast import (
    FALSE,
    TRUE,
    Call,
    Const,
    Node,
    NodeType,
    Op,
    Pattern,
    Var,
    ge,
    gt,
)

logger = getLogger(__name__)

_TOKEN_RE = re.compile(
    r"""
    (?P<ws>[ \t\r\n]+)
  | (?P<comment>\#[^\n]*)
  | (?P<int>[0-9]+)
  | (?P<var>\$[A-Za-z_][A-Za-z0-9_]*)
  | (?P<ident>[A-Za-z_][A-Za-z0-9_.]*)
  | (?P<op>&&|\|\||==|!=|<=|>=|[<>+\-*/%!(),;])
    """,
    re.VERBOSE,
)

_BUILTIN_CALLS: dict[str, NodeType] = {
    "min": NodeType.MIN,
    "max": NodeType.MAX,
    "select": NodeType.SELECT,
}

_BINARY_LEVELS: list[dict[str, typing.Callable[[Node, Node], Node]]] = [
    {"||": lambda a, b: Op(NodeType.OR, a, b)},
    {"&&": lambda a, b: Op(NodeType.AND, a, b)},
    {
        "==": lambda a, b: Op(NodeType.EQ, a, b),
        "!=": lambda a, b: Op(NodeType.NE, a, b),
    },
    {
        "<": lambda a, b: Op(NodeType.LT, a, b),
        "<=": lambda a, b: Op(NodeType.LE, a, b),
        ">": gt,
        ">=": ge,
    },
    {
        "+": lambda a, b: Op(NodeType.ADD, a, b),
        "-": lambda a, b: Op(NodeType.SUB, a, b),
    },
    {
        "*": lambda a, b: Op(NodeType.MUL, a, b),
        "/": lambda a, b: Op(NodeType.DIV, a, b),
        "%": lambda a, b: Op(NodeType.MOD, a, b),
    },
]


@dataclasses.dataclass(frozen=True, slots=True)
class Token:
    kind: str
    text: str
    line: int
    column: int


def tokenize(text: str) -> list[Token]:
    tokens: list[Token] = []
    pos = 0
    line = 1
    line_start = 0
    while pos < len(text):
        m = _TOKEN_RE.match(text, pos)
        if m is None:
            raise MalformedExpressionError(
                f"Unexpected character {text[pos]!r}", line, pos - line_start + 1
            )
        kind = m.lastgroup
        lexeme = m.group()
        if kind not in ("ws", "comment"):
            tokens.append(Token(kind, lexeme, line, pos - line_start + 1))
        newlines = lexeme.count("\n")
        if newlines:
            line += newlines
            line_start = pos + lexeme.rindex("\n") + 1
        pos = m.end()
    tokens.append(Token("eof", "", line, pos - line_start + 1))
    return tokens


class Parser:
    """Parses a token stream into expression trees."""

    def __init__(self, text: str):
        self.tokens = tokenize(text)
        self.pos = 0

    @property
    def current(self) -> Token:
        return self.tokens[self.pos]

    def _advance(self) -> Token:
        token = self.tokens[self.pos]
        if token.kind != "eof":
            self.pos += 1
        return token

    def _error(self, message: str, token: Token | None = None) -> MalformedExpressionError:
        token = token or self.current
        return MalformedExpressionError(message, token.line, token.column)

    def _expect(self, text: str) -> Token:
        token = self.current
        if token.kind != "op" or token.text != text:
            found = token.text or "end of input"
            raise self._error(f"Expected {text!r}, found {found!r}")
        return self._advance()

    def _at(self, text: str) -> bool:
        return self.current.kind == "op" and self.current.text == text

    def parse_terms(self) -> list[Node]:
        terms = []
        while self.current.kind != "eof":
            terms.append(self.parse_expression())
            while self._at(",") or self._at(";"):
                self._advance()
        return terms

    def parse_expression(self, level: int = 0) -> Node:
        if level == len(_BINARY_LEVELS):
            return self._parse_unary()
        operators = _BINARY_LEVELS[level]
        node = self.parse_expression(level + 1)
        while self.current.kind == "op" and self.current.text in operators:
            token = self._advance()
            rhs = self.parse_expression(level + 1)
            node = self._build(token, operators[token.text], node, rhs)
        return node

    def _build(self, token: Token, builder, *operands: Node) -> Node:
        try:
            return builder(*operands)
        except MalformedExpressionError as e:
            raise self._error(str(e), token) from None

    def _parse_unary(self) -> Node:
        if self._at("!"):
            token = self._advance()
            return self._build(token, lambda a: Op(NodeType.NOT, a), self._parse_unary())
        if self._at("-"):
            self._advance()
            operand = self._parse_unary()
            return -operand
        return self._parse_primary()

    def _parse_primary(self) -> Node:
        token = self.current
        if token.kind == "int":
            self._advance()
            return Const(int(token.text))
        if token.kind == "var":
            self._advance()
            return Var(token.text[1:])
        if token.kind == "ident":
            self._advance()
            if token.text == "true":
                return TRUE
            if token.text == "false":
                return FALSE
            if self._at("("):
                return self._parse_call(token)
            return Pattern(token.text)
        if self._at("("):
            self._advance()
            node = self.parse_expression()
            self._expect(")")
            return node
        found = token.text or "end of input"
        raise self._error(f"Unexpected {found!r}")

    def _parse_call(self, name_token: Token) -> Node:
        self._expect("(")
        args: list[Node] = []
        if not self._at(")"):
            args.append(self.parse_expression())
            while self._at(","):
                self._advance()
                args.append(self.parse_expression())
        self._expect(")")
        builtin = _BUILTIN_CALLS.get(name_token.text)
        if builtin is not None:
            return self._build(name_token, lambda *a: Op(builtin, *a), *args)
        return Call(name_token.text, *args)


def parse_expression(text: str) -> Node:
    """Parse exactly one expression."""
    parser = Parser(text)
    node = parser.parse_expression()
    if parser.current.kind != "eof":
        raise parser._error(f"Trailing input {parser.current.text!r}")
    return node


def parse_terms(text: str) -> list[Node]:
    """Parse every top-level term of a rule file, in file order."""
    return Parser(text).parse_terms()


def parse_file(path: str | pathlib.Path) -> list[Node]:
    path = pathlib.Path(path)
    logger.debug("Parsing rule file %s", path)
    terms = parse_terms(path.read_text(encoding="utf-8"))
    logger.info("Parsed %d terms from %s", len(terms), path)
    return terms
