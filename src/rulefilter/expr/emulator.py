"""Concrete evaluation of expression trees on unbounded integers.

Division and modulo follow the simplifier the rules are written for:
Euclidean division (the remainder is never negative) and ``x / 0 == 0``,
``x % 0 == 0``. The z3 backend encodes the same semantics.

Trees are compiled once into nested closures so that the synthesizer can
evaluate the same tree on thousands of assignments cheaply.
"""

from __future__ import annotations

import functools
import typing

from rulefilter.errors import EvaluationError
from rulefilter.expr.ast import Node, NodeType
from rulefilter.expr.utils import symbol_key

Value = typing.Union[int, bool]
Evaluator = typing.Callable[[typing.Mapping[str, int]], Value]


def euclidean_div(a: int, b: int) -> int:
    if b == 0:
        return 0
    r = a % abs(b)
    return (a - r) // b


def euclidean_mod(a: int, b: int) -> int:
    if b == 0:
        return 0
    return a % abs(b)


_BINARY: dict[NodeType, typing.Callable[[typing.Any, typing.Any], Value]] = {
    NodeType.ADD: lambda a, b: a + b,
    NodeType.SUB: lambda a, b: a - b,
    NodeType.MUL: lambda a, b: a * b,
    NodeType.DIV: euclidean_div,
    NodeType.MOD: euclidean_mod,
    NodeType.MIN: min,
    NodeType.MAX: max,
    NodeType.EQ: lambda a, b: a == b,
    NodeType.NE: lambda a, b: a != b,
    NodeType.LT: lambda a, b: a < b,
    NodeType.LE: lambda a, b: a <= b,
}


@functools.lru_cache(maxsize=4096)
def compile_node(node: Node) -> Evaluator:
    """Return a function evaluating ``node`` under an assignment of symbols."""
    nt = node.node_type
    match nt:
        case NodeType.CONST:
            value = node.value
            return lambda env: value
        case NodeType.BOOL:
            flag = bool(node.value)
            return lambda env: flag
        case NodeType.VAR | NodeType.PATTERN:
            key = symbol_key(node)

            def lookup(env):
                try:
                    return env[key]
                except KeyError:
                    raise EvaluationError(f"No value for {key}") from None

            return lookup
        case NodeType.AND:
            left, right = (compile_node(c) for c in node.children)
            return lambda env: bool(left(env)) and bool(right(env))
        case NodeType.OR:
            left, right = (compile_node(c) for c in node.children)
            return lambda env: bool(left(env)) or bool(right(env))
        case NodeType.NOT:
            (operand,) = (compile_node(c) for c in node.children)
            return lambda env: not operand(env)
        case NodeType.SELECT:
            cond, if_true, if_false = (compile_node(c) for c in node.children)
            return lambda env: if_true(env) if cond(env) else if_false(env)
        case NodeType.CALL:
            raise EvaluationError(f"Cannot evaluate call to {node.name}()")

    fn = _BINARY.get(nt)
    if fn is None:
        raise EvaluationError(f"Cannot evaluate {nt.name}")
    left, right = (compile_node(c) for c in node.children)
    return lambda env: fn(left(env), right(env))


def evaluate(node: Node, env: typing.Mapping[str, int]) -> Value:
    """Evaluate ``node`` with symbol values taken from ``env``.

    >>> from rulefilter.expr.ast import Pattern
    >>> evaluate(Pattern("x") // 2, {"x": -7})
    -4
    """
    return compile_node(node)(env)
