"""Canonical text rendering of expression trees.

The output is accepted by :mod:`rulefilter.expr.parser`, and
``parse_expression(render(node)) is node`` holds for every tree.
"""

from __future__ import annotations

import functools

from rulefilter.expr.ast import Node, NodeType

OPERATOR_SYMBOLS: dict[NodeType, str] = {
    NodeType.ADD: "+",
    NodeType.SUB: "-",
    NodeType.MUL: "*",
    NodeType.DIV: "/",
    NodeType.MOD: "%",
    NodeType.EQ: "==",
    NodeType.NE: "!=",
    NodeType.LT: "<",
    NodeType.LE: "<=",
    NodeType.AND: "&&",
    NodeType.OR: "||",
}

FUNCTION_NAMES: dict[NodeType, str] = {
    NodeType.MIN: "min",
    NodeType.MAX: "max",
    NodeType.SELECT: "select",
}


@functools.lru_cache(maxsize=8192)
def render(node: Node) -> str:
    nt = node.node_type
    match nt:
        case NodeType.CONST:
            return str(node.value)
        case NodeType.BOOL:
            return "true" if node.value else "false"
        case NodeType.VAR:
            return "$" + node.name
        case NodeType.PATTERN:
            return node.name
        case NodeType.NOT:
            return "!" + render(node.children[0])
        case NodeType.CALL:
            return _call(node.name, node.children)

    if nt in FUNCTION_NAMES:
        return _call(FUNCTION_NAMES[nt], node.children)
    left, right = node.children
    return f"({render(left)} {OPERATOR_SYMBOLS[nt]} {render(right)})"


def _call(name: str, args: tuple[Node, ...]) -> str:
    return f"{name}({', '.join(render(a) for a in args)})"


def format_rule(lhs: Node, rhs: Node, predicate: Node) -> str:
    """``rewrite(lhs, rhs, predicate)`` as it appears in a rule file."""
    return f"rewrite({render(lhs)}, {render(rhs)}, {render(predicate)})"
