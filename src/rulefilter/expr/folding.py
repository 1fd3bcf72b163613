"""A small bottom-up algebraic folder.

Used by the bounded oracle as its ``normalize`` operation. It only applies
identities that hold for every integer assignment under the semantics of
:mod:`rulefilter.expr.emulator`, so the result is always equivalent to its
input.
"""

from __future__ import annotations

import functools

from rulefilter.expr.ast import FALSE, TRUE, Bool, Const, Node, NodeType
from rulefilter.expr.emulator import evaluate


def _is_literal(node: Node, value: int | None = None) -> bool:
    if node.node_type is not NodeType.CONST:
        return False
    return value is None or node.value == value


def _literal_fold(node: Node) -> Node | None:
    if node.node_type is NodeType.CALL:
        return None
    if not all(c.node_type in (NodeType.CONST, NodeType.BOOL) for c in node.children):
        return None
    value = evaluate(node, {})
    if isinstance(value, bool):
        return Bool(value)
    return Const(value)


def _fold_arithmetic(nt: NodeType, a: Node, b: Node) -> Node | None:
    match nt:
        case NodeType.ADD:
            if _is_literal(b, 0):
                return a
            if _is_literal(a, 0):
                return b
        case NodeType.SUB:
            if _is_literal(b, 0):
                return a
            if a is b:
                return Const(0)
            if a.node_type is NodeType.ADD:
                x, y = a.children
                if y is b:
                    return x
                if x is b:
                    return y
        case NodeType.MUL:
            if _is_literal(a, 0) or _is_literal(b, 0):
                return Const(0)
            if _is_literal(b, 1):
                return a
            if _is_literal(a, 1):
                return b
        case NodeType.DIV:
            if _is_literal(b, 1):
                return a
            if _is_literal(b, 0):
                return Const(0)
        case NodeType.MOD:
            if _is_literal(b, 1) or _is_literal(b, 0):
                return Const(0)
        case NodeType.MIN | NodeType.MAX:
            if a is b:
                return a
    return None


def _fold_boolean(nt: NodeType, a: Node, b: Node) -> Node | None:
    match nt:
        case NodeType.EQ | NodeType.LE:
            if a is b:
                return TRUE
        case NodeType.NE | NodeType.LT:
            if a is b:
                return FALSE
        case NodeType.AND:
            if a is FALSE or b is FALSE:
                return FALSE
            if a is TRUE or a is b:
                return b
            if b is TRUE:
                return a
        case NodeType.OR:
            if a is TRUE or b is TRUE:
                return TRUE
            if a is FALSE or a is b:
                return b
            if b is FALSE:
                return a
    return None


@functools.lru_cache(maxsize=4096)
def fold(node: Node) -> Node:
    """Return an equivalent tree with trivial sub-expressions removed."""
    if not node.children:
        return node
    children = tuple(fold(c) for c in node.children)
    if any(new is not old for new, old in zip(children, node.children)):
        node = Node._intern(node.node_type, children, node.name, node.value)

    folded = _literal_fold(node)
    if folded is not None:
        return folded

    nt = node.node_type
    if nt is NodeType.NOT:
        (inner,) = children
        if inner.node_type is NodeType.NOT:
            return inner.children[0]
        return node
    if nt is NodeType.SELECT:
        cond, if_true, if_false = children
        if cond is TRUE or if_true is if_false:
            return if_true
        if cond is FALSE:
            return if_false
        return node
    if nt is NodeType.CALL:
        return node

    a, b = children
    result = _fold_arithmetic(nt, a, b)
    if result is None:
        result = _fold_boolean(nt, a, b)
    if result is None:
        return node
    # one identity can expose another
    return fold(result)
