"""Pure, non-mutating analyses and rewrites over expression trees."""

from __future__ import annotations

import itertools
import typing

from rulefilter.errors import MalformedExpressionError
from rulefilter.expr.ast import (
    ARITHMETIC,
    COMPARISONS,
    LOGICAL,
    Node,
    NodeType,
    is_constant_class,
)

Binding = dict[str, Node]
Example = dict[str, int]

INT = "int"
BOOL = "bool"


def symbol_key(node: Node) -> str:
    """Key under which a leaf's value is stored in an :data:`Example`.

    Wildcards use their bare name, runtime variables are prefixed with ``$``
    so the two namespaces never collide.
    """
    if node.node_type is NodeType.PATTERN:
        return node.name
    if node.node_type is NodeType.VAR:
        return "$" + node.name
    raise ValueError(f"{node.node_type.name} leaf has no symbol key")


def free_pattern_vars(node: Node) -> set[str]:
    """Names of the distinct wildcards occurring in ``node``."""
    return {n.name for n in node.walk() if n.node_type is NodeType.PATTERN}


def uses_var(node: Node, name: str) -> bool:
    """True iff wildcard ``name`` occurs anywhere in ``node``."""
    return any(
        n.node_type is NodeType.PATTERN and n.name == name for n in node.walk()
    )


def free_symbols(node: Node) -> set[str]:
    """Symbol keys of every wildcard and runtime variable in ``node``."""
    return {
        symbol_key(n)
        for n in node.walk()
        if n.node_type in (NodeType.PATTERN, NodeType.VAR)
    }


def count_leaves(node: Node) -> int:
    """Number of constant, variable and wildcard occurrences."""
    return sum(
        1
        for n in node.walk()
        if n.node_type in (NodeType.CONST, NodeType.VAR, NodeType.PATTERN)
    )


def substitute(binding: typing.Mapping[str, Node], node: Node) -> Node:
    """Replace every wildcard named in ``binding``; other leaves are kept."""
    if not binding:
        return node
    memo: dict[Node, Node] = {}

    def rebuild(n: Node) -> Node:
        cached = memo.get(n)
        if cached is not None:
            return cached
        if n.node_type is NodeType.PATTERN:
            result = binding.get(n.name, n)
        elif not n.children:
            result = n
        else:
            children = tuple(rebuild(c) for c in n.children)
            if all(new is old for new, old in zip(children, n.children)):
                result = n
            else:
                result = Node._intern(n.node_type, children, n.name, n.value)
        memo[n] = result
        return result

    return rebuild(node)


def boolean_symbols(node: Node, formula: bool = False) -> set[str]:
    """Symbol keys of the leaves that ``node`` uses as truth values.

    With ``formula`` set, ``node`` itself is read as a truth value.
    """
    found: set[str] = set()

    def mark(child: Node) -> None:
        if child.node_type in (NodeType.PATTERN, NodeType.VAR):
            found.add(symbol_key(child))

    if formula:
        mark(node)

    for n in node.walk():
        match n.node_type:
            case NodeType.AND | NodeType.OR | NodeType.NOT:
                for child in n.children:
                    mark(child)
            case NodeType.SELECT:
                mark(n.children[0])
                if any(result_type(c) == BOOL for c in n.children[1:]):
                    mark(n.children[1])
                    mark(n.children[2])
            case NodeType.EQ | NodeType.NE:
                a, b = n.children
                if result_type(a) == BOOL:
                    mark(b)
                if result_type(b) == BOOL:
                    mark(a)
    return found


def small_integers(radius: int) -> list[int]:
    """``0, 1, -1, 2, -2, ...`` up to ``radius`` in absolute value."""
    values = [0]
    for k in range(1, radius + 1):
        values.extend((k, -k))
    return values


def assignments(
    keys: typing.Sequence[str],
    values: typing.Sequence[int],
    bool_keys: typing.Collection[str] = (),
) -> typing.Iterator[Example]:
    """Every assignment of ``values`` to ``keys``; the last key varies fastest.

    Keys in ``bool_keys`` range over ``False, True`` instead.
    """
    domains = [(False, True) if key in bool_keys else values for key in keys]
    for combo in itertools.product(*domains):
        yield dict(zip(keys, combo))


def is_constant_term(node: Node) -> bool:
    """True when every leaf is a literal or a constant-class wildcard."""
    for n in node.walk():
        if n.node_type is NodeType.VAR or n.node_type is NodeType.CALL:
            return False
        if n.node_type is NodeType.PATTERN and not is_constant_class(n.name):
            return False
    return True


def conjuncts(node: Node) -> list[Node]:
    """Flatten a tree of ``&&`` into its operands (``true`` yields none)."""
    if node.node_type is NodeType.BOOL and node.value == 1:
        return []
    if node.node_type is NodeType.AND:
        return conjuncts(node.children[0]) + conjuncts(node.children[1])
    return [node]


def is_true(node: Node) -> bool:
    return node.node_type is NodeType.BOOL and node.value == 1


def is_false(node: Node) -> bool:
    return node.node_type is NodeType.BOOL and node.value == 0


def result_type(node: Node) -> str | None:
    """Infer the value type of ``node``.

    Returns ``"int"``, ``"bool"`` or None when the tree is polymorphic
    (a bare wildcard or variable, or a select over them). Raises
    :class:`MalformedExpressionError` on a type clash.
    """
    nt = node.node_type
    if nt is NodeType.CONST:
        return INT
    if nt is NodeType.BOOL:
        return BOOL
    if nt in (NodeType.VAR, NodeType.PATTERN):
        return None
    if nt is NodeType.CALL:
        for child in node.children:
            result_type(child)
        return None

    kinds = [result_type(c) for c in node.children]
    if nt in ARITHMETIC:
        _expect(node, kinds, INT)
        return INT
    if nt in (NodeType.LT, NodeType.LE):
        _expect(node, kinds, INT)
        return BOOL
    if nt in COMPARISONS:
        known = {k for k in kinds if k is not None}
        if len(known) > 1:
            raise MalformedExpressionError(
                f"Operands of {nt.name} have different types: {', '.join(sorted(known))}"
            )
        return BOOL
    if nt in LOGICAL:
        _expect(node, kinds, BOOL)
        return BOOL
    if nt is NodeType.SELECT:
        _expect(node, kinds[:1], BOOL)
        branches = {k for k in kinds[1:] if k is not None}
        if len(branches) > 1:
            raise MalformedExpressionError("Branches of select have different types")
        return branches.pop() if branches else None
    raise MalformedExpressionError(f"Unknown node type {nt!r}")


def _expect(node: Node, kinds: list[str | None], wanted: str) -> None:
    for kind in kinds:
        if kind is not None and kind != wanted:
            raise MalformedExpressionError(
                f"{node.node_type.name} expects {wanted} operands, got {kind}"
            )
