"""Pattern generality checks between rule left-hand sides.

``more_general_than(a, b)`` asks whether ``a`` matches every term that
``b`` matches. Wildcards of ``a`` are unification variables; wildcards of ``b``
are rigid sub-terms that ``a`` has to cover generically.
"""

from __future__ import annotations

from rulefilter.core import getLogger
from rulefilter.expr.ast import COMMUTATIVE, Node, NodeType, equal, is_constant_class
from rulefilter.expr.utils import Binding, is_constant_term

logger = getLogger(__name__)


def more_general_than(pattern_a: Node, pattern_b: Node) -> Binding | None:
    """Return the binding of ``pattern_a``'s wildcards that turns it into
    ``pattern_b``, or None when ``pattern_a`` does not cover ``pattern_b``.

    The result is always a fresh dict; a failed match never yields a
    partial binding.

    >>> from rulefilter.expr.ast import Pattern, Const
    >>> x, y = Pattern("x"), Pattern("y")
    >>> more_general_than(x + y, x + Const(0))
    {'x': Node(x), 'y': Node(0)}
    >>> more_general_than(x + Const(0), x + y) is None
    True
    """
    return _match(pattern_a, pattern_b, {})


def _match(a: Node, b: Node, binding: Binding) -> Binding | None:
    nt = a.node_type
    if nt is NodeType.PATTERN:
        if is_constant_class(a.name) and not is_constant_term(b):
            return None
        bound = binding.get(a.name)
        if bound is not None:
            return binding if equal(bound, b) else None
        extended = dict(binding)
        extended[a.name] = b
        return extended

    if nt in (NodeType.CONST, NodeType.BOOL, NodeType.VAR):
        return binding if equal(a, b) else None

    if nt is not b.node_type or len(a.children) != len(b.children):
        return None
    if nt is NodeType.CALL and a.name != b.name:
        return None

    result = _match_children(a.children, b.children, binding)
    if result is None and nt in COMMUTATIVE:
        a0, a1 = a.children
        result = _match_children((a0, a1), (b.children[1], b.children[0]), binding)
    return result


def _match_children(
    children_a: tuple[Node, ...], children_b: tuple[Node, ...], binding: Binding
) -> Binding | None:
    for ca, cb in zip(children_a, children_b):
        binding = _match(ca, cb, binding)
        if binding is None:
            return None
    return binding
