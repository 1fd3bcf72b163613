"""Immutable, hash-consed expression trees for rewrite rules.

Every tree is built through the intern table below, so two structurally
equal trees are always the same object. Nodes can therefore be used as
dictionary keys, compared with ``is`` as a fast path, and shared between
rules without copying.

Example:
    >>> x, y = Pattern("x"), Pattern("y")
    >>> lhs = (x + y) - y
    >>> lhs is (Pattern("x") + Pattern("y")) - Pattern("y")
    True
    >>> compare(x, y)
    <Ordering.LESS: -1>
"""

from __future__ import annotations

import enum
import functools
import re
import threading
import typing
import weakref

from rulefilter.errors import MalformedExpressionError


class NodeType(enum.IntEnum):
    """Closed set of node kinds. The integer value is the ordering tag."""

    CONST = 0
    BOOL = 1
    VAR = 2
    PATTERN = 3
    ADD = 4
    SUB = 5
    MUL = 6
    DIV = 7
    MOD = 8
    MIN = 9
    MAX = 10
    EQ = 11
    NE = 12
    LT = 13
    LE = 14
    AND = 15
    OR = 16
    NOT = 17
    SELECT = 18
    CALL = 19


LEAF_TYPES = frozenset({NodeType.CONST, NodeType.BOOL, NodeType.VAR, NodeType.PATTERN})

ARITY: dict[NodeType, int] = {
    NodeType.ADD: 2,
    NodeType.SUB: 2,
    NodeType.MUL: 2,
    NodeType.DIV: 2,
    NodeType.MOD: 2,
    NodeType.MIN: 2,
    NodeType.MAX: 2,
    NodeType.EQ: 2,
    NodeType.NE: 2,
    NodeType.LT: 2,
    NodeType.LE: 2,
    NodeType.AND: 2,
    NodeType.OR: 2,
    NodeType.NOT: 1,
    NodeType.SELECT: 3,
}

COMMUTATIVE = frozenset({NodeType.ADD, NodeType.MUL, NodeType.MIN, NodeType.MAX})
ARITHMETIC = frozenset(
    {
        NodeType.ADD,
        NodeType.SUB,
        NodeType.MUL,
        NodeType.DIV,
        NodeType.MOD,
        NodeType.MIN,
        NodeType.MAX,
    }
)
COMPARISONS = frozenset({NodeType.EQ, NodeType.NE, NodeType.LT, NodeType.LE})
LOGICAL = frozenset({NodeType.AND, NodeType.OR, NodeType.NOT})

_CONSTANT_CLASS_RE = re.compile(r"c[0-9]+\Z")


def is_constant_class(name: str) -> bool:
    """Wildcards named ``c<digits>`` may only stand for constant sub-terms."""
    return _CONSTANT_CLASS_RE.match(name) is not None


class Ordering(enum.IntEnum):
    LESS = -1
    EQUAL = 0
    GREATER = 1


class Node:
    """A single expression tree node.

    Attributes:
        node_type: The node kind.
        children: Child nodes (empty for leaves).
        name: Variable, wildcard or call name; None otherwise.
        value: Integer payload of CONST (and 0/1 for BOOL); None otherwise.

    Nodes are never instantiated directly; use :func:`Const`, :func:`Bool`,
    :func:`Var`, :func:`Pattern`, :func:`Op`, :func:`Call` or the operator
    overloads.
    """

    __slots__ = ("node_type", "children", "name", "value", "__weakref__")

    _table: "weakref.WeakValueDictionary[tuple, Node]" = weakref.WeakValueDictionary()
    _lock = threading.Lock()

    node_type: NodeType
    children: tuple[Node, ...]
    name: str | None
    value: int | None

    def __new__(cls, *args, **kwargs):
        raise TypeError("Node instances are created through the builder functions")

    @classmethod
    def _intern(
        cls,
        node_type: NodeType,
        children: tuple[Node, ...] = (),
        name: str | None = None,
        value: int | None = None,
    ) -> Node:
        key = (node_type, name, value, children)
        with cls._lock:
            node = cls._table.get(key)
            if node is None:
                node = object.__new__(cls)
                object.__setattr__(node, "node_type", node_type)
                object.__setattr__(node, "children", children)
                object.__setattr__(node, "name", name)
                object.__setattr__(node, "value", value)
                cls._table[key] = node
        return node

    def __setattr__(self, key, value):
        raise AttributeError("Node is immutable")

    def __delattr__(self, key):
        raise AttributeError("Node is immutable")

    def __copy__(self) -> Node:
        return self

    def __deepcopy__(self, memo) -> Node:
        return self

    def __reduce__(self):
        return (_rebuild, (int(self.node_type), self.children, self.name, self.value))

    def is_leaf(self) -> bool:
        return self.node_type in LEAF_TYPES

    def is_pattern(self) -> bool:
        return self.node_type is NodeType.PATTERN

    def is_const(self) -> bool:
        return self.node_type is NodeType.CONST

    def walk(self) -> typing.Iterator[Node]:
        """Pre-order traversal of the tree, repeated sub-trees included."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    # Arithmetic builders
    def __add__(self, other) -> Node:
        return Op(NodeType.ADD, self, other)

    def __radd__(self, other) -> Node:
        return Op(NodeType.ADD, other, self)

    def __sub__(self, other) -> Node:
        return Op(NodeType.SUB, self, other)

    def __rsub__(self, other) -> Node:
        return Op(NodeType.SUB, other, self)

    def __mul__(self, other) -> Node:
        return Op(NodeType.MUL, self, other)

    def __rmul__(self, other) -> Node:
        return Op(NodeType.MUL, other, self)

    def __floordiv__(self, other) -> Node:
        """Division with the rounding of the target simplifier (see emulator)."""
        return Op(NodeType.DIV, self, other)

    def __rfloordiv__(self, other) -> Node:
        return Op(NodeType.DIV, other, self)

    def __mod__(self, other) -> Node:
        return Op(NodeType.MOD, self, other)

    def __rmod__(self, other) -> Node:
        return Op(NodeType.MOD, other, self)

    def __neg__(self) -> Node:
        if self.node_type is NodeType.CONST:
            return Const(-self.value)
        return Op(NodeType.SUB, Const(0), self)

    def __repr__(self) -> str:
        from rulefilter.expr.formatters import render

        return f"Node({render(self)})"

    def __str__(self) -> str:
        from rulefilter.expr.formatters import render

        return render(self)


def _rebuild(node_type: int, children: tuple[Node, ...], name, value) -> Node:
    return Node._intern(NodeType(node_type), children, name, value)


def _wrap(operand) -> Node:
    if isinstance(operand, Node):
        return operand
    # bool first: it is a subclass of int
    if isinstance(operand, bool):
        return Bool(operand)
    if isinstance(operand, int):
        return Const(operand)
    raise MalformedExpressionError(f"Cannot use {type(operand).__name__} as an expression")


def Const(value: int) -> Node:
    """An integer immediate."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise MalformedExpressionError(f"Integer constant expected, got {value!r}")
    return Node._intern(NodeType.CONST, value=value)


def Bool(value: bool) -> Node:
    """The boolean constant ``true`` or ``false``."""
    return Node._intern(NodeType.BOOL, value=1 if value else 0)


def Var(name: str) -> Node:
    """A named runtime variable (not a rule wildcard)."""
    if not name:
        raise MalformedExpressionError("Variable name must not be empty")
    return Node._intern(NodeType.VAR, name=name)


def Pattern(name: str) -> Node:
    """A rule wildcard that unifies with any sub-expression."""
    if not name:
        raise MalformedExpressionError("Wildcard name must not be empty")
    return Node._intern(NodeType.PATTERN, name=name)


def Op(node_type: NodeType, *children) -> Node:
    """Build an operator node, checking its arity."""
    expected = ARITY.get(node_type)
    if expected is None:
        raise MalformedExpressionError(f"{node_type.name} is not an operator kind")
    if len(children) != expected:
        raise MalformedExpressionError(
            f"{node_type.name} takes {expected} operand(s), got {len(children)}"
        )
    return Node._intern(node_type, tuple(_wrap(c) for c in children))


def Call(name: str, *args) -> Node:
    """A call to a named function outside the built-in operator set."""
    if not name:
        raise MalformedExpressionError("Call name must not be empty")
    return Node._intern(NodeType.CALL, tuple(_wrap(a) for a in args), name=name)


TRUE = Bool(True)
FALSE = Bool(False)


def min_(a, b) -> Node:
    return Op(NodeType.MIN, a, b)


def max_(a, b) -> Node:
    return Op(NodeType.MAX, a, b)


def select(cond, true_value, false_value) -> Node:
    return Op(NodeType.SELECT, cond, true_value, false_value)


def eq(a, b) -> Node:
    return Op(NodeType.EQ, a, b)


def ne(a, b) -> Node:
    return Op(NodeType.NE, a, b)


def lt(a, b) -> Node:
    return Op(NodeType.LT, a, b)


def le(a, b) -> Node:
    return Op(NodeType.LE, a, b)


def gt(a, b) -> Node:
    return Op(NodeType.LT, b, a)


def ge(a, b) -> Node:
    return Op(NodeType.LE, b, a)


def and_(a, b) -> Node:
    return Op(NodeType.AND, a, b)


def or_(a, b) -> Node:
    return Op(NodeType.OR, a, b)


def not_(a) -> Node:
    return Op(NodeType.NOT, a)


def implies(a, b) -> Node:
    return or_(not_(a), b)


def conjunction(terms: typing.Iterable[Node]) -> Node:
    """Left-nested ``&&`` of ``terms``; ``true`` operands are dropped."""
    result = TRUE
    for term in terms:
        if term is TRUE:
            continue
        result = term if result is TRUE else and_(result, term)
    return result


def compare(a: Node, b: Node) -> Ordering:
    """Strict total order over trees.

    Kind tag first, then (for calls) the number of arguments, then the
    children left to right, then the leaf payload.
    """
    if a is b:
        return Ordering.EQUAL
    if a.node_type != b.node_type:
        return Ordering.LESS if a.node_type < b.node_type else Ordering.GREATER
    if len(a.children) != len(b.children):
        return Ordering.LESS if len(a.children) < len(b.children) else Ordering.GREATER
    for ca, cb in zip(a.children, b.children):
        result = compare(ca, cb)
        if result is not Ordering.EQUAL:
            return result
    if a.name != b.name:
        return Ordering.LESS if (a.name or "") < (b.name or "") else Ordering.GREATER
    if a.value != b.value:
        return Ordering.LESS if (a.value or 0) < (b.value or 0) else Ordering.GREATER
    return Ordering.EQUAL


def equal(a: Node, b: Node) -> bool:
    return compare(a, b) is Ordering.EQUAL


def same_identity(a: Node, b: Node) -> bool:
    """Cheap pre-filter; never required for correctness."""
    return a is b


sort_key = functools.cmp_to_key(compare)
