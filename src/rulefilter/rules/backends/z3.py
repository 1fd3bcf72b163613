"""z3 backend for the arithmetic oracle.

Expression trees are translated into z3's integer theory:

* wildcards and runtime variables become ``Int`` constants named by their
  symbol key (``x``, ``$x``), or ``Bool`` constants when they are used in a
  boolean position;
* ``/`` and ``%`` are SMT-LIB ``div``/``mod`` (Euclidean) guarded so that a
  zero divisor yields 0, matching :mod:`rulefilter.expr.emulator`;
* ``min``/``max``/``select`` become ``If`` terms;
* generic calls become uninterpreted integer functions.

Every query is written to the ``rulefilter.z3_queries`` logger in SMT-LIB
form so a run can be replayed outside Python.
"""

from __future__ import annotations

import functools
import typing

from rulefilter.core import OracleOptions, getLogger
from rulefilter.errors import OracleUnavailableError
from rulefilter.expr.ast import (
    FALSE,
    TRUE,
    Call,
    Const,
    Node,
    NodeType,
    Op,
    ge,
    gt,
)
from rulefilter.expr.utils import Example, boolean_symbols, symbol_key

logger = getLogger(__name__)
query_logger = getLogger("rulefilter.z3_queries")

try:
    import z3

    Z3_INSTALLED = True
except ImportError:
    logger.info("z3 oracle disabled. Install z3-solver to enable it")
    Z3_INSTALLED = False


class Untranslatable(Exception):
    """A z3 term has no counterpart in the expression language."""


class Z3Translator:
    """Converts expression trees to z3 terms and back.

    One translator is used per query so that the same symbol always maps to
    the same z3 constant.
    """

    def __init__(self, root: Node, formula: bool = False):
        self.bool_symbols = boolean_symbols(root, formula=formula)
        self.symbols: dict[str, typing.Any] = {}
        self.leaves: dict[str, Node] = {}
        self.functions: dict[tuple[str, int], typing.Any] = {}

    def visit(self, node: Node):
        nt = node.node_type
        match nt:
            case NodeType.CONST:
                return z3.IntVal(node.value)
            case NodeType.BOOL:
                return z3.BoolVal(bool(node.value))
            case NodeType.VAR | NodeType.PATTERN:
                return self._symbol(node)
            case NodeType.CALL:
                return self._call(node)

        args = [self.visit(c) for c in node.children]
        match nt:
            case NodeType.ADD:
                return args[0] + args[1]
            case NodeType.SUB:
                return args[0] - args[1]
            case NodeType.MUL:
                return args[0] * args[1]
            case NodeType.DIV:
                a, b = args
                return z3.If(b == 0, z3.IntVal(0), a / b)
            case NodeType.MOD:
                a, b = args
                return z3.If(b == 0, z3.IntVal(0), a % b)
            case NodeType.MIN:
                a, b = args
                return z3.If(a <= b, a, b)
            case NodeType.MAX:
                a, b = args
                return z3.If(a >= b, a, b)
            case NodeType.EQ:
                return args[0] == args[1]
            case NodeType.NE:
                return args[0] != args[1]
            case NodeType.LT:
                return args[0] < args[1]
            case NodeType.LE:
                return args[0] <= args[1]
            case NodeType.AND:
                return z3.And(*args)
            case NodeType.OR:
                return z3.Or(*args)
            case NodeType.NOT:
                return z3.Not(args[0])
            case NodeType.SELECT:
                return z3.If(*args)
        raise ValueError(f"Unsupported node type {nt.name}")

    def _symbol(self, node: Node):
        key = symbol_key(node)
        symbol = self.symbols.get(key)
        if symbol is None:
            if key in self.bool_symbols:
                symbol = z3.Bool(key)
            else:
                symbol = z3.Int(key)
            self.symbols[key] = symbol
            self.leaves[key] = node
        return symbol

    def _call(self, node: Node):
        signature = (node.name, len(node.children))
        fn = self.functions.get(signature)
        if fn is None:
            sorts = [z3.IntSort()] * (len(node.children) + 1)
            fn = z3.Function(node.name, *sorts)
            self.functions[signature] = fn
        return fn(*(self.visit(c) for c in node.children))

    # ------------------------------------------------------------------
    # z3 -> Node
    # ------------------------------------------------------------------
    def back(self, term) -> Node:
        """Translate a (simplified) z3 term back into an expression tree.

        Raises:
            Untranslatable: for any form the expression language lacks.
        """
        if z3.is_int_value(term):
            return Const(term.as_long())
        if z3.is_true(term):
            return TRUE
        if z3.is_false(term):
            return FALSE
        if not z3.is_app(term):
            raise Untranslatable(str(term))

        kind = term.decl().kind()
        args = [self.back(c) for c in term.children()]
        if kind == z3.Z3_OP_UNINTERPRETED:
            name = term.decl().name()
            if not args:
                leaf = self.leaves.get(name)
                if leaf is None:
                    raise Untranslatable(name)
                return leaf
            return Call(name, *args)
        match kind:
            case z3.Z3_OP_ADD:
                return functools.reduce(lambda a, b: a + b, args)
            case z3.Z3_OP_MUL:
                return functools.reduce(lambda a, b: a * b, args)
            case z3.Z3_OP_SUB:
                return functools.reduce(lambda a, b: a - b, args)
            case z3.Z3_OP_UMINUS:
                return -args[0]
            case z3.Z3_OP_IDIV:
                return Op(NodeType.DIV, *args)
            case z3.Z3_OP_MOD:
                return Op(NodeType.MOD, *args)
            case z3.Z3_OP_ITE:
                return Op(NodeType.SELECT, *args)
            case z3.Z3_OP_EQ:
                return Op(NodeType.EQ, *args)
            case z3.Z3_OP_DISTINCT if len(args) == 2:
                return Op(NodeType.NE, *args)
            case z3.Z3_OP_LT:
                return Op(NodeType.LT, *args)
            case z3.Z3_OP_LE:
                return Op(NodeType.LE, *args)
            case z3.Z3_OP_GT:
                return gt(*args)
            case z3.Z3_OP_GE:
                return ge(*args)
            case z3.Z3_OP_AND:
                return functools.reduce(lambda a, b: Op(NodeType.AND, a, b), args)
            case z3.Z3_OP_OR:
                return functools.reduce(lambda a, b: Op(NodeType.OR, a, b), args)
            case z3.Z3_OP_NOT:
                return Op(NodeType.NOT, *args)
        raise Untranslatable(str(term))


class Z3Oracle:
    """z3 implementation of :class:`~rulefilter.rules.oracle.ArithmeticOracle`.

    ``unknown`` answers (timeouts, resource limits, incomplete theories)
    always read as "not proven".

    Usage:
        >>> from rulefilter.expr.ast import Pattern, eq
        >>> x = Pattern("x")
        >>> Z3Oracle().is_valid(eq((x * 4) % 2, 0))
        True
    """

    def __init__(self, options: OracleOptions | None = None):
        if not Z3_INSTALLED:
            raise OracleUnavailableError(
                "z3 is not installed. Install z3-solver to use the z3 oracle."
            )
        self.options = options if options is not None else OracleOptions()

    def __repr__(self) -> str:
        return f"Z3Oracle(timeout_ms={self.options.timeout_ms})"

    def _solver(self):
        solver = z3.Solver()
        if self.options.timeout_ms > 0:
            solver.set("timeout", self.options.timeout_ms)
        if self.options.max_proof_size > 0:
            solver.set("rlimit", self.options.max_proof_size)
        return solver

    def _refute(self, formula: Node):
        """Check ``!formula``; return (result, solver, translator) or None."""
        translator = Z3Translator(formula, formula=True)
        try:
            term = translator.visit(formula)
        except z3.Z3Exception as e:
            logger.warning("Cannot translate %s for z3: %s", formula, e)
            return None
        solver = self._solver()
        solver.add(z3.Not(term))
        if query_logger.info_on:
            query_logger.info("; %s\n%s(check-sat)", formula, solver.sexpr())
        result = solver.check()
        logger.debug("z3 answered %s for %s", result, formula)
        return result, solver, translator

    def is_valid(self, formula: Node) -> bool:
        outcome = self._refute(formula)
        if outcome is None:
            return False
        result, _, _ = outcome
        return result == z3.unsat

    def find_counterexample(self, formula: Node) -> Example | None:
        outcome = self._refute(formula)
        if outcome is None:
            return None
        result, solver, translator = outcome
        if result != z3.sat:
            return None
        model = solver.model()
        example: Example = {}
        for key, symbol in sorted(translator.symbols.items()):
            value = model.eval(symbol, model_completion=True)
            if z3.is_int_value(value):
                example[key] = value.as_long()
            else:
                example[key] = z3.is_true(value)
        return example

    def normalize(self, node: Node) -> Node:
        """Simplify with ``z3.simplify``; ``node`` is returned unchanged when
        the simplified term cannot be expressed as a tree."""
        translator = Z3Translator(node)
        try:
            simplified = z3.simplify(translator.visit(node))
            return translator.back(simplified)
        except (z3.Z3Exception, Untranslatable) as e:
            logger.debug("Keeping %s as is: %s", node, e)
            return node


__all__ = ["Z3Oracle", "Z3Translator", "Z3_INSTALLED"]
