"""Arithmetic oracle interface used by synthesis and classification.

This module is BACKEND-AGNOSTIC. Implementations live in
:mod:`rulefilter.rules.backends`:

* :class:`~rulefilter.rules.backends.z3.Z3Oracle` proves formulas over the
  unbounded integers with z3 (the default).
* :class:`~rulefilter.rules.backends.bounded.BoundedOracle` checks formulas
  exhaustively over a small integer box; no solver needed.

Every formula handed to an oracle uses the evaluation semantics of
:mod:`rulefilter.expr.emulator` (Euclidean division, ``x / 0 == 0``).

An oracle whose validity is weaker than validity over all integers exposes
a ``proof_scope`` attribute naming what it checked. Reports built with such
an oracle carry that scope on every accepted rule.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from rulefilter.core.config import OracleOptions
from rulefilter.expr.ast import Node
from rulefilter.expr.utils import Example


@runtime_checkable
class ArithmeticOracle(Protocol):
    """Protocol for the arithmetic decision procedure.

    Example implementation:
        class TrivialOracle:
            def is_valid(self, formula):
                return formula is TRUE

            def normalize(self, node):
                return node

            def find_counterexample(self, formula):
                return None
    """

    def is_valid(self, formula: Node) -> bool:
        """Return True only if ``formula`` holds for every assignment.

        False means "not proven"; it does not imply a counterexample exists.
        """
        ...

    def normalize(self, node: Node) -> Node:
        """Return an equivalent, simplified tree (possibly ``node`` itself)."""
        ...

    def find_counterexample(self, formula: Node) -> Example | None:
        """Return an assignment of ``formula``'s free symbols that makes it
        false, or None when none was found.

        Keys are symbol keys (see :func:`rulefilter.expr.utils.symbol_key`).
        """
        ...


def get_default_oracle(options: OracleOptions | None = None) -> ArithmeticOracle:
    """Get the default arithmetic oracle (z3).

    Raises:
        OracleUnavailableError: If z3 is not installed.
    """
    from rulefilter.rules.backends.z3 import Z3Oracle

    return Z3Oracle(options)


def create_oracle(backend: str, options: OracleOptions | None = None) -> ArithmeticOracle:
    """Instantiate the oracle backend named ``backend`` (``z3`` or ``bounded``)."""
    if backend == "z3":
        return get_default_oracle(options)
    if backend == "bounded":
        from rulefilter.rules.backends.bounded import BoundedOracle

        return BoundedOracle(options)
    raise ValueError(f"Unknown oracle backend {backend!r}")
