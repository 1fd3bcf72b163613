"""Exhaustive oracle over a small integer box.

Validity here means "true at every point of ``[-r, r]^n``" (``r`` being
``OracleOptions.search_radius``), which is weaker than validity over all
integers. The backend exists for solver-free runs and for tests, where its
answers are exact and reproducible.
"""

from __future__ import annotations

from rulefilter.core import OracleOptions, getLogger
from rulefilter.errors import EvaluationError
from rulefilter.expr.ast import Node
from rulefilter.expr.emulator import compile_node
from rulefilter.expr.folding import fold
from rulefilter.expr.utils import (
    Example,
    assignments,
    boolean_symbols,
    free_symbols,
    small_integers,
)

logger = getLogger(__name__)


class BoundedOracle:
    """:class:`~rulefilter.rules.oracle.ArithmeticOracle` by enumeration.

    >>> from rulefilter.expr.ast import Pattern, eq
    >>> x = Pattern("x")
    >>> BoundedOracle().is_valid(eq(x - x, 0))
    True
    >>> BoundedOracle().find_counterexample(eq(x * 2, x))
    {'x': 1}
    """

    def __init__(self, options: OracleOptions | None = None):
        self.options = options if options is not None else OracleOptions()
        self._values = small_integers(self.options.search_radius)

    def __repr__(self) -> str:
        return f"BoundedOracle(radius={self.options.search_radius})"

    @property
    def proof_scope(self) -> str:
        """The box a valid answer was checked on, e.g. ``[-4, 4]``."""
        r = self.options.search_radius
        return f"[-{r}, {r}]"

    def is_valid(self, formula: Node) -> bool:
        try:
            return self.find_counterexample(formula) is None
        except EvaluationError as e:
            logger.debug("Cannot decide %s: %s", formula, e)
            return False

    def normalize(self, node: Node) -> Node:
        return fold(node)

    def find_counterexample(self, formula: Node) -> Example | None:
        """First point of the box, in enumeration order, falsifying ``formula``.

        Raises:
            EvaluationError: ``formula`` contains something that cannot be
                evaluated (a generic call).
        """
        fn = compile_node(formula)
        keys = sorted(free_symbols(formula))
        points = assignments(keys, self._values, boolean_symbols(formula, formula=True))
        for visited, env in enumerate(points):
            if visited >= self.options.max_assignments:
                logger.info(
                    "Stopped after %d points while checking %s", visited, formula
                )
                break
            if not fn(env):
                return env
        return None
