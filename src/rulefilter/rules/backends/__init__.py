"""Arithmetic oracle backends.

z3 is imported lazily by :mod:`rulefilter.rules.backends.z3` so the
bounded backend stays usable without the solver installed.
"""

from .bounded import BoundedOracle

__all__ = ["BoundedOracle"]
