"""Rewrite rule records and loading of rule corpora."""

from __future__ import annotations

import dataclasses
import pathlib
import typing

from rulefilter.core import getLogger
from rulefilter.errors import MalformedExpressionError, MalformedRuleError
from rulefilter.expr.ast import TRUE, Node, NodeType, equal, sort_key
from rulefilter.expr.formatters import format_rule, render
from rulefilter.expr.parser import parse_file, parse_terms
from rulefilter.expr.utils import BOOL, result_type, substitute

logger = getLogger(__name__)

REWRITE = "rewrite"


@dataclasses.dataclass(slots=True)
class Rule:
    """A candidate ``lhs -> rhs when predicate`` rule.

    ``lhs``, ``rhs`` and ``predicate`` are replaced wholesale as the rule is
    processed; ``origin`` is the term the rule was read from and never
    changes.
    """

    lhs: Node
    rhs: Node
    predicate: Node
    origin: Node

    @classmethod
    def from_term(cls, term: Node) -> "Rule":
        """Build a rule from ``rewrite(lhs, rhs[, predicate])``.

        Raises:
            MalformedRuleError: ``term`` is not a rewrite construct or its
                operands have inconsistent types.
        """
        if term.node_type is not NodeType.CALL or term.name != REWRITE:
            raise MalformedRuleError(f"Expr is not a rewrite rule: {render(term)}")
        if len(term.children) == 2:
            lhs, rhs = term.children
            predicate = TRUE
        elif len(term.children) == 3:
            lhs, rhs, predicate = term.children
        else:
            raise MalformedRuleError(
                f"rewrite takes 2 or 3 arguments, got {len(term.children)}: {render(term)}"
            )
        try:
            lhs_type = result_type(lhs)
            rhs_type = result_type(rhs)
            predicate_type = result_type(predicate)
        except MalformedExpressionError as e:
            raise MalformedRuleError(f"{e}: {render(term)}") from None
        if lhs_type is not None and rhs_type is not None and lhs_type != rhs_type:
            raise MalformedRuleError(
                f"lhs is {lhs_type} but rhs is {rhs_type}: {render(term)}"
            )
        if predicate_type not in (None, BOOL):
            raise MalformedRuleError(f"Predicate is not boolean: {render(term)}")
        return cls(lhs=lhs, rhs=rhs, predicate=predicate, origin=term)

    def apply_binding(self, binding: typing.Mapping[str, Node]) -> None:
        self.lhs = substitute(binding, self.lhs)
        self.rhs = substitute(binding, self.rhs)

    def to_term(self) -> str:
        return format_rule(self.lhs, self.rhs, self.predicate)

    def __str__(self) -> str:
        return render(self.origin)


def sorted_unique(terms: typing.Iterable[Node]) -> list[Node]:
    """Sort by structural order and drop duplicates (which end up adjacent)."""
    unique: list[Node] = []
    for term in sorted(terms, key=sort_key):
        if unique and equal(unique[-1], term):
            continue
        unique.append(term)
    return unique


def rules_from_terms(terms: typing.Iterable[Node]) -> list[Rule]:
    """Canonical, de-duplicated rule list.

    Raises:
        MalformedRuleError: on the first term that is not a rewrite rule.
    """
    terms = list(terms)
    unique = sorted_unique(terms)
    if len(unique) != len(terms):
        logger.info("Dropped %d duplicate rules", len(terms) - len(unique))
    return [Rule.from_term(term) for term in unique]


def load_rules(path: str | pathlib.Path) -> list[Rule]:
    return rules_from_terms(parse_file(path))


def loads_rules(text: str) -> list[Rule]:
    return rules_from_terms(parse_terms(text))
