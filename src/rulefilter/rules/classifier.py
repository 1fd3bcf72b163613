"""Classification of a rule corpus.

A :class:`ClassificationSession` owns the candidate list and the synthesis
and oracle settings for one run. Rules go through fixed stages, the first
stage that rejects a rule decides its verdict:

1. sort by structural order and drop duplicates;
2. re-synthesize the predicate (and pin constant-class wildcards);
3. reject a ``false`` predicate;
4. reject rules whose rhs introduces a variable the lhs does not bind;
5. reject rules whose lhs the normalizer already shrinks;
6. reject rules made redundant by a more general surviving rule;
7. accept the rest.
"""

from __future__ import annotations

import dataclasses
import enum
import typing

from rulefilter.core import SynthesisOptions, getLogger
from rulefilter.expr.ast import Node, not_, or_
from rulefilter.expr.formatters import render
from rulefilter.expr.utils import count_leaves, free_symbols, is_false, substitute
from rulefilter.rules.matcher import more_general_than
from rulefilter.rules.oracle import ArithmeticOracle
from rulefilter.rules.rule import Rule, rules_from_terms
from rulefilter.rules.synthesis import PredicateSynthesizer, SynthesisResult

logger = getLogger(__name__)


class Verdict(enum.Enum):
    FALSE_PREDICATE = "False predicate"
    IMPLICIT_RULE = "Implicit rule"
    SIMPLIFIABLE_LHS = "Simplifiable LHS"
    TOO_SPECIFIC = "Too specific"
    GOOD_RULE = "Good rule"


@dataclasses.dataclass(slots=True)
class Classification:
    """Verdict for one rule.

    ``reduced`` is set for SIMPLIFIABLE_LHS, ``dominated_by`` for
    TOO_SPECIFIC.
    """

    verdict: Verdict
    rule: Rule
    reduced: Node | None = None
    dominated_by: Rule | None = None

    @property
    def accepted(self) -> bool:
        return self.verdict is Verdict.GOOD_RULE

    def line(self, proof_scope: str | None = None) -> str:
        """Report line. Accepted rules checked by a bounded oracle carry the
        box they were checked on."""
        match self.verdict:
            case Verdict.SIMPLIFIABLE_LHS:
                text = f"{render(self.rule.lhs)} -> {render(self.reduced)}"
            case Verdict.TOO_SPECIFIC:
                text = f"{self.rule} vs {self.dominated_by}"
            case Verdict.GOOD_RULE:
                text = self.rule.to_term()
                if proof_scope is not None:
                    text += f" (box-validated on {proof_scope})"
            case _:
                text = str(self.rule)
        return f"{self.verdict.value}: {text}"

    def to_dict(self) -> dict[str, typing.Any]:
        data: dict[str, typing.Any] = {
            "verdict": self.verdict.name.lower(),
            "origin": str(self.rule),
            "lhs": render(self.rule.lhs),
            "rhs": render(self.rule.rhs),
            "predicate": render(self.rule.predicate),
        }
        if self.reduced is not None:
            data["reduced"] = render(self.reduced)
        if self.dominated_by is not None:
            data["dominated_by"] = str(self.dominated_by)
        return data


@dataclasses.dataclass(slots=True)
class ClassificationReport:
    """Everything a run produced, in canonical rule order."""

    resynthesized: list[Rule] = dataclasses.field(default_factory=list)
    classifications: list[Classification] = dataclasses.field(default_factory=list)
    # set when the oracle only checked a bounded box, None for real proofs
    proof_scope: str | None = None

    def lines(self) -> list[str]:
        lines = [f"Re-synthesizing predicate for {rule}" for rule in self.resynthesized]
        lines.extend(c.line(self.proof_scope) for c in self.classifications)
        return lines

    def accepted(self) -> list[Rule]:
        return [c.rule for c in self.classifications if c.accepted]

    def summary(self) -> dict[Verdict, int]:
        counts = {verdict: 0 for verdict in Verdict}
        for c in self.classifications:
            counts[c.verdict] += 1
        return counts

    def to_dict(self) -> dict[str, typing.Any]:
        data: dict[str, typing.Any] = {
            "rules": [c.to_dict() for c in self.classifications],
            "summary": {v.name.lower(): n for v, n in self.summary().items()},
        }
        if self.proof_scope is not None:
            data["validated_on"] = self.proof_scope
        return data


class ClassificationSession:
    """One classification run over a rule corpus.

    Usage:
        >>> from rulefilter.expr.parser import parse_terms
        >>> from rulefilter.rules.backends.bounded import BoundedOracle
        >>> session = ClassificationSession(BoundedOracle())
        >>> report = session.classify_terms(parse_terms("rewrite(x - x, 0)"))
        >>> report.lines()[-1]
        'Simplifiable LHS: (x - x) -> 0'
    """

    def __init__(self, oracle: ArithmeticOracle, options: SynthesisOptions | None = None):
        self.oracle = oracle
        self.options = options if options is not None else SynthesisOptions()
        self.synthesizer = PredicateSynthesizer(oracle, self.options)
        self.rules: list[Rule] = []

    def classify_terms(self, terms: typing.Iterable[Node]) -> ClassificationReport:
        """Load ``terms`` as rules and classify them.

        Raises:
            MalformedRuleError: a term is not a rewrite rule. Nothing is
                classified in that case.
        """
        return self.classify(rules_from_terms(terms))

    def classify(self, rules: list[Rule]) -> ClassificationReport:
        """Classify ``rules``, which must already be sorted and de-duplicated."""
        self.rules = rules
        report = ClassificationReport(proof_scope=getattr(self.oracle, "proof_scope", None))
        if report.proof_scope is not None:
            logger.warning(
                "%r only checks %s; accepted rules are not proven over all integers",
                self.oracle,
                report.proof_scope,
            )
        verdicts: dict[int, Classification] = {}
        candidates: list[Rule] = []

        for rule in self.rules:
            logger.update_rule(str(rule))
            try:
                report.resynthesized.append(rule)
                self.resynthesize(rule)
                verdict = self._filter(rule)
            finally:
                logger.reset_rule()
            if verdict is None:
                candidates.append(rule)
            else:
                verdicts[id(rule)] = verdict

        for rule in candidates:
            logger.update_rule(str(rule))
            try:
                verdicts[id(rule)] = self._dominance(rule, candidates)
            finally:
                logger.reset_rule()

        report.classifications = [verdicts[id(rule)] for rule in self.rules]
        logger.info(
            "Classified %d rules: %s",
            len(self.rules),
            ", ".join(f"{v.value}={n}" for v, n in report.summary().items()),
        )
        return report

    def resynthesize(self, rule: Rule) -> SynthesisResult:
        logger.info("Re-synthesizing predicate for %s", rule)
        result = self.synthesizer.synthesize(rule.lhs, rule.rhs)
        rule.predicate = result.predicate
        rule.apply_binding(result.binding)
        logger.debug(
            "Synthesized %s after %d iterations", render(result.predicate), result.iterations
        )
        return result

    def _filter(self, rule: Rule) -> Classification | None:
        if is_false(rule.predicate):
            return Classification(Verdict.FALSE_PREDICATE, rule)

        if free_symbols(rule.rhs) - free_symbols(rule.lhs):
            return Classification(Verdict.IMPLICIT_RULE, rule)

        reduced = self.oracle.normalize(rule.lhs)
        if count_leaves(reduced) < count_leaves(rule.lhs):
            return Classification(Verdict.SIMPLIFIABLE_LHS, rule, reduced=reduced)
        return None

    def _dominance(self, rule: Rule, candidates: list[Rule]) -> Classification:
        position = candidates.index(rule)
        for index, other in enumerate(candidates):
            if other is rule or other.origin is rule.origin:
                continue
            if not self.dominates(other, rule):
                continue
            # of two rules covering each other only the later one goes; the
            # reference filter rejects both, which would drop the pair entirely
            if index > position and self.dominates(rule, other):
                continue
            logger.info("%s is dominated by %s", rule, other)
            return Classification(Verdict.TOO_SPECIFIC, rule, dominated_by=other)
        return Classification(Verdict.GOOD_RULE, rule)

    def dominates(self, general: Rule, specific: Rule) -> bool:
        """True when ``general`` fires wherever ``specific`` would.

        The lhs of ``general`` must cover the lhs of ``specific`` with some
        binding ``b``, and ``specific.predicate`` must imply ``general``'s
        predicate instantiated with ``b``.
        """
        binding = more_general_than(general.lhs, specific.lhs)
        if binding is None:
            return False
        formula = or_(substitute(binding, general.predicate), not_(specific.predicate))
        return self.oracle.is_valid(formula)


def classify_rules(
    terms: typing.Iterable[Node],
    oracle: ArithmeticOracle,
    options: SynthesisOptions | None = None,
) -> ClassificationReport:
    """Convenience wrapper around :class:`ClassificationSession`."""
    return ClassificationSession(oracle, options).classify_terms(terms)


__all__ = [
    "Classification",
    "ClassificationReport",
    "ClassificationSession",
    "Verdict",
    "classify_rules",
]
