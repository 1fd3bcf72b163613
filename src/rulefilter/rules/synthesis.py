"""Counterexample guided synthesis of rule predicates.

Given ``lhs`` and ``rhs`` the synthesizer looks for a predicate ``P`` over
the wildcards of ``lhs`` and a binding of constant-class wildcards such
that ``P => lhs == rhs`` is valid. It grows ``P`` one atom at a time:

1. enumerate small assignments of the lhs symbols; the first point where
   ``P`` holds but ``lhs != rhs`` is a counterexample;
2. with no counterexample in range, ask the oracle to prove the rule
   (and, failing that, for a counterexample outside the range);
3. strengthen ``P`` with the first atom of a fixed grammar that excludes
   the counterexample and keeps the most known good points. An equality that
   names a constant-class wildcard pins that wildcard in the binding
   instead;
4. once the oracle proves the rule, drop, first to last, every conjunct
   the proof still goes through without.

Wildcards that only appear in ``rhs`` are existential: the first witness
(an lhs wildcard or a literal) that survives enumeration stands in for
them while the rule is checked.

Every choice is made in a fixed order, so the same input always gives the
same result.
"""

from __future__ import annotations

import dataclasses
import itertools
import typing

from rulefilter.core import SynthesisOptions, getLogger
from rulefilter.errors import EvaluationError, SynthesisError
from rulefilter.expr.ast import (
    FALSE,
    TRUE,
    Const,
    Node,
    NodeType,
    Pattern,
    conjunction,
    eq,
    implies,
    is_constant_class,
    le,
    lt,
    ne,
    not_,
)
from rulefilter.expr.emulator import compile_node
from rulefilter.expr.folding import fold
from rulefilter.expr.formatters import render
from rulefilter.expr.utils import (
    Binding,
    Example,
    assignments,
    boolean_symbols,
    conjuncts,
    free_pattern_vars,
    free_symbols,
    is_false,
    is_true,
    small_integers,
    substitute,
)
from rulefilter.rules.oracle import ArithmeticOracle

logger = getLogger(__name__)

BASE_LITERALS = (0, 1, -1, 2, -2)


@dataclasses.dataclass(slots=True)
class SynthesisResult:
    """Outcome of one synthesis run.

    ``predicate`` is ``false`` (and ``binding`` empty) when no sound,
    useful predicate was found.
    """

    predicate: Node
    binding: Binding
    examples: list[Example] = dataclasses.field(default_factory=list)
    iterations: int = 0

    @property
    def failed(self) -> bool:
        return is_false(self.predicate)


@dataclasses.dataclass(slots=True)
class _Probe:
    """Enumeration outcome for one candidate target."""

    target: Node
    counterexample: Example | None
    positives: list[Example]
    satisfiable: bool


class PredicateSynthesizer:
    """Finds the weakest predicate (within the atom grammar) making a rule sound.

    Usage:
        >>> from rulefilter.expr.ast import Pattern
        >>> from rulefilter.rules.backends.bounded import BoundedOracle
        >>> x, y = Pattern("x"), Pattern("y")
        >>> result = PredicateSynthesizer(BoundedOracle()).synthesize(x + y, x)
        >>> result.predicate
        Node((y == 0))
    """

    def __init__(self, oracle: ArithmeticOracle, options: SynthesisOptions | None = None):
        self.oracle = oracle
        self.options = options if options is not None else SynthesisOptions()
        self._values = small_integers(self.options.search_radius)

    def synthesize(self, lhs: Node, rhs: Node) -> SynthesisResult:
        predicate: Node = TRUE
        binding: Binding = {}
        examples: list[Example] = []
        literals = self._literals(lhs, rhs)

        for iteration in range(1, self.options.max_iterations + 1):
            current_lhs = substitute(binding, lhs)
            current_rhs = substitute(binding, rhs)
            if logger.debug_on:
                logger.debug(
                    "Iteration %d: %s -> %s when %s",
                    iteration,
                    render(current_lhs),
                    render(current_rhs),
                    render(predicate),
                )
            try:
                probe = self._probe(current_lhs, current_rhs, predicate)
                if not probe.satisfiable:
                    logger.info("Predicate %s is unsatisfiable", render(predicate))
                    return self._failure(examples, iteration)

                counterexample = probe.counterexample
                if counterexample is None:
                    formula = implies(predicate, eq(current_lhs, probe.target))
                    if self.oracle.is_valid(formula):
                        predicate = self._prune(predicate, current_lhs, probe.target)
                        if self._degenerate(lhs, current_lhs, predicate):
                            logger.info(
                                "Predicate %s only admits a single term", render(predicate)
                            )
                            return self._failure(examples, iteration)
                        return SynthesisResult(predicate, binding, examples, iteration)
                    if not self.options.use_oracle_refutation:
                        return self._failure(examples, iteration)
                    counterexample = self.oracle.find_counterexample(formula)
                    if counterexample is None:
                        logger.info("Could neither prove nor refute %s", render(formula))
                        return self._failure(examples, iteration)

                examples.append(counterexample)
                atom = self._choose_atom(
                    current_lhs, counterexample, probe.positives, literals
                )
            except EvaluationError as e:
                logger.info("Cannot evaluate rule: %s", e)
                return self._failure(examples, iteration)

            if atom is None:
                logger.info("No atom excludes counterexample %s", counterexample)
                return self._failure(examples, iteration)

            pin = _as_pin(atom)
            if pin is not None:
                binding = _compose(binding, pin)
                predicate = fold(substitute(pin, predicate))
            else:
                predicate = conjunction([*conjuncts(predicate), atom])
            logger.debug("Chose %s", render(atom))
            if is_false(predicate):
                return self._failure(examples, iteration)

        logger.info("Gave up after %d iterations", self.options.max_iterations)
        return self._failure(examples, self.options.max_iterations)

    @staticmethod
    def _failure(examples: list[Example], iterations: int) -> SynthesisResult:
        return SynthesisResult(FALSE, {}, examples, iterations)

    # ------------------------------------------------------------------
    # Enumeration
    # ------------------------------------------------------------------
    def _probe(self, lhs: Node, rhs: Node, predicate: Node) -> _Probe:
        witnesses = self._witnesses(lhs, rhs)
        first: _Probe | None = None
        for witness in witnesses:
            target = substitute(witness, rhs)
            probe = self._enumerate(lhs, target, predicate, stop_early=True)
            if not probe.satisfiable:
                return probe
            if probe.counterexample is None:
                # only the chosen target needs its full list of good points
                return self._enumerate(lhs, target, predicate, stop_early=False)
            if first is None:
                first = probe
        if first is None:
            raise SynthesisError(f"No witness candidate for {render(rhs)}")
        return self._enumerate(lhs, first.target, predicate, stop_early=False)

    def _witnesses(self, lhs: Node, rhs: Node) -> list[Binding]:
        """Candidate bindings for wildcards that only occur in ``rhs``."""
        names = sorted(free_pattern_vars(rhs) - free_pattern_vars(lhs))
        if not names:
            return [{}]
        candidates = [Pattern(v) for v in sorted(free_pattern_vars(lhs))]
        candidates.extend(Const(k) for k in self._literals(lhs, rhs))
        combos = itertools.islice(
            itertools.product(candidates, repeat=len(names)),
            self.options.max_witness_candidates,
        )
        return [dict(zip(names, combo)) for combo in combos]

    def _enumerate(
        self, lhs: Node, target: Node, predicate: Node, stop_early: bool
    ) -> _Probe:
        lhs_fn = compile_node(lhs)
        target_fn = compile_node(target)
        predicate_fn = compile_node(predicate)

        outer_keys = sorted(free_symbols(lhs))
        # runtime variables of the target that lhs does not bind are universal
        inner_keys = sorted(free_symbols(target) - set(outer_keys))
        bool_keys = boolean_symbols(lhs) | boolean_symbols(target)

        counterexample: Example | None = None
        positives: list[Example] = []
        satisfiable = False
        points = itertools.islice(
            assignments(outer_keys, self._values, bool_keys), self.options.max_examples
        )
        for env in points:
            if not predicate_fn(env):
                continue
            satisfiable = True
            failure = None
            for inner in assignments(inner_keys, self._values, bool_keys):
                full = {**env, **inner}
                if lhs_fn(full) != target_fn(full):
                    failure = full
                    break
            if failure is None:
                positives.append(env)
            elif counterexample is None:
                counterexample = failure
                if stop_early:
                    break
        return _Probe(target, counterexample, positives, satisfiable)

    # ------------------------------------------------------------------
    # Atom grammar
    # ------------------------------------------------------------------
    def _literals(self, lhs: Node, rhs: Node) -> list[int]:
        values = set(BASE_LITERALS) | set(self.options.extra_literals)
        for node in itertools.chain(lhs.walk(), rhs.walk()):
            if node.node_type is NodeType.CONST:
                values.add(node.value)
        return sorted(values, key=lambda k: (abs(k), k < 0))

    def _atoms(self, lhs: Node, literals: list[int]) -> typing.Iterator[Node]:
        bool_names = boolean_symbols(lhs)
        names = sorted(free_pattern_vars(lhs))
        flags = [Pattern(n) for n in names if n in bool_names]
        ints = [Pattern(n) for n in names if n not in bool_names]
        pairs = list(itertools.combinations(ints, 2))
        consts = [Const(k) for k in literals]

        for v in ints:
            for k in consts:
                yield eq(v, k)
        for u, v in pairs:
            yield eq(u, v)
        for v in flags:
            yield v
            yield not_(v)
        for v in ints:
            for k in consts:
                yield ne(v, k)
        for u, v in pairs:
            yield ne(u, v)
        for v in ints:
            for k in consts:
                yield le(k, v)
                yield le(v, k)
                yield lt(k, v)
                yield lt(v, k)
        for u, v in pairs:
            yield lt(u, v)
            yield lt(v, u)
            yield le(u, v)
            yield le(v, u)
        for v in ints:
            for k in consts:
                if k.value >= 2:
                    yield eq(v % k, 0)

    def _choose_atom(
        self,
        lhs: Node,
        counterexample: Example,
        positives: list[Example],
        literals: list[int],
    ) -> Node | None:
        """First atom, in grammar order, that is false at ``counterexample``
        and keeps the largest number of ``positives``."""
        best = None
        best_kept = -1
        for atom in self._atoms(lhs, literals):
            fn = compile_node(atom)
            try:
                if fn(counterexample):
                    continue
            except EvaluationError:
                continue
            kept = sum(1 for env in positives if fn(env))
            if kept == len(positives):
                return atom
            if kept > best_kept:
                best, best_kept = atom, kept
        return best

    # ------------------------------------------------------------------
    # Post checks
    # ------------------------------------------------------------------
    def _prune(self, predicate: Node, lhs: Node, target: Node) -> Node:
        """Drop, in order, every conjunct the rest of ``predicate`` already
        makes redundant."""
        kept = conjuncts(predicate)
        index = 0
        while index < len(kept):
            trial = kept[:index] + kept[index + 1 :]
            if self.oracle.is_valid(implies(conjunction(trial), eq(lhs, target))):
                logger.debug("Dropped redundant %s", render(kept[index]))
                kept = trial
            else:
                index += 1
        return conjunction(kept)

    @staticmethod
    def _degenerate(original_lhs: Node, lhs: Node, predicate: Node) -> bool:
        """True when the rule could only ever fire on one closed term."""
        names = free_pattern_vars(lhs)
        if not names:
            return bool(free_pattern_vars(original_lhs))
        if is_true(predicate):
            return False
        pinned = set()
        for atom in conjuncts(predicate):
            if atom.node_type is not NodeType.EQ:
                continue
            a, b = atom.children
            if a.is_pattern() and b.is_const():
                pinned.add(a.name)
            elif b.is_pattern() and a.is_const():
                pinned.add(b.name)
        return names <= pinned


def _as_pin(atom: Node) -> Binding | None:
    """Binding for an equality that names a constant-class wildcard."""
    if atom.node_type is not NodeType.EQ:
        return None
    a, b = atom.children
    if not (a.is_pattern() and is_constant_class(a.name)):
        return None
    if b.is_const():
        return {a.name: b}
    if b.is_pattern() and is_constant_class(b.name):
        return {b.name: a}
    return None


def _compose(binding: Binding, pin: Binding) -> Binding:
    composed = {name: substitute(pin, value) for name, value in binding.items()}
    composed.update(pin)
    return composed
