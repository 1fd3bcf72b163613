"""Rule records, pattern generality, predicate synthesis and classification."""

from .classifier import (
    Classification,
    ClassificationReport,
    ClassificationSession,
    Verdict,
    classify_rules,
)
from .matcher import more_general_than
from .oracle import ArithmeticOracle, create_oracle, get_default_oracle
from .rule import Rule, load_rules, loads_rules, rules_from_terms, sorted_unique
from .synthesis import PredicateSynthesizer, SynthesisResult

__all__ = [
    "Classification",
    "ClassificationReport",
    "ClassificationSession",
    "Verdict",
    "classify_rules",
    "more_general_than",
    "ArithmeticOracle",
    "create_oracle",
    "get_default_oracle",
    "Rule",
    "load_rules",
    "loads_rules",
    "rules_from_terms",
    "sorted_unique",
    "PredicateSynthesizer",
    "SynthesisResult",
]
