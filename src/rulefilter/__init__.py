__version__ = "0.1.0"

from rulefilter.errors import (
    EvaluationError,
    MalformedExpressionError,
    MalformedRuleError,
    OracleUnavailableError,
    RuleFilterError,
)
from rulefilter.expr import parse_expression, parse_terms, render
from rulefilter.rules import (
    ClassificationSession,
    PredicateSynthesizer,
    Verdict,
    classify_rules,
    more_general_than,
)

__all__ = [
    "__version__",
    "EvaluationError",
    "MalformedExpressionError",
    "MalformedRuleError",
    "OracleUnavailableError",
    "RuleFilterError",
    "parse_expression",
    "parse_terms",
    "render",
    "ClassificationSession",
    "PredicateSynthesizer",
    "Verdict",
    "classify_rules",
    "more_general_than",
]
