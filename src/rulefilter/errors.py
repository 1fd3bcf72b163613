"""Exception hierarchy for rulefilter.

Only conditions that abort a whole run (or a caller's request) are
exceptions. Per-rule problems found during classification are verdicts.
"""


class RuleFilterError(Exception):
    """Base class for every error raised by rulefilter."""


class MalformedExpressionError(RuleFilterError):
    """A term could not be parsed, or violates arity/type rules."""

    def __init__(self, message: str, line: int | None = None, column: int | None = None):
        self.line = line
        self.column = column
        if line is not None:
            message = f"{message} (line {line}, column {column})"
        super().__init__(message)


class MalformedRuleError(RuleFilterError):
    """A top-level term is not a rewrite(lhs, rhs[, predicate]) construct."""


class EvaluationError(RuleFilterError):
    """An expression cannot be evaluated on concrete integers."""


class OracleUnavailableError(RuleFilterError):
    """The requested arithmetic oracle backend cannot be used."""


class SynthesisError(RuleFilterError):
    """The synthesizer was asked to search an empty candidate space."""
