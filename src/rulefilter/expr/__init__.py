"""Expression trees: construction, ordering, analysis, evaluation and text I/O."""

from .ast import (
    FALSE,
    TRUE,
    Bool,
    Call,
    Const,
    Node,
    NodeType,
    Op,
    Ordering,
    Pattern,
    Var,
    and_,
    compare,
    conjunction,
    eq,
    equal,
    ge,
    gt,
    implies,
    is_constant_class,
    le,
    lt,
    max_,
    min_,
    ne,
    not_,
    or_,
    same_identity,
    select,
    sort_key,
)
from .emulator import evaluate
from .formatters import format_rule, render
from .parser import parse_expression, parse_file, parse_terms
from .utils import (
    Binding,
    Example,
    count_leaves,
    free_pattern_vars,
    free_symbols,
    result_type,
    substitute,
    uses_var,
)

__all__ = [
    "FALSE",
    "TRUE",
    "Bool",
    "Call",
    "Const",
    "Node",
    "NodeType",
    "Op",
    "Ordering",
    "Pattern",
    "Var",
    "and_",
    "compare",
    "conjunction",
    "eq",
    "equal",
    "ge",
    "gt",
    "implies",
    "is_constant_class",
    "le",
    "lt",
    "max_",
    "min_",
    "ne",
    "not_",
    "or_",
    "same_identity",
    "select",
    "sort_key",
    "evaluate",
    "format_rule",
    "render",
    "parse_expression",
    "parse_file",
    "parse_terms",
    "Binding",
    "Example",
    "count_leaves",
    "free_pattern_vars",
    "free_symbols",
    "result_type",
    "substitute",
    "uses_var",
]
