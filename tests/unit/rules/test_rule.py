"""Tests for rule records and corpus loading."""

import pytest

from rulefilter.errors import MalformedRuleError
from rulefilter.expr.ast import TRUE, Call, Const, Pattern, eq, ne
from rulefilter.expr.parser import parse_expression
from rulefilter.rules.rule import Rule, load_rules, loads_rules, sorted_unique

x, y, c0 = Pattern("x"), Pattern("y"), Pattern("c0")


class TestRuleFromTerm:
    def test_three_arguments(self):
        term = parse_expression("rewrite(x + y, x, y == 0)")
        rule = Rule.from_term(term)
        assert rule.lhs is x + y
        assert rule.rhs is x
        assert rule.predicate is eq(y, 0)
        assert rule.origin is term

    def test_two_argument_shorthand(self):
        rule = Rule.from_term(parse_expression("rewrite(x + 0, x)"))
        assert rule.predicate is TRUE

    @pytest.mark.parametrize(
        "text",
        [
            "x + 0",
            "rewrite(x)",
            "rewrite(x, x, true, true)",
            "rewrote(x, x)",
            "rewrite(x + 1, x < 1)",
            "rewrite(x, x, x + 1)",
            "rewrite(x, (x < 1) && 2)",
        ],
    )
    def test_rejects_malformed(self, text):
        with pytest.raises(MalformedRuleError):
            Rule.from_term(parse_expression(text))

    def test_error_names_the_term(self):
        with pytest.raises(MalformedRuleError, match=r"Expr is not a rewrite rule: \(x \+ 0\)"):
            Rule.from_term(parse_expression("x + 0"))

    def test_apply_binding_keeps_origin(self):
        term = parse_expression("rewrite(x + c0, x, c0 == 0)")
        rule = Rule.from_term(term)
        rule.apply_binding({"c0": Const(0)})
        assert rule.lhs is x + 0
        assert rule.origin is term
        assert str(rule) == "rewrite((x + c0), x, (c0 == 0))"

    def test_to_term(self):
        rule = Rule(x // c0 * c0, x, ne(c0, 0), Call("rewrite", x, x))
        assert rule.to_term() == "rewrite(((x / c0) * c0), x, (c0 != 0))"


class TestCorpus:
    def test_sorted_and_deduplicated(self):
        rules = loads_rules(
            """
            rewrite(y, y)
            rewrite(x, x)
            rewrite(y, y)
            rewrite(x + 1, x, true)
            rewrite(x, x)
            """
        )
        assert [str(r) for r in rules] == [
            "rewrite(x, x)",
            "rewrite(y, y)",
            "rewrite((x + 1), x, true)",
        ]

    def test_sorted_unique(self):
        assert sorted_unique([y, x, y, x + 1, x]) == [x, y, x + 1]

    def test_one_bad_term_rejects_the_corpus(self):
        with pytest.raises(MalformedRuleError):
            loads_rules("rewrite(x, x)\nx + 1\n")

    def test_load_rules(self, rule_file):
        path = rule_file("rewrite(x - x, 0)\n")
        (rule,) = load_rules(path)
        assert rule.lhs is x - x
        assert rule.rhs is Const(0)
