"""Tests for the rule-file parser and the canonical renderer."""

import pytest

from rulefilter.errors import MalformedExpressionError
from rulefilter.expr.ast import (
    FALSE,
    TRUE,
    Call,
    Const,
    Pattern,
    Var,
    and_,
    eq,
    lt,
    max_,
    min_,
    not_,
    or_,
    select,
)
from rulefilter.expr.formatters import format_rule, render
from rulefilter.expr.parser import parse_expression, parse_file, parse_terms, tokenize

a, b, c, d, e = (Pattern(n) for n in "abcde")
x, y = Pattern("x"), Pattern("y")


class TestParser:
    def test_rewrite_term(self):
        term = parse_expression("rewrite((x + 0), x)")
        assert term is Call("rewrite", x + 0, x)

    def test_arithmetic_precedence(self):
        assert parse_expression("a + b * c") is a + b * c
        assert parse_expression("a - b - c") is (a - b) - c
        assert parse_expression("a / b % c") is (a // b) % c
        assert parse_expression("(a + b) * c") is (a + b) * c

    def test_boolean_precedence(self):
        parsed = parse_expression("a < b && c == d || !e")
        assert parsed is or_(and_(lt(a, b), eq(c, d)), not_(e))

    def test_greater_than_is_swapped(self):
        assert parse_expression("x > 1") is lt(Const(1), x)
        assert parse_expression("x >= y") is parse_expression("y <= x")

    def test_leaves(self):
        assert parse_expression("$v + 1") is Var("v") + 1
        assert parse_expression("true") is TRUE
        assert parse_expression("false") is FALSE
        assert parse_expression("-3") is Const(-3)
        assert parse_expression("-x") is Const(0) - x
        assert parse_expression("x.y") is Pattern("x.y")

    def test_calls(self):
        assert parse_expression("min(x, y)") is min_(x, y)
        assert parse_expression("max(x, 1)") is max_(x, 1)
        assert parse_expression("select(x < y, x, y)") is select(lt(x, y), x, y)
        assert parse_expression("foo(x, y + 1)") is Call("foo", x, y + 1)
        assert parse_expression("f()") is Call("f")

    def test_terms_with_comments_and_separators(self):
        text = """
        # first
        a, b;   # trailing
        c
        """
        assert parse_terms(text) == [a, b, c]
        assert parse_terms("") == []

    def test_parse_file(self, tmp_path):
        path = tmp_path / "rules.txt"
        path.write_text("rewrite(x, x)\nrewrite(y, y)\n", encoding="utf-8")
        assert parse_file(path) == [Call("rewrite", x, x), Call("rewrite", y, y)]

    def test_tokens_carry_positions(self):
        tokens = tokenize("x +\n  y")
        assert [(t.text, t.line, t.column) for t in tokens] == [
            ("x", 1, 1),
            ("+", 1, 3),
            ("y", 2, 3),
            ("", 2, 4),
        ]


class TestParserErrors:
    @pytest.mark.parametrize(
        "text",
        ["x +", "(x", "x $", "min(x)", "select(x, y)", "x y", ")", "rewrite(x,"],
    )
    def test_malformed(self, text):
        with pytest.raises(MalformedExpressionError):
            parse_expression(text)

    def test_error_position(self):
        with pytest.raises(MalformedExpressionError) as excinfo:
            parse_expression("x $")
        assert excinfo.value.line == 1
        assert excinfo.value.column == 3
        assert "(line 1, column 3)" in str(excinfo.value)

    def test_error_line_in_multiline_input(self):
        with pytest.raises(MalformedExpressionError) as excinfo:
            parse_terms("rewrite(x, x)\nrewrite(x,\n  y +)")
        assert excinfo.value.line == 3


class TestRender:
    def test_render(self):
        assert render(x + 0) == "(x + 0)"
        assert render(not_(lt(x, 1))) == "!(x < 1)"
        assert render(Var("v") * -2) == "($v * -2)"
        assert render(select(TRUE, min_(x, y), Call("f", x))) == "select(true, min(x, y), f(x))"

    def test_format_rule(self):
        assert format_rule(x + y, x, eq(y, 0)) == "rewrite((x + y), x, (y == 0))"

    @pytest.mark.parametrize(
        "text",
        [
            "rewrite(((x * c0) / c0), x, (c0 != 0))",
            "select(!(x < y), max(x, -1), (x - -3))",
            "((($a % 2) == 0) || (false && !!b))",
            "f(g(), h(x, 1), -7)",
        ],
    )
    def test_round_trip(self, text):
        node = parse_expression(text)
        assert render(node) == text
        assert parse_expression(render(node)) is node
