"""Tests for concrete evaluation and the algebraic folder."""

import itertools

import pytest

from rulefilter.errors import EvaluationError
from rulefilter.expr.ast import (
    FALSE,
    TRUE,
    Call,
    Const,
    Pattern,
    Var,
    and_,
    eq,
    le,
    lt,
    max_,
    min_,
    ne,
    not_,
    or_,
    select,
)
from rulefilter.expr.emulator import euclidean_div, euclidean_mod, evaluate
from rulefilter.expr.folding import fold

x, y, b = Pattern("x"), Pattern("y"), Pattern("b")


class TestEuclideanDivision:
    @pytest.mark.parametrize(
        "a,d,q,r",
        [
            (7, 2, 3, 1),
            (-7, 2, -4, 1),
            (7, -2, -3, 1),
            (-7, -2, 4, 1),
            (6, 3, 2, 0),
            (-6, 3, -2, 0),
        ],
    )
    def test_quotient_and_remainder(self, a, d, q, r):
        assert euclidean_div(a, d) == q
        assert euclidean_mod(a, d) == r
        assert d * q + r == a

    def test_division_by_zero_is_zero(self):
        assert euclidean_div(5, 0) == 0
        assert euclidean_mod(-5, 0) == 0


class TestEvaluate:
    def test_arithmetic(self):
        assert evaluate((x + 1) * y, {"x": 2, "y": -3}) == -9
        assert evaluate(x // 2, {"x": -7}) == -4
        assert evaluate(x % y, {"x": -7, "y": -2}) == 1
        assert evaluate(min_(x, y) - max_(x, y), {"x": 4, "y": 1}) == -3

    def test_booleans(self):
        env = {"x": 1, "y": 2}
        assert evaluate(lt(x, y), env) is True
        assert evaluate(and_(le(y, x), TRUE), env) is False
        assert evaluate(or_(FALSE, ne(x, y)), env) is True
        assert evaluate(not_(eq(x, 1)), env) is False

    def test_select(self):
        absolute = select(lt(x, 0), -x, x)
        assert evaluate(absolute, {"x": -3}) == 3
        assert evaluate(absolute, {"x": 5}) == 5

    def test_runtime_variables_use_prefixed_keys(self):
        assert evaluate(Var("v") + x, {"$v": 2, "x": 1}) == 3

    def test_missing_symbol(self):
        with pytest.raises(EvaluationError):
            evaluate(x + y, {"x": 1})

    def test_calls_cannot_be_evaluated(self):
        with pytest.raises(EvaluationError):
            evaluate(Call("f", x), {"x": 1})


class TestFold:
    @pytest.mark.parametrize(
        "node,expected",
        [
            (x + 0, x),
            (0 + x, x),
            (x - x, Const(0)),
            ((x + y) - y, x),
            ((x + y) - x, y),
            (x * 0, Const(0)),
            (1 * x, x),
            (x // 1, x),
            (x // 0, Const(0)),
            (x % 1, Const(0)),
            (Const(2) * 3 + 1, Const(7)),
            (min_(x, x), x),
            (eq(x + 1, x + 1), TRUE),
            (lt(x, x), FALSE),
            (and_(TRUE, lt(x, 1)), lt(x, 1)),
            (or_(lt(x, 1), TRUE), TRUE),
            (not_(not_(b)), b),
            (select(TRUE, x, y), x),
            (select(lt(x, y), y, y), y),
            ((x * 0) + (y - y), Const(0)),
        ],
    )
    def test_identities(self, node, expected):
        assert fold(node) is expected

    def test_keeps_what_it_cannot_simplify(self):
        node = (x * 2) // 2
        assert fold(node) is node
        assert fold(Call("f", x + 0)) is Call("f", x)

    def test_preserves_meaning(self):
        nodes = [
            (x + 0) * (y - y + 1),
            select(lt(x, x), y, x // 1),
            min_(x, x) % (y * 1),
            (x + y) - y + (x // 0),
        ]
        for node in nodes:
            folded = fold(node)
            for vx, vy in itertools.product(range(-3, 4), repeat=2):
                env = {"x": vx, "y": vy}
                assert evaluate(folded, env) == evaluate(node, env)
