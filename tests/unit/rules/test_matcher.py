"""Tests for the pattern generality check."""

import pytest

from rulefilter.expr.ast import Call, Const, Pattern, Var, lt, max_, min_, select
from rulefilter.expr.parser import parse_expression
from rulefilter.expr.utils import free_pattern_vars
from rulefilter.rules.matcher import more_general_than

x, y, z, c0, c1 = (Pattern(n) for n in ("x", "y", "z", "c0", "c1"))


class TestMoreGeneralThan:
    @pytest.mark.parametrize(
        "text",
        [
            "x",
            "x + y",
            "(x * c0) / c0",
            "select(x < y, min(x, 1), max(y, $v))",
            "f(x, g(y), 3)",
            "x + x",
        ],
    )
    def test_reflexive_with_identity_binding(self, text):
        p = parse_expression(text)
        assert more_general_than(p, p) == {n: Pattern(n) for n in free_pattern_vars(p)}

    def test_wildcard_binds_subterm(self):
        assert more_general_than(x + y, x + Const(0)) == {"x": x, "y": Const(0)}
        assert more_general_than(x, (y + 1) * z) == {"x": (y + 1) * z}

    def test_not_symmetric(self):
        assert more_general_than(x + Const(0), x + y) is None

    def test_commutative_operands_are_retried_swapped(self):
        assert more_general_than(x + Const(0), Const(0) + z) == {"x": z}
        assert more_general_than(min_(x, 3), min_(3, y)) == {"x": y}
        assert more_general_than(max_(x * 2, y), max_(2 * z, z)) == {"x": z, "y": z}
        assert more_general_than(max_(x * 2, x), max_(2 * z, y)) is None

    def test_non_commutative_operands_are_not_swapped(self):
        assert more_general_than(x - Const(0), Const(0) - z) is None
        assert more_general_than(lt(x, 0), lt(0, y)) is None

    def test_repeated_wildcard_must_bind_consistently(self):
        assert more_general_than(x + x, y + y) == {"x": y}
        assert more_general_than(x + x, y + z) is None
        assert more_general_than(x * (x + 1), (y + 1) * (y + 1 + 1)) == {"x": y + 1}

    def test_constant_class_wildcards_only_bind_constants(self):
        assert more_general_than(c0 + x, Const(3) + y) == {"c0": Const(3), "x": y}
        assert more_general_than(c0, c1 * 2 + 1) == {"c0": c1 * 2 + 1}
        assert more_general_than(c0, y) is None
        assert more_general_than(c0 + x, y + z) is None
        assert more_general_than(c0, Var("v")) is None

    def test_leaves_must_be_equal(self):
        assert more_general_than(Var("v") + x, Var("v") + 1) == {"x": Const(1)}
        assert more_general_than(Var("v"), Var("w")) is None
        assert more_general_than(Const(1), Const(2)) is None
        assert more_general_than(Const(1), x) is None

    def test_calls_need_same_name_and_arity(self):
        assert more_general_than(Call("f", x), Call("f", Const(1))) == {"x": Const(1)}
        assert more_general_than(Call("f", x), Call("g", Const(1))) is None
        assert more_general_than(Call("f", x), Call("f", x, y)) is None

    def test_select_matches_positionally(self):
        general = select(lt(x, y), x, y)
        specific = select(lt(Const(0), z), Const(0), z)
        assert more_general_than(general, specific) == {"x": Const(0), "y": z}

    def test_result_is_fresh(self):
        first = more_general_than(x + y, x + 1)
        first["x"] = Const(99)
        assert more_general_than(x + y, x + 1) == {"x": x, "y": Const(1)}

    def test_scenario_generalization_of_rule_lhs(self):
        general = parse_expression("x + y")
        specific = parse_expression("x + 0")
        assert more_general_than(general, specific) == {"x": x, "y": Const(0)}
