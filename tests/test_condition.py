"""Tests for condition expressions and their evaluation."""

import pytest

from multiverse import And, ConditionEvaluationError, Is, Not, Or, condition_from_mapping, evaluate


class TestEvaluate:
    def test_none_is_unconditional(self):
        assert evaluate(None, {}) is True

    def test_equality_test(self):
        assert evaluate(Is("A", "a1"), {"A": "a1"}) is True
        assert evaluate(Is("A", "a1"), {"A": "a2"}) is False

    def test_and(self):
        condition = And((Is("A", "a1"), Is("B", "b1")))
        assert evaluate(condition, {"A": "a1", "B": "b1"}) is True
        assert evaluate(condition, {"A": "a1", "B": "b2"}) is False

    def test_or(self):
        condition = Or((Is("A", "a1"), Is("A", "a2")))
        assert evaluate(condition, {"A": "a2"}) is True
        assert evaluate(condition, {"A": "a3"}) is False

    def test_not(self):
        assert evaluate(Not(Is("A", "a1")), {"A": "a2"}) is True
        assert evaluate(Not(Is("A", "a1")), {"A": "a1"}) is False

    def test_operators_build_the_same_tree(self):
        left = Is("A", "a1")
        right = Is("B", "b1")
        assert (left & right) == And((left, right))
        assert (left | right) == Or((left, right))
        assert ~left == Not(left)

    def test_missing_parameter_raises(self):
        """Conditions may only be evaluated once their parameters are assigned."""
        with pytest.raises(ConditionEvaluationError, match="'B'"):
            evaluate(Is("B", "b1"), {"A": "a1"})

    def test_missing_parameter_error_is_lookup_error(self):
        with pytest.raises(LookupError):
            evaluate(Is("B", "b1"), {})

    def test_short_circuit_skips_unassigned_operand(self):
        condition = Is("A", "a1") | Is("B", "b1")
        assert evaluate(condition, {"A": "a1"}) is True

    def test_unsupported_condition_type(self):
        with pytest.raises(TypeError, match="Unsupported condition"):
            evaluate("A == a1", {"A": "a1"})  # type: ignore[arg-type]


class TestConditionIntrospection:
    def test_parameters(self):
        condition = (Is("A", "a1") & ~Is("B", "b2")) | Is("C", "c1")
        assert condition.parameters() == frozenset({"A", "B", "C"})

    def test_tests(self):
        condition = Is("A", "a1") & Not(Is("B", "b2"))
        assert condition.tests() == frozenset({("A", "a1"), ("B", "b2")})

    def test_str(self):
        assert str(Is("A", "a1") & Is("B", "b1")) == "(A == 'a1' and B == 'b1')"


class TestConditionFromMapping:
    def test_single_entry_is_a_plain_test(self):
        assert condition_from_mapping({"A": "a1"}) == Is("A", "a1")

    def test_several_entries_are_a_conjunction(self):
        condition = condition_from_mapping({"A": "a1", "B": "b1"})
        assert condition == And((Is("A", "a1"), Is("B", "b1")))
        assert evaluate(condition, {"A": "a1", "B": "b1"}) is True
        assert evaluate(condition, {"A": "a1", "B": "b2"}) is False
