"""Tests for universe expansion."""

import pytest

from multiverse import Is, Multiverse, Universe, expand


@pytest.fixture
def conditional_multiverse() -> Multiverse:
    multiverse = Multiverse("conditional")
    multiverse.declare("A", ["a1", "a2"])
    multiverse.declare("B", [("b1", "b1", Is("A", "a1")), ("b2", "b2")])
    return multiverse


class TestExpand:
    def test_conditional_option_is_pruned(self, conditional_multiverse: Multiverse):
        universes = conditional_multiverse.universes()

        assert [u.id for u in universes] == [1, 2, 3]
        assert [dict(u.choices) for u in universes] == [
            {"A": "a1", "B": "b1"},
            {"A": "a1", "B": "b2"},
            {"A": "a2", "B": "b2"},
        ]

    def test_unconditional_expansion_is_cartesian_product(self):
        multiverse = Multiverse("cartesian")
        multiverse.declare("A", ["a1", "a2", "a3"])
        multiverse.declare("B", ["b1", "b2"])
        multiverse.declare("C", ["c1", "c2"])

        universes = multiverse.universes()

        assert len(universes) == 3 * 2 * 2
        assert len({u.key for u in universes}) == 12

    def test_first_declared_parameter_varies_slowest(self):
        multiverse = Multiverse("order")
        multiverse.declare("A", ["a1", "a2"])
        multiverse.declare("B", ["b1", "b2"])

        labels = [u.label() for u in multiverse.universes()]

        assert labels == ["A=a1, B=b1", "A=a1, B=b2", "A=a2, B=b1", "A=a2, B=b2"]

    def test_assignment_without_valid_option_is_dropped_silently(self):
        multiverse = Multiverse("pruned")
        multiverse.declare("A", ["a1", "a2"])
        multiverse.declare("B", [("b1", 1, Is("A", "a1"))])

        universes = multiverse.universes()

        assert [dict(u.choices) for u in universes] == [{"A": "a1", "B": "b1"}]
        assert universes[0].id == 1

    def test_disjunctive_condition(self):
        multiverse = Multiverse("or")
        multiverse.declare("A", ["a1", "a2", "a3"])
        multiverse.declare("B", [("b1", 1, Is("A", "a1") | Is("A", "a3"))])

        assert [u["A"] for u in multiverse.universes()] == ["a1", "a3"]

    def test_every_universe_satisfies_its_conditions(self, conditional_multiverse: Multiverse):
        for universe in conditional_multiverse.universes():
            if universe["B"] == "b1":
                assert universe["A"] == "a1"

    def test_no_parameters_gives_one_empty_universe(self):
        universes = expand([])
        assert len(universes) == 1
        assert universes[0].id == 1
        assert dict(universes[0].choices) == {}

    def test_expansion_is_deterministic(self, conditional_multiverse: Multiverse):
        assert conditional_multiverse.universes() == conditional_multiverse.universes()


class TestUniverse:
    def test_choices_are_read_only(self):
        universe = Universe(id=1, choices={"A": "a1"})
        with pytest.raises(TypeError):
            universe.choices["A"] = "a2"  # type: ignore[index]

    def test_choices_are_copied(self):
        choices = {"A": "a1"}
        universe = Universe(id=1, choices=choices)
        choices["A"] = "a2"
        assert universe["A"] == "a1"

    def test_mapping_style_access(self):
        universe = Universe(id=4, choices={"A": "a1", "B": "b2"})
        assert universe["B"] == "b2"
        assert list(universe) == ["A", "B"]
        assert len(universe) == 2
        assert universe.key == (("A", "a1"), ("B", "b2"))

    def test_equality_and_hash(self):
        first = Universe(id=1, choices={"A": "a1"})
        same = Universe(id=1, choices={"A": "a1"})
        other = Universe(id=2, choices={"A": "a1"})
        assert first == same
        assert hash(first) == hash(same)
        assert first != other
