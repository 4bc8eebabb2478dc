"""Validity conditions attached to options.

A condition is a small immutable expression tree over equality tests of
the form "parameter P is set to option O", combined with logical
connectives. Conditions never inspect option values, only option names.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from ._errors import ConditionEvaluationError

if TYPE_CHECKING:
    from collections.abc import Mapping


class Condition:
    """Base class of condition expressions.

    Supports composition with ``&`` (and), ``|`` (or) and ``~`` (not).
    """

    __slots__ = ()

    def parameters(self) -> frozenset[str]:
        """Return the names of the parameters this condition references."""
        raise NotImplementedError

    def tests(self) -> frozenset[tuple[str, str]]:
        """Return every ``(parameter, option)`` equality test in this condition."""
        raise NotImplementedError

    def __and__(self, other: Condition) -> And:
        return And((self, other))

    def __or__(self, other: Condition) -> Or:
        return Or((self, other))

    def __invert__(self) -> Not:
        return Not(self)


@dataclass(frozen=True, slots=True)
class Is(Condition):
    """The chosen option of ``parameter`` is ``option``."""

    parameter: str
    option: str

    def parameters(self) -> frozenset[str]:
        return frozenset({self.parameter})

    def tests(self) -> frozenset[tuple[str, str]]:
        return frozenset({(self.parameter, self.option)})

    def __str__(self) -> str:
        return f"{self.parameter} == {self.option!r}"


@dataclass(frozen=True, slots=True)
class And(Condition):
    """All operands hold."""

    operands: tuple[Condition, ...]

    def parameters(self) -> frozenset[str]:
        return frozenset().union(*(op.parameters() for op in self.operands))

    def tests(self) -> frozenset[tuple[str, str]]:
        return frozenset().union(*(op.tests() for op in self.operands))

    def __str__(self) -> str:
        return "(" + " and ".join(str(op) for op in self.operands) + ")"


@dataclass(frozen=True, slots=True)
class Or(Condition):
    """At least one operand holds."""

    operands: tuple[Condition, ...]

    def parameters(self) -> frozenset[str]:
        return frozenset().union(*(op.parameters() for op in self.operands))

    def tests(self) -> frozenset[tuple[str, str]]:
        return frozenset().union(*(op.tests() for op in self.operands))

    def __str__(self) -> str:
        return "(" + " or ".join(str(op) for op in self.operands) + ")"


@dataclass(frozen=True, slots=True)
class Not(Condition):
    """The operand does not hold."""

    operand: Condition

    def parameters(self) -> frozenset[str]:
        return self.operand.parameters()

    def tests(self) -> frozenset[tuple[str, str]]:
        return self.operand.tests()

    def __str__(self) -> str:
        return f"not {self.operand}"


def condition_from_mapping(required: Mapping[str, str]) -> Condition:
    """Build a condition requiring each parameter to equal the given option.

    Example:
        >>> condition_from_mapping({"outliers": "none", "model": "linear"})
        And(operands=(Is(parameter='outliers', option='none'), Is(parameter='model', option='linear')))

    """
    tests = tuple(Is(parameter, option) for parameter, option in required.items())
    if len(tests) == 1:
        return tests[0]
    return And(tests)


def evaluate(condition: Condition | None, assignment: Mapping[str, str]) -> bool:
    """Evaluate a condition against a (partial) assignment of option names.

    Args:
        condition: The condition to evaluate. ``None`` means unconditional.
        assignment: Mapping from parameter name to chosen option name.

    Returns:
        Whether the condition holds for the assignment.

    Raises:
        ConditionEvaluationError: If the condition references a parameter
            that is not in the assignment.

    """
    match condition:
        case None:
            return True
        case Is(parameter=parameter, option=option):
            try:
                return assignment[parameter] == option
            except KeyError:
                msg = f"Condition {condition} references parameter '{parameter}', which has no chosen option yet."
                raise ConditionEvaluationError(msg) from None
        case And(operands=operands):
            return all(evaluate(op, assignment) for op in operands)
        case Or(operands=operands):
            return any(evaluate(op, assignment) for op in operands)
        case Not(operand=operand):
            return not evaluate(operand, assignment)
        case _:
            msg = f"Unsupported condition type: {type(condition).__name__}"
            raise TypeError(msg)
