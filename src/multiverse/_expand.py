"""Expansion of declared parameters into universes."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING

from ._condition import evaluate

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Mapping

    from ._models import Parameter

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Universe:
    """One fully resolved combination of option choices.

    Attributes:
        id: 1-based position in the deterministic expansion order.
        choices: Read-only mapping from parameter name to chosen option name,
            in parameter declaration order.

    """

    id: int
    choices: Mapping[str, str]
    _key: tuple[tuple[str, str], ...] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "choices", MappingProxyType(dict(self.choices)))
        object.__setattr__(self, "_key", tuple(self.choices.items()))

    def __getitem__(self, parameter: str) -> str:
        return self.choices[parameter]

    def __iter__(self) -> Iterator[str]:
        return iter(self.choices)

    def __len__(self) -> int:
        return len(self.choices)

    def __hash__(self) -> int:
        return hash((self.id, self._key))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Universe):
            return NotImplemented
        return self.id == other.id and self._key == other._key

    @property
    def key(self) -> tuple[tuple[str, str], ...]:
        """The choices as an ordered tuple of ``(parameter, option)`` pairs."""
        return self._key

    def label(self) -> str:
        """Short human-readable label, e.g. ``A=a1, B=b2``."""
        return ", ".join(f"{param}={option}" for param, option in self._key)


def expand(parameters: Iterable[Parameter]) -> list[Universe]:
    """Expand parameters into every universe whose chosen options satisfy their conditions.

    Parameters are processed in declaration order while a frontier of partial
    assignments is extended one parameter at a time, so the first declared
    parameter varies slowest. An assignment for which no option of the next
    parameter is valid is dropped without error.

    Args:
        parameters: Declared parameters in declaration order.

    Returns:
        The universes in expansion order, with ids ``1..N``.

    Example:
        >>> # A = {a1, a2}; B = {b1 (only if A == a1), b2}
        >>> [u.label() for u in expand(mv.parameters.values())]
        ['A=a1, B=b1', 'A=a1, B=b2', 'A=a2, B=b2']

    """
    frontier: list[dict[str, str]] = [{}]

    for parameter in parameters:
        next_frontier: list[dict[str, str]] = []
        for assignment in frontier:
            extended = 0
            for option in parameter.options:
                if not evaluate(option.condition, assignment):
                    continue
                next_frontier.append({**assignment, parameter.name: option.name})
                extended += 1
            if extended == 0:
                logger.debug(f"Pruned {assignment}: no option of '{parameter.name}' is valid")
        frontier = next_frontier
        logger.debug(f"After '{parameter.name}': {len(frontier)} partial assignment(s)")

    universes = [Universe(id=index, choices=assignment) for index, assignment in enumerate(frontier, start=1)]
    logger.debug(f"Expanded into {len(universes)} universe(s)")
    return universes
