"""The named numeric outcome contract for result-producing steps."""

from __future__ import annotations

import math
import numbers
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class Distribution(Protocol):
    """Anything exposing a quantile function and a cumulative distribution function.

    Frozen ``scipy.stats`` distributions satisfy this protocol.
    """

    def ppf(self, q: Any) -> Any: ...

    def cdf(self, x: Any) -> Any: ...


def _is_finite_number(value: object) -> bool:
    return isinstance(value, numbers.Real) and not isinstance(value, bool) and math.isfinite(value)


@dataclass(frozen=True, slots=True)
class Outcome:
    """A named numeric outcome produced by an outcome step.

    Either `estimate` and `std_error` (a normal approximation) or
    `distribution` must be given. `statistic`, `p_value`, `conf_low` and
    `conf_high` are carried through to the results export unchanged.

    Example:
        >>> Outcome("slope", estimate=0.42, std_error=0.1)
        >>> Outcome("slope", distribution=scipy.stats.t(df=10, loc=0.42, scale=0.1))

    """

    term: str
    estimate: float | None = None
    std_error: float | None = None
    distribution: Distribution | None = None
    statistic: float | None = None
    p_value: float | None = None
    conf_low: float | None = None
    conf_high: float | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.term, str) or not self.term:
            msg = f"Outcome term must be a non-empty string, got {self.term!r}."
            raise TypeError(msg)

        if self.distribution is not None:
            if not isinstance(self.distribution, Distribution):
                msg = f"Distribution of term '{self.term}' must expose ppf() and cdf()."
                raise TypeError(msg)
            return

        if self.estimate is None or self.std_error is None:
            msg = f"Outcome '{self.term}' needs either estimate and std_error, or a distribution."
            raise ValueError(msg)
        if not _is_finite_number(self.estimate):
            msg = f"Estimate of term '{self.term}' must be a finite number, got {self.estimate!r}."
            raise ValueError(msg)
        if not _is_finite_number(self.std_error) or self.std_error <= 0:
            msg = f"Standard error of term '{self.term}' must be a positive finite number, got {self.std_error!r}."
            raise ValueError(msg)

    @property
    def is_normal(self) -> bool:
        """Whether this outcome is summarized under a normal approximation."""
        return self.distribution is None
