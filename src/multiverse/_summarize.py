"""Reduction of outcomes to CDF samples on a fixed cumulative-probability grid."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import numpy as np
from scipy import stats

from ._errors import DistributionError
from ._records import ResultRecord

if TYPE_CHECKING:
    from ._outcome import Distribution, Outcome

logger = logging.getLogger(__name__)

DEFAULT_GRID_RESOLUTION = 99

# One standard deviation either side of the median of a standard normal.
_SIGMA_LEVELS = (float(stats.norm.cdf(-1.0)), float(stats.norm.cdf(1.0)))


@dataclass(frozen=True, slots=True)
class CdfGrid:
    """Cumulative-probability levels at which distributions are sampled.

    By default the levels are ``i / (resolution + 1)`` for
    ``i = 1..resolution``, e.g. the 1st through 99th percentile for the
    default resolution of 99. Explicit `levels` override `resolution`.

    Example:
        >>> CdfGrid(resolution=3).levels
        (0.25, 0.5, 0.75)

    """

    resolution: int = DEFAULT_GRID_RESOLUTION
    levels: tuple[float, ...] = field(default=())

    def __post_init__(self) -> None:
        if self.levels:
            levels = tuple(float(level) for level in self.levels)
            if any(not 0.0 < level < 1.0 for level in levels):
                msg = f"Grid levels must lie strictly between 0 and 1, got {levels}."
                raise ValueError(msg)
            if any(b <= a for a, b in zip(levels, levels[1:], strict=False)):
                msg = f"Grid levels must be strictly increasing, got {levels}."
                raise ValueError(msg)
            object.__setattr__(self, "levels", levels)
            object.__setattr__(self, "resolution", len(levels))
            return

        if isinstance(self.resolution, bool) or not isinstance(self.resolution, int) or self.resolution < 1:
            msg = f"Grid resolution must be a positive integer, got {self.resolution!r}."
            raise ValueError(msg)
        n = self.resolution
        object.__setattr__(self, "levels", tuple(i / (n + 1) for i in range(1, n + 1)))

    def as_array(self) -> np.ndarray:
        return np.asarray(self.levels, dtype=float)


@dataclass(frozen=True, slots=True)
class CdfSample:
    """Paired quantiles (`x`) and cumulative probabilities (`y`)."""

    x: tuple[float, ...]
    y: tuple[float, ...]


def normal_cdf_sample(estimate: float, std_error: float, grid: CdfGrid | None = None) -> CdfSample:
    """Sample the CDF of ``Normal(estimate, std_error)`` on the grid.

    The cumulative probabilities are the grid levels themselves.
    """
    grid = grid or CdfGrid()
    levels = grid.as_array()
    quantiles = stats.norm.ppf(levels, loc=estimate, scale=std_error)
    return CdfSample(x=tuple(quantiles.tolist()), y=grid.levels)


def distribution_cdf_sample(distribution: Distribution, grid: CdfGrid | None = None) -> CdfSample:
    """Sample the CDF of an arbitrary distribution on the grid.

    Quantiles come from ``distribution.ppf`` at the grid levels and the paired
    probabilities from ``distribution.cdf`` at those quantiles, so no
    normality is assumed.
    """
    grid = grid or CdfGrid()
    levels = grid.as_array()
    quantiles = np.asarray(distribution.ppf(levels), dtype=float).reshape(levels.shape)
    probabilities = np.asarray(distribution.cdf(quantiles), dtype=float).reshape(levels.shape)
    probabilities = np.clip(probabilities, 0.0, 1.0)
    return CdfSample(x=tuple(quantiles.tolist()), y=tuple(probabilities.tolist()))


def _point_summary(distribution: Distribution) -> tuple[float, float]:
    """Derive an estimate and standard error from a distribution object.

    The mean and standard deviation are used when the distribution exposes
    them and both are finite. Otherwise, e.g. for a Cauchy distribution, the
    median and half the distance between the quantiles one sigma either side
    of it are used.
    """
    mean = getattr(distribution, "mean", None)
    std = getattr(distribution, "std", None)
    if callable(mean) and callable(std):
        estimate, std_error = float(mean()), float(std())
        if math.isfinite(estimate) and math.isfinite(std_error) and std_error > 0:
            return estimate, std_error
        logger.debug(f"Distribution moments are not usable ({estimate}, {std_error}), falling back to quantiles")
    low, median, high = np.asarray(distribution.ppf(np.array([_SIGMA_LEVELS[0], 0.5, _SIGMA_LEVELS[1]])), dtype=float)
    return float(median), float((high - low) / 2)


def summarize_normal(term: str, estimate: float, std_error: float, grid: CdfGrid | None = None) -> ResultRecord:
    """Summarize a point estimate and standard error under a normal approximation."""
    sample = normal_cdf_sample(estimate, std_error, grid)
    return ResultRecord(term=term, estimate=estimate, std_error=std_error, cdf_x=sample.x, cdf_y=sample.y)


def summarize_distribution(
    term: str,
    distribution: Distribution,
    grid: CdfGrid | None = None,
    *,
    estimate: float | None = None,
    std_error: float | None = None,
) -> ResultRecord:
    """Summarize an explicit distribution object without assuming normality.

    `estimate` and `std_error` are derived from the distribution only when
    they are not given.

    Raises:
        DistributionError: If the distribution's ``ppf``, ``cdf`` or moment
            methods raise.

    """
    try:
        sample = distribution_cdf_sample(distribution, grid)
        if estimate is None or std_error is None:
            derived_estimate, derived_std_error = _point_summary(distribution)
            estimate = derived_estimate if estimate is None else estimate
            std_error = derived_std_error if std_error is None else std_error
    except Exception as e:
        msg = f"Distribution of term '{term}' could not be sampled: {type(e).__name__}: {e}"
        raise DistributionError(msg, term=term) from e
    return ResultRecord(term=term, estimate=estimate, std_error=std_error, cdf_x=sample.x, cdf_y=sample.y)


def summarize(outcome: Outcome, grid: CdfGrid | None = None) -> ResultRecord:
    """Reduce an outcome to a result record with a CDF sample.

    Explicit `estimate`/`std_error` on a distribution outcome take precedence
    over the values derived from the distribution.
    """
    if outcome.distribution is None:
        # Outcome validation guarantees both are set for the normal form.
        record = summarize_normal(outcome.term, outcome.estimate, outcome.std_error, grid)  # type: ignore[arg-type]
    else:
        record = summarize_distribution(
            outcome.term,
            outcome.distribution,
            grid,
            estimate=outcome.estimate,
            std_error=outcome.std_error,
        )

    extras = {
        "statistic": outcome.statistic,
        "p_value": outcome.p_value,
        "conf_low": outcome.conf_low,
        "conf_high": outcome.conf_high,
    }
    extras = {name: value for name, value in extras.items() if value is not None}
    if extras:
        record = record.model_copy(update=extras)
    logger.debug(f"Summarized term '{outcome.term}' on {len(record.cdf_x)} grid levels")
    return record
