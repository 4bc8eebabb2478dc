"""Tests for outcomes and their reduction to CDF samples."""

import math

import numpy as np
import pytest
from scipy import stats

from multiverse import (
    CdfGrid,
    DistributionError,
    Outcome,
    distribution_cdf_sample,
    normal_cdf_sample,
    summarize,
    summarize_distribution,
    summarize_normal,
)


class TestOutcome:
    def test_normal_form(self):
        outcome = Outcome("slope", estimate=0.4, std_error=0.1)
        assert outcome.is_normal

    def test_distribution_form(self):
        outcome = Outcome("slope", distribution=stats.t(df=5))
        assert not outcome.is_normal

    def test_numpy_scalars_are_accepted(self):
        outcome = Outcome("slope", estimate=np.float64(0.4), std_error=np.float64(0.1))
        assert outcome.estimate == pytest.approx(0.4)

    def test_needs_estimate_and_std_error(self):
        with pytest.raises(ValueError, match="needs either"):
            Outcome("slope", estimate=0.4)

    @pytest.mark.parametrize("std_error", [0.0, -1.0, math.inf, math.nan])
    def test_std_error_must_be_positive_and_finite(self, std_error: float):
        with pytest.raises(ValueError, match="Standard error"):
            Outcome("slope", estimate=0.4, std_error=std_error)

    def test_estimate_must_be_finite(self):
        with pytest.raises(ValueError, match="Estimate"):
            Outcome("slope", estimate=math.nan, std_error=0.1)

    def test_term_must_be_non_empty(self):
        with pytest.raises(TypeError, match="term"):
            Outcome("", estimate=0.4, std_error=0.1)

    def test_distribution_must_expose_ppf_and_cdf(self):
        with pytest.raises(TypeError, match="ppf"):
            Outcome("slope", distribution=object())  # type: ignore[arg-type]


class TestCdfGrid:
    def test_default_is_percentiles(self):
        grid = CdfGrid()
        assert grid.resolution == 99
        assert grid.levels[0] == pytest.approx(0.01)
        assert grid.levels[-1] == pytest.approx(0.99)

    def test_resolution_three(self):
        assert CdfGrid(resolution=3).levels == (0.25, 0.5, 0.75)

    def test_explicit_levels(self):
        grid = CdfGrid(levels=(0.1, 0.5, 0.9))
        assert grid.resolution == 3
        assert grid.levels == (0.1, 0.5, 0.9)

    @pytest.mark.parametrize("levels", [(0.0, 0.5), (0.5, 1.0), (0.6, 0.4), (0.5, 0.5)])
    def test_invalid_levels(self, levels: tuple[float, ...]):
        with pytest.raises(ValueError, match="levels"):
            CdfGrid(levels=levels)

    @pytest.mark.parametrize("resolution", [0, -3])
    def test_invalid_resolution(self, resolution: int):
        with pytest.raises(ValueError, match="resolution"):
            CdfGrid(resolution=resolution)


class TestNormalSummary:
    def test_standard_normal_on_three_levels(self):
        sample = normal_cdf_sample(0.0, 1.0, CdfGrid(resolution=3))

        assert sample.x == pytest.approx((-0.6744897501960817, 0.0, 0.6744897501960817))
        assert sample.y == (0.25, 0.5, 0.75)

    def test_location_and_scale(self):
        sample = normal_cdf_sample(2.0, 0.5, CdfGrid(resolution=3))
        assert sample.x == pytest.approx((2.0 - 0.5 * 0.6744897501960817, 2.0, 2.0 + 0.5 * 0.6744897501960817))

    def test_summarize_normal_record(self):
        record = summarize_normal("slope", 0.0, 1.0, CdfGrid(resolution=3))

        assert record.term == "slope"
        assert record.estimate == 0.0
        assert record.std_error == 1.0
        assert record.cdf_y == (0.25, 0.5, 0.75)
        assert record.statistic is None

    def test_default_grid_has_ninety_nine_points(self):
        record = summarize_normal("slope", 1.0, 2.0)
        assert len(record.cdf_x) == 99
        assert list(record.cdf_x) == sorted(record.cdf_x)


class TestDistributionSummary:
    def test_t_distribution_is_not_normal(self):
        grid = CdfGrid(resolution=3)
        distribution = stats.t(df=3)

        sample = distribution_cdf_sample(distribution, grid)

        assert sample.x == pytest.approx(tuple(stats.t.ppf([0.25, 0.5, 0.75], df=3)))
        assert sample.y == pytest.approx((0.25, 0.5, 0.75))
        # Heavier tails than the normal
        assert sample.x[2] > normal_cdf_sample(0.0, 1.0, grid).x[2]

    def test_point_summary_from_mean_and_std(self):
        distribution = stats.norm(loc=3.0, scale=2.0)
        record = summarize_distribution("slope", distribution, CdfGrid(resolution=5))

        assert record.estimate == pytest.approx(3.0)
        assert record.std_error == pytest.approx(2.0)

    def test_point_summary_from_quantiles(self):
        class Quantiles:
            """Exposes only ppf and cdf."""

            def __init__(self) -> None:
                self._dist = stats.norm(loc=1.0, scale=0.5)

            def ppf(self, q):
                return self._dist.ppf(q)

            def cdf(self, x):
                return self._dist.cdf(x)

        record = summarize_distribution("slope", Quantiles(), CdfGrid(resolution=3))

        assert record.estimate == pytest.approx(1.0)
        assert record.std_error == pytest.approx(0.5)

    def test_discrete_distribution(self):
        record = summarize_distribution("count", stats.poisson(mu=2.0), CdfGrid(resolution=9))

        assert list(record.cdf_x) == sorted(record.cdf_x)
        assert all(0.0 <= p <= 1.0 for p in record.cdf_y)

    def test_continuous_quantiles_are_strictly_increasing(self):
        grid = CdfGrid()
        normal = summarize_normal("slope", 0.0, 1.0, grid)
        heavy = summarize_distribution("slope", stats.t(df=3), grid)

        for record in (normal, heavy):
            assert all(b > a for a, b in zip(record.cdf_x, record.cdf_x[1:], strict=False))

    @pytest.mark.parametrize("distribution", [stats.cauchy(), stats.t(df=1)], ids=["cauchy", "t1"])
    def test_undefined_moments_fall_back_to_quantiles(self, distribution):
        record = summarize_distribution("slope", distribution, CdfGrid(resolution=3))

        half_width = stats.cauchy.ppf(stats.norm.cdf(1.0))
        assert record.estimate == pytest.approx(0.0, abs=1e-12)
        assert record.std_error == pytest.approx(half_width)
        assert record.cdf_x == pytest.approx((-1.0, 0.0, 1.0))

    def test_infinite_std_falls_back_to_quantiles(self):
        distribution = stats.t(df=2, loc=1.5)

        record = summarize_distribution("slope", distribution, CdfGrid(resolution=3))

        assert not math.isfinite(distribution.std())
        assert record.estimate == pytest.approx(1.5)
        assert math.isfinite(record.std_error)
        assert record.std_error > 0

    def test_failing_ppf_raises_distribution_error(self):
        class Broken:
            def ppf(self, q):
                msg = "no closed form"
                raise NotImplementedError(msg)

            def cdf(self, x):
                return x

        with pytest.raises(DistributionError, match="no closed form") as excinfo:
            summarize_distribution("slope", Broken(), CdfGrid(resolution=3))

        assert excinfo.value.term == "slope"
        assert isinstance(excinfo.value.__cause__, NotImplementedError)


class TestSummarize:
    def test_dispatches_to_normal(self):
        record = summarize(Outcome("slope", estimate=0.0, std_error=1.0), CdfGrid(resolution=3))
        assert record.cdf_y == (0.25, 0.5, 0.75)

    def test_explicit_estimate_overrides_distribution(self):
        outcome = Outcome("slope", estimate=0.42, std_error=0.1, distribution=stats.t(df=10, loc=0.4, scale=0.1))
        record = summarize(outcome, CdfGrid(resolution=3))

        assert record.estimate == 0.42
        assert record.std_error == 0.1
        assert record.cdf_x[1] == pytest.approx(0.4)

    def test_explicit_values_are_used_for_cauchy(self):
        outcome = Outcome("slope", estimate=0.3, std_error=0.2, distribution=stats.cauchy(loc=0.3, scale=0.1))

        record = summarize(outcome, CdfGrid(resolution=3))

        assert record.estimate == 0.3
        assert record.std_error == 0.2
        assert record.cdf_x == pytest.approx((0.2, 0.3, 0.4))

    def test_optional_statistics_are_carried(self):
        outcome = Outcome(
            "slope",
            estimate=0.4,
            std_error=0.1,
            statistic=4.0,
            p_value=0.001,
            conf_low=0.2,
            conf_high=0.6,
        )
        record = summarize(outcome, CdfGrid(resolution=3))

        assert record.statistic == 4.0
        assert record.p_value == 0.001
        assert record.conf_low == 0.2
        assert record.conf_high == 0.6
