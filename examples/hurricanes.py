"""Hurricane names and fatalities.

Do storms with more feminine names kill more people? The answer depends on
several defensible analysis choices. This example declares them as
parameters and lets every combination run:

- which extreme storms to exclude,
- how to scale the damage covariate,
- whether to model deaths on a raw or log scale (the log model is only
  considered together with log-scaled damage).

Run it with:
    multiverse run examples/hurricanes.py -d examples/data/hurricanes.csv -o out/
"""

import numpy as np
from scipy import stats

import multiverse as mv

hurricanes = mv.Multiverse("Hurricane names")

hurricanes.declare(
    "outliers",
    [
        ("none", ()),
        ("deadliest", ("Camille", "Diane")),
    ],
)


def raw_damage(filtered: dict[str, np.ndarray]) -> np.ndarray:
    return filtered["damage"]


def log_damage(filtered: dict[str, np.ndarray]) -> np.ndarray:
    return np.log(filtered["damage"])


hurricanes.declare(
    "damage_scale",
    [
        ("raw", raw_damage),
        ("log", log_damage),
    ],
)
hurricanes.declare(
    "model",
    [
        ("linear", "linear"),
        ("log_linear", "log_linear", mv.Is("damage_scale", "log")),
    ],
)


@hurricanes.step(parameter="outliers")
def filtered(data: mv.Dataset, outliers: tuple[str, ...]) -> dict[str, np.ndarray]:
    """Drop the excluded storms and convert the numeric columns to arrays."""
    keep = np.array([name not in outliers for name in data["name"]])
    return {column: np.asarray(data[column], dtype=float)[keep] for column in ("femininity", "damage", "deaths")}


hurricanes.branch("damage", parameter="damage_scale")


def _ols(y: np.ndarray, covariates: list[np.ndarray]) -> tuple[np.ndarray, np.ndarray, int]:
    x = np.column_stack([np.ones_like(y), *covariates])
    coef, _, _, _ = np.linalg.lstsq(x, y, rcond=None)
    residuals = y - x @ coef
    dof = len(y) - x.shape[1]
    sigma2 = residuals @ residuals / dof
    std_errors = np.sqrt(np.diag(sigma2 * np.linalg.inv(x.T @ x)))
    return coef, std_errors, dof


@hurricanes.outcome(parameter="model")
def fit(filtered: dict[str, np.ndarray], damage: np.ndarray, model: str) -> list[mv.Outcome]:
    """Regress deaths on femininity, adjusting for damage."""
    deaths = filtered["deaths"] if model == "linear" else np.log1p(filtered["deaths"])
    coef, std_errors, dof = _ols(deaths, [filtered["femininity"], damage])

    outcomes: list[mv.Outcome] = []
    for index, term in ((1, "femininity"), (2, "damage")):
        estimate, std_error = float(coef[index]), float(std_errors[index])
        t_value = estimate / std_error
        sampling = stats.t(df=dof, loc=estimate, scale=std_error)
        conf_low, conf_high = sampling.interval(0.95)
        outcomes.append(
            mv.Outcome(
                term,
                estimate=estimate,
                std_error=std_error,
                distribution=sampling,
                statistic=t_value,
                p_value=float(2 * stats.t.sf(abs(t_value), dof)),
                conf_low=float(conf_low),
                conf_high=float(conf_high),
            ),
        )
    return outcomes
