"""Aggregation of universe results into summarized records and an execution summary."""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from ._exec_engine import ExecutionStatus, MultiverseRun
from ._records import UniverseRecords
from ._summarize import summarize

if TYPE_CHECKING:
    from collections.abc import Iterable

    from ._exec_engine import UniverseResult
    from ._summarize import CdfGrid

logger = logging.getLogger(__name__)


def summarize_universe(result: UniverseResult, grid: CdfGrid | None = None) -> UniverseRecords:
    """Summarize every outcome of one universe, keeping the pipeline's term order."""
    return UniverseRecords(
        universe=result.universe.id,
        results=tuple(summarize(outcome, grid) for outcome in result.outcomes),
    )


def aggregate(
    run: MultiverseRun | Iterable[UniverseResult],
    grid: CdfGrid | None = None,
    *,
    include_failed: bool = False,
) -> list[UniverseRecords]:
    """Summarize the outcomes of a run, one entry per universe in id order.

    Args:
        run: A `MultiverseRun` or universe results.
        grid: Cumulative-probability grid for the CDF samples.
        include_failed: Also emit universes that did not succeed, with no records.

    Returns:
        Per-universe records.

    """
    results = run.results if isinstance(run, MultiverseRun) else tuple(run)
    aggregated: list[UniverseRecords] = []
    for result in results:
        if result.succeeded:
            aggregated.append(summarize_universe(result, grid))
        elif include_failed:
            aggregated.append(UniverseRecords(universe=result.universe.id, results=()))
    logger.debug(f"Aggregated {len(aggregated)} universe(s)")
    return aggregated


@dataclass(frozen=True, slots=True)
class FailureCause:
    """Why a universe did not succeed."""

    universe_id: int
    status: ExecutionStatus
    step: str | None
    description: str


@dataclass(frozen=True, slots=True)
class ExecutionSummary:
    """Counts of universe outcomes and the causes of failures."""

    total: int
    counts: dict[ExecutionStatus, int] = field(default_factory=dict)
    failures: tuple[FailureCause, ...] = ()

    @property
    def succeeded(self) -> int:
        return self.counts.get(ExecutionStatus.SUCCEEDED, 0)

    @property
    def failed(self) -> int:
        """Number of universes that did not succeed, for any reason."""
        return self.total - self.succeeded

    @property
    def all_succeeded(self) -> bool:
        return self.failed == 0

    def to_dict(self) -> dict[str, object]:
        return {
            "total": self.total,
            "counts": {status.value: self.counts.get(status, 0) for status in ExecutionStatus},
            "failures": [
                {
                    "universe": failure.universe_id,
                    "status": failure.status.value,
                    "step": failure.step or "",
                    "cause": failure.description,
                }
                for failure in self.failures
            ],
        }


def summarize_execution(run: MultiverseRun) -> ExecutionSummary:
    """Build the execution summary of a run."""
    counts = Counter(result.status for result in run.results)
    failures = tuple(
        FailureCause(
            universe_id=result.universe.id,
            status=result.status,
            step=result.failed_step,
            description=result.error.description if result.error is not None else result.status.value,
        )
        for result in run.results
        if not result.succeeded
    )
    return ExecutionSummary(total=len(run.results), counts=dict(counts), failures=failures)
