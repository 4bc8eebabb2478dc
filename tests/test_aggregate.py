"""Tests for aggregation of run results and the execution summary."""

import pytest

from multiverse import (
    CdfGrid,
    Dataset,
    ExecutionStatus,
    Multiverse,
    Outcome,
    aggregate,
    run_multiverse,
    summarize_execution,
)


@pytest.fixture
def run():
    multiverse = Multiverse("aggregate")
    multiverse.declare("A", ["a1", "a2", "a3"])

    @multiverse.outcome(parameter="A")
    def estimate(data, A):  # noqa: N803
        if A == "a2":
            msg = "did not converge"
            raise ArithmeticError(msg)
        return [
            Outcome("intercept", estimate=1.0, std_error=0.5),
            Outcome("slope", estimate=0.2, std_error=0.1, p_value=0.04),
        ]

    return run_multiverse(multiverse, Dataset({"x": [1, 2]}))


class TestAggregate:
    def test_failed_universes_are_omitted(self, run):
        records = aggregate(run, CdfGrid(resolution=3))

        assert [r.universe for r in records] == [1, 3]

    def test_term_order_is_kept(self, run):
        records = aggregate(run, CdfGrid(resolution=3))

        assert [record.term for record in records[0].results] == ["intercept", "slope"]
        assert records[0].results[1].p_value == 0.04

    def test_include_failed(self, run):
        records = aggregate(run, CdfGrid(resolution=3), include_failed=True)

        assert [r.universe for r in records] == [1, 2, 3]
        assert records[1].results == ()

    def test_accepts_result_iterables(self, run):
        records = aggregate(list(run.results), CdfGrid(resolution=3))
        assert [r.universe for r in records] == [1, 3]


class TestExecutionSummary:
    def test_counts(self, run):
        summary = summarize_execution(run)

        assert summary.total == 3
        assert summary.succeeded == 2
        assert summary.failed == 1
        assert not summary.all_succeeded
        assert summary.counts[ExecutionStatus.FAILED] == 1

    def test_failure_causes(self, run):
        summary = summarize_execution(run)

        assert len(summary.failures) == 1
        failure = summary.failures[0]
        assert failure.universe_id == 2
        assert failure.status is ExecutionStatus.FAILED
        assert failure.step == "estimate"
        assert failure.description == "ArithmeticError: did not converge"

    def test_to_dict(self, run):
        data = summarize_execution(run).to_dict()

        assert data["total"] == 3
        assert data["counts"] == {"succeeded": 2, "failed": 1, "timed_out": 0, "cancelled": 0}
        assert data["failures"] == [
            {"universe": 2, "status": "failed", "step": "estimate", "cause": "ArithmeticError: did not converge"},
        ]
