"""Execution engine module for multiverse.

This module runs the shared pipeline once per universe and isolates
failures at the universe boundary: a step that raises marks its universe
as failed without affecting any other universe.

Key types:
- UniverseResult: Result-or-error of one universe's execution
- ExecutionStatus: Final state of a universe (succeeded, failed, ...)
- RunConfig: Concurrency, timeout and reuse settings
- MultiverseRun: Ordered results of a full run
- execute_universe: Run the pipeline for a single universe
- run_multiverse: Run every universe on a bounded worker pool
"""

from ._engine import ExecutionStatus, PrefixCache, UniverseResult, execute_universe
from ._runner import MultiverseRun, RunConfig, run_multiverse

__all__ = [
    "ExecutionStatus",
    "MultiverseRun",
    "PrefixCache",
    "RunConfig",
    "UniverseResult",
    "execute_universe",
    "run_multiverse",
]
