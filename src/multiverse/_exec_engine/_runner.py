"""Running every universe of a multiverse, optionally in parallel."""

from __future__ import annotations

import logging
import threading
import time
from collections import deque
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import TYPE_CHECKING

from multiverse._errors import ExecutionError, UniverseTimeoutError

from ._engine import ExecutionStatus, PrefixCache, UniverseResult, execute_universe

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from multiverse._dataset import Dataset
    from multiverse._expand import Universe
    from multiverse._models import Multiverse

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RunConfig:
    """Execution settings.

    Attributes:
        max_workers: Maximum number of universes executing at once.
        timeout: Per-universe time limit in seconds, measured from the moment
            the universe starts executing. ``None`` disables the limit.
        reuse_prefixes: Share outputs of steps between universes whose
            choices agree up to that step. Steps must not mutate their inputs.
        poll_interval: Seconds between timeout and cancellation checks.

    """

    max_workers: int = 1
    timeout: float | None = None
    reuse_prefixes: bool = False
    poll_interval: float = 0.05

    def __post_init__(self) -> None:
        if self.max_workers < 1:
            msg = f"max_workers must be at least 1, got {self.max_workers}."
            raise ValueError(msg)
        if self.timeout is not None and self.timeout <= 0:
            msg = f"timeout must be positive, got {self.timeout}."
            raise ValueError(msg)
        if self.poll_interval <= 0:
            msg = f"poll_interval must be positive, got {self.poll_interval}."
            raise ValueError(msg)


@dataclass(frozen=True, slots=True)
class MultiverseRun:
    """The results of running a multiverse.

    `results` is ordered by universe id, independent of completion order
    and of the degree of parallelism.
    """

    name: str
    results: tuple[UniverseResult, ...]
    cancelled: bool = False

    @property
    def universes(self) -> tuple[Universe, ...]:
        return tuple(result.universe for result in self.results)

    @property
    def succeeded(self) -> tuple[UniverseResult, ...]:
        return tuple(result for result in self.results if result.succeeded)

    @property
    def failed(self) -> tuple[UniverseResult, ...]:
        """Results of universes that did not succeed, for any reason."""
        return tuple(result for result in self.results if not result.succeeded)

    def result(self, universe_id: int) -> UniverseResult:
        """Look up the result of a universe by id."""
        for result in self.results:
            if result.universe.id == universe_id:
                return result
        msg = f"Universe {universe_id} is not part of run '{self.name}'."
        raise KeyError(msg)


def _not_run(universe: Universe, status: ExecutionStatus, error: ExecutionError) -> UniverseResult:
    return UniverseResult(universe=universe, status=status, error=error)


def run_multiverse(  # noqa: C901, PLR0912
    multiverse: Multiverse,
    dataset: Dataset,
    config: RunConfig | None = None,
    *,
    universes: Iterable[Universe] | None = None,
    cancel: threading.Event | None = None,
    on_result: Callable[[UniverseResult], None] | None = None,
) -> MultiverseRun:
    """Execute the pipeline of every universe against the shared dataset.

    Universes run independently on a bounded thread pool. A failing or
    timed-out universe is recorded and never stops the others. Setting
    `cancel` stops scheduling new universes; universes not yet started are
    reported as cancelled and in-flight ones stop before their next step.

    A timed-out universe is abandoned: its thread is left to finish in the
    background and whatever it produces is discarded.

    Args:
        multiverse: The declarations holding parameters and pipeline.
        dataset: The shared, read-only dataset.
        config: Execution settings. Defaults to sequential execution.
        universes: Universes to run. Defaults to the full expansion.
        cancel: Event that requests cancellation of the run.
        on_result: Called in the calling thread as each universe finishes.

    Returns:
        A `MultiverseRun` with one result per universe, ordered by id.

    """
    config = config or RunConfig()
    cancel = cancel or threading.Event()
    to_run = list(universes) if universes is not None else multiverse.universes()
    cache = PrefixCache() if config.reuse_prefixes else None

    logger.debug(
        f"Running {len(to_run)} universe(s) of '{multiverse.name}'"
        f" with {config.max_workers} worker(s), timeout={config.timeout}",
    )

    start_times: dict[int, float] = {}
    start_lock = threading.Lock()

    def run_one(universe: Universe) -> UniverseResult:
        with start_lock:
            start_times[universe.id] = time.monotonic()
        return execute_universe(multiverse, universe, dataset, cache=cache, cancel=cancel)

    results: dict[int, UniverseResult] = {}

    def record(result: UniverseResult) -> None:
        results[result.universe.id] = result
        if on_result is not None:
            on_result(result)

    pending = deque(to_run)
    inflight: dict[Future[UniverseResult], Universe] = {}
    executor = ThreadPoolExecutor(max_workers=config.max_workers, thread_name_prefix="multiverse")
    try:
        while pending or inflight:
            while pending and len(inflight) < config.max_workers and not cancel.is_set():
                universe = pending.popleft()
                inflight[executor.submit(run_one, universe)] = universe

            if cancel.is_set() and pending:
                logger.info(f"Cancellation requested; {len(pending)} universe(s) will not run")
                while pending:
                    universe = pending.popleft()
                    error = ExecutionError(
                        f"Universe {universe.id} was cancelled before it started",
                        universe_id=universe.id,
                    )
                    record(_not_run(universe, ExecutionStatus.CANCELLED, error))

            if not inflight:
                break

            done, _ = wait(inflight, timeout=config.poll_interval, return_when=FIRST_COMPLETED)
            for future in done:
                inflight.pop(future)
                record(future.result())

            if config.timeout is None:
                continue
            now = time.monotonic()
            timed_out = False
            for future, universe in list(inflight.items()):
                with start_lock:
                    started = start_times.get(universe.id)
                if started is None or now - started <= config.timeout:
                    continue
                inflight.pop(future)
                future.cancel()
                logger.debug(f"Universe {universe.id} exceeded the timeout of {config.timeout}s")
                error = UniverseTimeoutError(
                    f"Universe {universe.id} did not finish within {config.timeout}s",
                    universe_id=universe.id,
                )
                record(
                    UniverseResult(
                        universe=universe,
                        status=ExecutionStatus.TIMED_OUT,
                        error=error,
                        duration=now - started,
                    ),
                )
                timed_out = True

            if timed_out:
                # Abandoned universes keep their worker threads busy, so continue on a
                # fresh pool and move any universe that had not started yet onto it.
                executor.shutdown(wait=False, cancel_futures=True)
                executor = ThreadPoolExecutor(max_workers=config.max_workers, thread_name_prefix="multiverse")
                for future, universe in list(inflight.items()):
                    if future.cancelled():
                        inflight.pop(future)
                        inflight[executor.submit(run_one, universe)] = universe
    finally:
        executor.shutdown(wait=False, cancel_futures=True)

    ordered = tuple(results[universe.id] for universe in to_run)
    n_ok = sum(1 for result in ordered if result.succeeded)
    logger.debug(f"Finished '{multiverse.name}': {n_ok}/{len(ordered)} universe(s) succeeded")
    if cache is not None:
        logger.debug(f"Prefix cache hits: {cache.hits}")
    return MultiverseRun(name=multiverse.name, results=ordered, cancelled=cancel.is_set())
