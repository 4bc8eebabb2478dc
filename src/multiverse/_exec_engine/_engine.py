"""Execution of the shared pipeline for a single universe."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Iterable
from dataclasses import dataclass
from enum import StrEnum, auto
from typing import TYPE_CHECKING, Any

from multiverse._errors import ExecutionError
from multiverse._models import DATA_INPUT, UNIVERSE_INPUT
from multiverse._outcome import Outcome

if TYPE_CHECKING:
    from multiverse._dataset import Dataset
    from multiverse._expand import Universe
    from multiverse._models import Multiverse, Step

logger = logging.getLogger(__name__)


class ExecutionStatus(StrEnum):
    """Final state of a universe's execution."""

    SUCCEEDED = auto()
    FAILED = auto()
    TIMED_OUT = auto()
    CANCELLED = auto()


@dataclass(frozen=True, slots=True)
class UniverseResult:
    """Result-or-error of running one universe.

    Attributes:
        universe: The universe that was executed.
        status: Final execution state.
        outcomes: Outcomes in the order the pipeline produced them. Empty
            unless the universe succeeded.
        error: The captured failure, if the universe did not succeed.
        duration: Wall-clock seconds spent executing, if it ran.

    """

    universe: Universe
    status: ExecutionStatus
    outcomes: tuple[Outcome, ...] = ()
    error: ExecutionError | None = None
    duration: float | None = None

    @property
    def succeeded(self) -> bool:
        return self.status is ExecutionStatus.SUCCEEDED

    @property
    def failed_step(self) -> str | None:
        """Name of the step that failed, if any."""
        return self.error.step if self.error is not None else None


class PrefixCache:
    """Thread-safe memo of step outputs shared by universes with equal choice prefixes.

    The key of a step's output is the step position together with the choices
    of every parameterized step up to and including it. Cached outputs are
    handed to several universes, so steps must not mutate their inputs.
    """

    def __init__(self) -> None:
        self._values: dict[tuple[int, tuple[tuple[str, str], ...]], Any] = {}
        self._lock = threading.Lock()
        self.hits = 0

    def get(self, key: tuple[int, tuple[tuple[str, str], ...]]) -> tuple[bool, Any]:
        with self._lock:
            if key in self._values:
                self.hits += 1
                return True, self._values[key]
        return False, None

    def put(self, key: tuple[int, tuple[tuple[str, str], ...]], value: Any) -> None:
        with self._lock:
            self._values.setdefault(key, value)


def _collect_outcomes(step: Step, value: Any) -> list[Outcome]:
    """Normalize an outcome step's return value to a list of outcomes."""
    if isinstance(value, Outcome):
        return [value]
    if isinstance(value, Iterable) and not isinstance(value, str | bytes):
        outcomes = list(value)
        for item in outcomes:
            if not isinstance(item, Outcome):
                msg = f"Outcome step '{step.name}' returned {type(item).__name__}, expected Outcome."
                raise TypeError(msg)
        return outcomes
    msg = f"Outcome step '{step.name}' returned {type(value).__name__}, expected Outcome or an iterable of Outcome."
    raise TypeError(msg)


def execute_universe(
    multiverse: Multiverse,
    universe: Universe,
    dataset: Dataset,
    *,
    cache: PrefixCache | None = None,
    cancel: threading.Event | None = None,
) -> UniverseResult:
    """Run the pipeline once for a universe.

    Steps run in pipeline order. Parameterized steps are resolved to the
    universe's chosen option before running. Each step sees the dataset
    (or a private mutable copy of it), the universe, and the outputs of the
    earlier steps of this universe only.

    Any exception raised by a step halts this universe and is captured on
    the returned result; it is never propagated.

    Args:
        multiverse: The declarations holding the pipeline.
        universe: The universe to run.
        dataset: The shared read-only dataset.
        cache: Optional prefix cache shared between universes.
        cancel: Optional event; when set before a step starts, the universe
            stops and is reported as cancelled.

    Returns:
        The universe's result or captured error.

    """
    state: dict[str, Any] = {}
    outcomes: list[Outcome] = []
    prefix: list[tuple[str, str]] = []
    cacheable = cache is not None
    started = time.perf_counter()

    logger.debug(f"Universe {universe.id}: {universe.label()}")

    for index, step in enumerate(multiverse.steps.values()):
        if cancel is not None and cancel.is_set():
            error = ExecutionError(f"Universe {universe.id} was cancelled", universe_id=universe.id, step=step.name)
            return UniverseResult(
                universe=universe,
                status=ExecutionStatus.CANCELLED,
                error=error,
                duration=time.perf_counter() - started,
            )

        choice = universe.choices.get(step.parameter.name) if step.parameter is not None else None
        if step.parameter is not None:
            prefix.append((step.parameter.name, choice))  # type: ignore[arg-type]
        cache_key = (index, tuple(prefix))

        try:
            if step.parameter is not None and choice is None:
                msg = f"Universe {universe.id} has no choice for parameter '{step.parameter.name}'."
                raise KeyError(msg)

            func, input_names = step.resolve(choice)
            if UNIVERSE_INPUT in input_names:
                # Outputs from here on may depend on choices outside the prefix.
                cacheable = False
            use_cache = cacheable and not step.mutable_data

            hit = False
            if use_cache:
                hit, value = cache.get(cache_key)  # type: ignore[union-attr]
            if not hit:
                available: dict[str, Any] = {
                    **state,
                    DATA_INPUT: dataset.mutable_copy() if step.mutable_data else dataset,
                    UNIVERSE_INPUT: universe,
                }
                if step.func is not None and step.parameter is not None:
                    available[step.parameter.name] = step.parameter.option(choice).value  # type: ignore[arg-type]
                kwargs = {name: available[name] for name in input_names if name in available}
                logger.debug(f"  Running step '{step.name}'" + (f" [{choice}]" if choice is not None else ""))
                value = func(**kwargs)
                if use_cache:
                    cache.put(cache_key, value)  # type: ignore[union-attr]

            state[step.name] = value
            if step.outcome:
                outcomes.extend(_collect_outcomes(step, value))
        except (Exception, SystemExit) as e:  # noqa: BLE001 - failures are scoped to the universe
            logger.debug(f"  Step '{step.name}' failed in universe {universe.id}: {e!r}")
            error = ExecutionError(
                f"Step '{step.name}' failed in universe {universe.id}: {e}",
                universe_id=universe.id,
                step=step.name,
                cause=e,
            )
            return UniverseResult(
                universe=universe,
                status=ExecutionStatus.FAILED,
                error=error,
                duration=time.perf_counter() - started,
            )

    return UniverseResult(
        universe=universe,
        status=ExecutionStatus.SUCCEEDED,
        outcomes=tuple(outcomes),
        duration=time.perf_counter() - started,
    )
