"""results.json: summarized outcomes per universe."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from pathlib import Path
from typing import Any, NoReturn

from pydantic import ValidationError

from multiverse._aggregate import summarize_universe
from multiverse._errors import DistributionError, ExportValidationError
from multiverse._exec_engine import MultiverseRun, UniverseResult
from multiverse._records import ResultRecord, UniverseRecords
from multiverse._summarize import CdfGrid

from ._json import write_json

logger = logging.getLogger(__name__)

type ResultTable = Mapping[int, Sequence[Mapping[str, Any]]]
type ResultsInput = MultiverseRun | Iterable[UniverseResult] | Iterable[UniverseRecords] | ResultTable


def _raise_from_validation(error: ValidationError, universe_id: int | None) -> NoReturn:
    first = error.errors()[0]
    loc = first.get("loc", ())
    field = str(loc[0]) if loc else "results"
    message = "missing required field" if first.get("type") == "missing" else first.get("msg", str(error))
    raise ExportValidationError(message, field=field, universe_id=universe_id) from error


def _records_from_table(table: ResultTable) -> list[UniverseRecords]:
    records: list[UniverseRecords] = []
    for universe_id, rows in table.items():
        parsed: list[ResultRecord] = []
        for row in rows:
            try:
                parsed.append(ResultRecord.model_validate(row))
            except ValidationError as e:
                _raise_from_validation(e, universe_id)
        try:
            records.append(UniverseRecords(universe=universe_id, results=tuple(parsed)))
        except ValidationError as e:
            _raise_from_validation(e, universe_id)
    return records


def _records_from_results(
    results: Iterable[UniverseResult],
    grid: CdfGrid | None,
    *,
    include_failed: bool,
) -> list[UniverseRecords]:
    records: list[UniverseRecords] = []
    for result in results:
        if not result.succeeded:
            if include_failed:
                records.append(UniverseRecords(universe=result.universe.id))
            continue
        try:
            records.append(summarize_universe(result, grid))
        except ValidationError as e:
            _raise_from_validation(e, result.universe.id)
        except DistributionError as e:
            raise ExportValidationError(str(e), field="cdf.x", universe_id=result.universe.id) from e
    return records


def results_to_records(
    results: ResultsInput,
    *,
    grid: CdfGrid | None = None,
    include_failed: bool = False,
) -> list[UniverseRecords]:
    """Normalize any accepted results input to validated per-universe records.

    Raises:
        ExportValidationError: If a record is missing a required field, its
            CDF sample is malformed, or an outcome distribution cannot be sampled.

    """
    if isinstance(results, MultiverseRun):
        return _records_from_results(results.results, grid, include_failed=include_failed)
    if isinstance(results, Mapping):
        return _records_from_table(results)

    items = list(results)
    if all(isinstance(item, UniverseRecords) for item in items):
        return items  # type: ignore[return-value]
    if all(isinstance(item, UniverseResult) for item in items):
        return _records_from_results(items, grid, include_failed=include_failed)  # type: ignore[arg-type]
    msg = "expected a MultiverseRun, universe results, universe records, or a results table"
    raise ExportValidationError(msg, field="results")


def export_results(
    results: ResultsInput,
    path: Path | str | None = None,
    *,
    grid: CdfGrid | None = None,
    include_failed: bool = False,
) -> list[dict[str, Any]] | None:
    """Export summarized results in the results.json format.

    Each universe becomes ``{".universe": id, "results": [...]}`` where every
    entry carries ``term``, ``estimate``, ``std.error``, ``cdf.x``, ``cdf.y``
    and, when present, ``statistic``, ``p.value``, ``conf.low`` and
    ``conf.high``. Failed universes are omitted unless `include_failed`.

    Args:
        results: A run, universe results, universe records, or a results
            table mapping universe id to row mappings.
        path: Destination file. When ``None``, the structure is returned.
        grid: Cumulative-probability grid for outcomes that still need summarizing.
        include_failed: Emit failed universes with an empty results list.

    Returns:
        The results structure when `path` is ``None``, otherwise ``None``.

    Raises:
        ExportValidationError: If any record is malformed. Nothing is written.

    """
    records = results_to_records(results, grid=grid, include_failed=include_failed)
    structure = [universe.to_json_dict() for universe in records]
    if path is None:
        return structure
    write_json(structure, path)
    logger.debug(f"Exported results of {len(structure)} universe(s) to {Path(path)}")
    return None
