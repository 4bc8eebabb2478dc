from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

import tomli_w

from ._dataset import Dataset
from ._export import load_data_json

if TYPE_CHECKING:
    from ._aggregate import ExecutionSummary
    from ._exec_engine import MultiverseRun

logger = logging.getLogger(__name__)


def load_dataset(path: Path | str) -> Dataset:
    """Load a dataset from a CSV file or a data.json file.

    The format is chosen from the file suffix.
    """
    path = Path(path)
    match path.suffix.lower():
        case ".csv":
            return Dataset.from_csv(path)
        case ".json":
            return load_data_json(path)
        case _:
            msg = f"Unsupported dataset format '{path.suffix}'. Use a .csv or data.json file."
            raise ValueError(msg)


def summary_to_dict(summary: ExecutionSummary, run: MultiverseRun | None = None) -> dict[str, Any]:
    """Convert an execution summary to a TOML-compatible dictionary.

    When the run is given, each universe's choices are listed as well.
    """
    data: dict[str, Any] = summary.to_dict()
    if run is not None:
        data["universes"] = [
            {
                "universe": result.universe.id,
                "status": result.status.value,
                "choices": dict(result.universe.choices),
            }
            for result in run.results
        ]
    return data


def export_summary_to_toml(
    summary: ExecutionSummary,
    output_path: Path | str,
    run: MultiverseRun | None = None,
) -> None:
    """Export an execution summary to a TOML file.

    Args:
        summary: The summary to export.
        output_path: Path to the output TOML file.
        run: Optionally, the run the summary was built from.

    """
    toml_data = summary_to_dict(summary, run)

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with output_path.open("wb") as f:
        tomli_w.dump(toml_data, f)

    logger.debug(f"Exported execution summary to {output_path}")
