"""data.json: the dataset, one object per column."""

from __future__ import annotations

import datetime as dt
import json
import logging
import math
from pathlib import Path
from typing import Any

from pydantic import BaseModel, TypeAdapter, ValidationError

from multiverse._dataset import Dataset
from multiverse._errors import ExportValidationError

from ._json import write_json

logger = logging.getLogger(__name__)


class DataColumn(BaseModel):
    """One column of data.json."""

    field: str
    values: list[Any]


_COLUMNS_ADAPTER = TypeAdapter(list[DataColumn])


def _jsonable(value: Any, column: str) -> Any:
    """Convert a cell to a JSON value. Missing numbers (NaN) become ``null``."""
    if value is None or isinstance(value, bool | int | str):
        return value
    if isinstance(value, float):
        if math.isnan(value):
            return None
        if math.isinf(value):
            msg = "infinite values cannot be exported"
            raise ExportValidationError(msg, field=column)
        return value
    if isinstance(value, dt.date | dt.datetime | dt.time):
        return value.isoformat()
    item = getattr(value, "item", None)
    if callable(item):
        # numpy scalars
        return _jsonable(item(), column)
    msg = f"value of type {type(value).__name__} cannot be exported"
    raise ExportValidationError(msg, field=column)


def export_data(dataset: Dataset, path: Path | str | None = None) -> list[dict[str, Any]] | None:
    """Export a dataset in the data.json format.

    The structure is ``[{"field": column, "values": [...]}, ...]`` in column
    order, with row order preserved in every column.

    Args:
        dataset: The dataset to export.
        path: Destination file. When ``None``, the structure is returned.

    Returns:
        The data structure when `path` is ``None``, otherwise ``None``.

    Raises:
        ExportValidationError: If a value cannot be represented in JSON.

    """
    structure = [
        {"field": name, "values": [_jsonable(value, name) for value in dataset[name]]} for name in dataset.columns
    ]
    if path is None:
        return structure
    write_json(structure, path)
    logger.debug(f"Exported {len(structure)} column(s) x {dataset.n_rows} row(s) to {Path(path)}")
    return None


def load_data_json(path: Path | str) -> Dataset:
    """Read a data.json file back into a dataset.

    Raises:
        ExportValidationError: If the file does not follow the data.json format.

    """
    path = Path(path)
    with path.open(encoding="utf-8") as f:
        raw = json.load(f)
    try:
        columns = _COLUMNS_ADAPTER.validate_python(raw)
    except ValidationError as e:
        first = e.errors()[0]
        loc = first.get("loc", ())
        field = str(loc[-1]) if loc else "data"
        raise ExportValidationError(first.get("msg", str(e)), field=field) from e

    names = [column.field for column in columns]
    if len(set(names)) != len(names):
        duplicate = next(name for name in names if names.count(name) > 1)
        msg = "duplicate column"
        raise ExportValidationError(msg, field=duplicate)
    try:
        return Dataset({column.field: column.values for column in columns})
    except ValueError as e:
        msg = str(e)
        raise ExportValidationError(msg, field="values") from e
