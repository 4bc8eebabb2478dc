"""Immutable, column-oriented input table shared by every universe."""

from __future__ import annotations

import csv
import logging
from collections.abc import Iterable, Iterator, Mapping, Sequence
from pathlib import Path
from types import MappingProxyType
from typing import Any

logger = logging.getLogger(__name__)


def _convert_column(raw: Sequence[str]) -> tuple[Any, ...]:
    """Convert a column of CSV strings to ints or floats when every cell allows it.

    Empty cells become ``None``. A column that is not entirely numeric is kept
    as strings.
    """
    for cast in (int, float):
        try:
            return tuple(None if cell == "" else cast(cell) for cell in raw)
        except ValueError:
            continue
    return tuple(None if cell == "" else cell for cell in raw)


class Dataset(Mapping[str, tuple[Any, ...]]):
    """A read-only table of named columns.

    Column order and row order are preserved. The dataset is never mutated by
    the engine; steps that need to modify data receive a private copy
    (see `mutable_copy`).

    Example:
        >>> data = Dataset({"x": [1, 2, 3], "y": [2.0, 4.1, 5.9]})
        >>> data.n_rows
        3
        >>> data["x"]
        (1, 2, 3)

    """

    __slots__ = ("_columns", "_n_rows")

    def __init__(self, columns: Mapping[str, Iterable[Any]]) -> None:
        frozen: dict[str, tuple[Any, ...]] = {}
        n_rows: int | None = None
        for name, values in columns.items():
            if not isinstance(name, str):
                msg = f"Column names must be strings, got {name!r}."
                raise TypeError(msg)
            column = tuple(values)
            if n_rows is None:
                n_rows = len(column)
            elif len(column) != n_rows:
                msg = f"Column '{name}' has {len(column)} rows, expected {n_rows}."
                raise ValueError(msg)
            frozen[name] = column
        self._columns = MappingProxyType(frozen)
        self._n_rows = n_rows or 0

    @classmethod
    def from_records(cls, records: Iterable[Mapping[str, Any]]) -> Dataset:
        """Build a dataset from row mappings. Columns follow the first row's key order."""
        rows = list(records)
        if not rows:
            return cls({})
        names = list(rows[0].keys())
        for index, row in enumerate(rows):
            if list(row.keys()) != names:
                msg = f"Row {index} has columns {list(row.keys())}, expected {names}."
                raise ValueError(msg)
        return cls({name: [row[name] for row in rows] for name in names})

    @classmethod
    def from_csv(cls, path: Path | str) -> Dataset:
        """Load a dataset from a CSV file with a header row."""
        path = Path(path)
        with path.open(newline="", encoding="utf-8") as f:
            reader = csv.reader(f)
            try:
                header = next(reader)
            except StopIteration:
                return cls({})
            raw: dict[str, list[str]] = {name: [] for name in header}
            for line_no, row in enumerate(reader, start=2):
                if len(row) != len(header):
                    msg = f"{path}:{line_no}: expected {len(header)} cells, got {len(row)}."
                    raise ValueError(msg)
                for name, cell in zip(header, row, strict=True):
                    raw[name].append(cell)
        dataset = cls({name: _convert_column(values) for name, values in raw.items()})
        logger.debug(f"Loaded dataset from {path}: {len(dataset)} columns, {dataset.n_rows} rows")
        return dataset

    @property
    def columns(self) -> tuple[str, ...]:
        """Column names in order."""
        return tuple(self._columns)

    @property
    def n_rows(self) -> int:
        """Number of rows."""
        return self._n_rows

    def rows(self) -> Iterator[dict[str, Any]]:
        """Iterate over rows as fresh dictionaries."""
        for index in range(self._n_rows):
            yield {name: values[index] for name, values in self._columns.items()}

    def mutable_copy(self) -> dict[str, list[Any]]:
        """Return a private, mutable copy of the columns."""
        return {name: list(values) for name, values in self._columns.items()}

    def __getitem__(self, name: str) -> tuple[Any, ...]:
        return self._columns[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._columns)

    def __len__(self) -> int:
        return len(self._columns)

    def __repr__(self) -> str:
        return f"Dataset(columns={list(self._columns)!r}, n_rows={self._n_rows})"
