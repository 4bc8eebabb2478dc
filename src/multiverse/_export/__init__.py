"""Exporters for the interchange files read by the visualization client.

- results.json: summarized outcomes per universe (`export_results`)
- code.json: pipeline source fragments and parameter options (`export_code`)
- data.json: the dataset, one object per column (`export_data`)

Every exporter returns its structure when called without a path and writes
the same structure, serialized by `dumps_json`, when given one.
"""

from ._code import code_fragments, export_code
from ._data import export_data, load_data_json
from ._json import dumps_json, write_json
from ._results import export_results, results_to_records

__all__ = [
    "code_fragments",
    "dumps_json",
    "export_code",
    "export_data",
    "export_results",
    "load_data_json",
    "results_to_records",
    "write_json",
]
