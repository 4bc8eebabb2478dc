"""Multiverse analysis: declare decision points, run every universe, export the results."""

__all__ = [
    "And",
    "CdfGrid",
    "CdfSample",
    "Condition",
    "ConditionEvaluationError",
    "Dataset",
    "DeclarationError",
    "Distribution",
    "DistributionError",
    "DuplicateOptionError",
    "DuplicateParameterError",
    "ExecutionError",
    "ExecutionStatus",
    "ExecutionSummary",
    "ExportValidationError",
    "FailureCause",
    "InvalidConditionReferenceError",
    "Is",
    "Multiverse",
    "MultiverseError",
    "MultiverseRun",
    "Not",
    "Option",
    "Or",
    "Outcome",
    "Parameter",
    "PipelineDeclarationError",
    "ResultRecord",
    "RunConfig",
    "Step",
    "Universe",
    "UniverseRecords",
    "UniverseResult",
    "UniverseTimeoutError",
    "UnknownParameterError",
    "aggregate",
    "code_fragments",
    "condition_from_mapping",
    "distribution_cdf_sample",
    "dumps_json",
    "evaluate",
    "execute_universe",
    "expand",
    "export_code",
    "export_data",
    "export_results",
    "export_summary_to_toml",
    "load_data_json",
    "load_dataset",
    "normal_cdf_sample",
    "run_multiverse",
    "summarize",
    "summarize_distribution",
    "summarize_execution",
    "summarize_normal",
]

from ._aggregate import ExecutionSummary, FailureCause, aggregate, summarize_execution
from ._condition import And, Condition, Is, Not, Or, condition_from_mapping, evaluate
from ._dataset import Dataset
from ._errors import (
    ConditionEvaluationError,
    DeclarationError,
    DistributionError,
    DuplicateOptionError,
    DuplicateParameterError,
    ExecutionError,
    ExportValidationError,
    InvalidConditionReferenceError,
    MultiverseError,
    PipelineDeclarationError,
    UniverseTimeoutError,
    UnknownParameterError,
)
from ._exec_engine import ExecutionStatus, MultiverseRun, RunConfig, UniverseResult, execute_universe, run_multiverse
from ._expand import Universe, expand
from ._export import code_fragments, dumps_json, export_code, export_data, export_results, load_data_json
from ._io import export_summary_to_toml, load_dataset
from ._models import Multiverse, Option, Parameter, Step
from ._outcome import Distribution, Outcome
from ._records import ResultRecord, UniverseRecords
from ._summarize import (
    CdfGrid,
    CdfSample,
    distribution_cdf_sample,
    normal_cdf_sample,
    summarize,
    summarize_distribution,
    summarize_normal,
)
