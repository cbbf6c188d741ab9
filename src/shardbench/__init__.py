"""Benchmark harness comparing two primary-key layouts for sharded message tables."""

from shardbench._version import VERSION, __version__
from shardbench.errors import (
    BackendUnavailableError,
    BenchmarkError,
    ConfigError,
    GenerationError,
    InsertError,
    QueryError,
    RunAborted,
    SchemaError,
    SizeQueryError,
)
from shardbench.report import PhaseResult, RunReport
from shardbench.runner import Runner
from shardbench.schema import DEFAULT_VARIANTS, VARIANT_A, VARIANT_B, IndexDefinition, SchemaVariant
from shardbench.workload import MessageKey, WorkloadSet, generate_workload

__all__ = [
    "VERSION",
    "__version__",
    "BackendUnavailableError",
    "BenchmarkError",
    "ConfigError",
    "GenerationError",
    "InsertError",
    "QueryError",
    "RunAborted",
    "SchemaError",
    "SizeQueryError",
    "PhaseResult",
    "RunReport",
    "Runner",
    "DEFAULT_VARIANTS",
    "VARIANT_A",
    "VARIANT_B",
    "IndexDefinition",
    "SchemaVariant",
    "MessageKey",
    "WorkloadSet",
    "generate_workload",
]
