"""Read workloads timed against one schema variant at a time."""

from __future__ import annotations

import logging

from shardbench.backends.base import Backend
from shardbench.errors import QueryError
from shardbench.report import (
    PHASE_BATCH_LOOKUP,
    PHASE_FULL_SCAN,
    PHASE_SHARD_FILTER,
    PhaseResult,
    timing_result,
)
from shardbench.schema import SchemaVariant
from shardbench.util.logging import log_structured_event
from shardbench.util.timing import timed
from shardbench.workload import WorkloadSet

LOG = logging.getLogger(__name__)
DEFAULT_LOOKUP_LIMIT = 1000


class QueryBenchmarks:
    def __init__(self, backend: Backend, num_shards: int):
        if num_shards <= 0:
            raise ValueError("num_shards must be positive")
        self.backend = backend
        self.num_shards = int(num_shards)

    def _log(self, variant: SchemaVariant, result: PhaseResult) -> None:
        log_structured_event(
            LOG,
            logging.INFO,
            "query_benchmark_complete",
            variant=variant.name,
            table=variant.table,
            phase=result.phase,
            rows=result.rows,
            elapsed_ms=result.value,
        )

    def shard_filter_all(self, variant: SchemaVariant) -> PhaseResult:
        """Count rows shard by shard, ``1..num_shards``, under a single timer."""
        statement = variant.shard_count_sql(self.backend.placeholder)
        total = 0
        try:
            with timed() as timing:
                for shard_id in range(1, self.num_shards + 1):
                    total += int(self.backend.fetch_scalar(statement, (shard_id,)) or 0)
        except self.backend.errors as exc:
            raise QueryError(f"shard filter on {variant.table} failed", exc) from exc
        result = timing_result(variant, PHASE_SHARD_FILTER, timing.elapsed_ms, rows=total)
        self._log(variant, result)
        return result

    def full_table_scan(self, variant: SchemaVariant) -> PhaseResult:
        try:
            with timed() as timing:
                count = int(self.backend.fetch_scalar(variant.count_sql()) or 0)
        except self.backend.errors as exc:
            raise QueryError(f"full table scan on {variant.table} failed", exc) from exc
        result = timing_result(variant, PHASE_FULL_SCAN, timing.elapsed_ms, rows=count)
        self._log(variant, result)
        return result

    def batch_lookups(
        self,
        variant: SchemaVariant,
        workload: WorkloadSet,
        limit: int = DEFAULT_LOOKUP_LIMIT,
    ) -> PhaseResult:
        """Point lookups by (topic_id, message_id) for the first ``limit`` keys.

        Shard is deliberately left out of the predicate; this is the access
        path the (topic, message) primary key serves directly.
        """
        keys = workload.prefix(limit)
        statement = variant.lookup_sql(self.backend.placeholder)
        matches: list[int] = []
        try:
            with timed() as timing:
                for key in keys:
                    matches.append(len(self.backend.fetch_all(statement, (key.topic_id, key.message_id))))
        except self.backend.errors as exc:
            raise QueryError(f"batch lookups on {variant.table} failed", exc) from exc
        result = timing_result(
            variant,
            PHASE_BATCH_LOOKUP,
            timing.elapsed_ms,
            rows=sum(matches),
            row_counts=tuple(matches),
        )
        self._log(variant, result)
        return result
