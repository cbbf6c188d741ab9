from __future__ import annotations

import logging

from shardbench.backends.base import Backend
from shardbench.errors import InsertError
from shardbench.report import PHASE_INSERT, PhaseResult, timing_result
from shardbench.schema import ON_CONFLICT_FAIL, SchemaVariant
from shardbench.util.logging import log_structured_event
from shardbench.util.timing import timed
from shardbench.workload import KEY_COLUMNS, WorkloadSet

LOG = logging.getLogger(__name__)
_DUPLICATE_SAMPLE_SIZE = 5


class Inserter:
    """Replays a workload into one variant as a single batched execution.

    The batch is not wrapped in a transaction: a failing row aborts the rest
    and whatever was already written stays.
    """

    def __init__(self, backend: Backend, *, on_conflict: str = ON_CONFLICT_FAIL):
        self.backend = backend
        self.on_conflict = on_conflict

    def _check_duplicates(self, variant: SchemaVariant, workload: WorkloadSet) -> None:
        key_columns = [column for column in variant.primary_key if column in KEY_COLUMNS]
        if not key_columns:
            return
        duplicates = workload.duplicate_keys(key_columns)
        if not duplicates:
            return
        if self.on_conflict == ON_CONFLICT_FAIL:
            raise InsertError(
                f"workload has {len(duplicates)} duplicate primary keys for {variant.table}, "
                f"e.g. {duplicates[:_DUPLICATE_SAMPLE_SIZE]}"
            )
        log_structured_event(
            LOG,
            logging.WARNING,
            "duplicate_keys_skipped",
            variant=variant.name,
            table=variant.table,
            duplicates=len(duplicates),
        )

    def insert_all(self, variant: SchemaVariant, workload: WorkloadSet) -> PhaseResult:
        self._check_duplicates(variant, workload)
        try:
            statement = variant.insert_sql(self.backend.placeholder, on_conflict=self.on_conflict)
        except (KeyError, IndexError, ValueError) as exc:
            raise InsertError(f"cannot render insert statement for {variant.table}", exc) from exc
        rows = [variant.row_for(key) for key in workload]
        try:
            with timed() as timing:
                self.backend.execute_batch(statement, rows)
        except self.backend.errors as exc:
            raise InsertError(f"batch insert into {variant.table} failed", exc) from exc
        log_structured_event(
            LOG,
            logging.INFO,
            "insert_complete",
            variant=variant.name,
            table=variant.table,
            rows=len(rows),
            elapsed_ms=round(timing.elapsed_ms, 3),
        )
        return timing_result(variant, PHASE_INSERT, timing.elapsed_ms, rows=len(rows))
