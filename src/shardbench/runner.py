"""Fixed-sequence orchestration of one benchmark run.

Every phase runs to completion before the next starts, on one connection,
so each timing window is uncontended. The first failing phase aborts the run.
"""

from __future__ import annotations

import logging
from typing import Callable, Sequence, TypeVar

from shardbench.backends.base import Backend
from shardbench.config.settings import HarnessSettings
from shardbench.errors import BenchmarkError, RunAborted
from shardbench.inserter import Inserter
from shardbench.provision import SchemaProvisioner
from shardbench.queries import QueryBenchmarks
from shardbench.report import (
    PHASE_BATCH_LOOKUP,
    PHASE_FULL_SCAN,
    PHASE_GENERATE,
    PHASE_INDEX_SIZE,
    PHASE_INSERT,
    PHASE_PROVISION,
    PHASE_SHARD_FILTER,
    PHASE_TEARDOWN,
    PhaseResult,
    RunReport,
)
from shardbench.schema import DEFAULT_VARIANTS, SchemaVariant
from shardbench.sizes import SizeReporter
from shardbench.util.logging import log_structured_event, new_job_id
from shardbench.workload import WorkloadSet, generate_workload

LOG = logging.getLogger(__name__)
T = TypeVar("T")


class Runner:
    def __init__(
        self,
        backend: Backend,
        settings: HarnessSettings,
        *,
        variants: Sequence[SchemaVariant] = DEFAULT_VARIANTS,
        run_id: str | None = None,
    ):
        if not variants:
            raise ValueError("at least one schema variant is required")
        self.backend = backend
        self.settings = settings
        self.variants = tuple(variants)
        self.run_id = run_id or new_job_id("run")
        self.provisioner = SchemaProvisioner(backend)
        self.inserter = Inserter(backend, on_conflict=settings.run.on_conflict)
        self.queries = QueryBenchmarks(backend, settings.workload.num_shards)
        self.sizes = SizeReporter(backend)

    def _phase(
        self,
        report: RunReport,
        phase: str,
        variant: SchemaVariant | None,
        action: Callable[..., T],
        *args,
    ) -> T:
        try:
            outcome = action(*args)
        except BenchmarkError as exc:
            report.mark_failed(phase, variant, exc)
            log_structured_event(
                LOG,
                logging.ERROR,
                "phase_failed",
                run_id=self.run_id,
                phase=phase,
                variant=None if variant is None else variant.name,
                table=None if variant is None else variant.table,
                error_type=type(exc).__name__,
                error=str(exc),
            )
            where = "" if variant is None else f" on {variant.table}"
            raise RunAborted(
                f"{phase} failed{where}",
                phase=phase,
                variant=variant,
                report=report,
                cause=exc,
            ) from exc
        if isinstance(outcome, PhaseResult):
            report.add(outcome)
            log_structured_event(
                LOG,
                logging.INFO,
                "phase_complete",
                run_id=self.run_id,
                phase=phase,
                variant=outcome.variant,
                value=outcome.value,
                unit=outcome.unit,
            )
        return outcome

    def generate(self) -> WorkloadSet:
        workload_settings = self.settings.workload
        return generate_workload(
            workload_settings.num_topics,
            workload_settings.num_shards,
            workload_settings.num_messages,
            workload_settings.msg_id_range,
            seed=workload_settings.random_seed,
        )

    def _measure_variant(self, report: RunReport, variant: SchemaVariant, workload: WorkloadSet) -> None:
        self._phase(report, PHASE_PROVISION, variant, self.provisioner.provision, variant)
        self._phase(report, PHASE_INSERT, variant, self.inserter.insert_all, variant, workload)
        self._phase(report, PHASE_SHARD_FILTER, variant, self.queries.shard_filter_all, variant)
        scan = self._phase(report, PHASE_FULL_SCAN, variant, self.queries.full_table_scan, variant)
        if scan.rows != len(workload):
            log_structured_event(
                LOG,
                logging.WARNING,
                "row_count_mismatch",
                run_id=self.run_id,
                variant=variant.name,
                table=variant.table,
                expected=len(workload),
                observed=scan.rows,
            )
        self._phase(report, PHASE_INDEX_SIZE, variant, self.sizes.index_size, variant)

    def run(self) -> RunReport:
        report = RunReport(
            run_id=self.run_id,
            variants=self.variants,
            settings=self.settings.summary(),
        )
        log_structured_event(LOG, logging.INFO, "run_start", run_id=self.run_id, **report.settings)

        workload = self._phase(report, PHASE_GENERATE, None, self.generate)
        report.workload_size = len(workload)
        report.seed = workload.seed

        for variant in self.variants:
            self._measure_variant(report, variant, workload)

        # Lookups run only after every variant is loaded, over the same key prefix.
        limit = self.settings.workload.lookup_batch_size
        for variant in self.variants:
            self._phase(report, PHASE_BATCH_LOOKUP, variant, self.queries.batch_lookups, variant, workload, limit)

        if self.settings.run.drop_after:
            for variant in self.variants:
                self._phase(report, PHASE_TEARDOWN, variant, self.provisioner.teardown, variant)

        report.mark_complete()
        log_structured_event(
            LOG,
            logging.INFO,
            "run_complete",
            run_id=self.run_id,
            phases=len(report.results),
            workload_size=report.workload_size,
        )
        return report
