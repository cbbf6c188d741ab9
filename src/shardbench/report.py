"""Phase results and the comparison report rendered at the end of a run."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Sequence

from shardbench.schema import SchemaVariant
from shardbench.util.json import json_dumps

PHASE_GENERATE = "generate"
PHASE_PROVISION = "provision"
PHASE_INSERT = "insert"
PHASE_SHARD_FILTER = "shard_filter"
PHASE_FULL_SCAN = "full_scan"
PHASE_INDEX_SIZE = "index_size"
PHASE_BATCH_LOOKUP = "batch_lookup"
PHASE_TEARDOWN = "teardown"
MEASURED_PHASES = (
    PHASE_INSERT,
    PHASE_SHARD_FILTER,
    PHASE_FULL_SCAN,
    PHASE_INDEX_SIZE,
    PHASE_BATCH_LOOKUP,
)
UNIT_MS = "ms"
UNIT_BYTES = "bytes"
STATUS_RUNNING = "running"
STATUS_COMPLETE = "complete"
STATUS_INCOMPLETE = "incomplete"
INCOMPLETE_BANNER = "INCOMPLETE RUN: a phase failed; the results below stop at the failure"
# (unit, switch-up limit, half-rounded, shift from bytes), as in pg_size_pretty.
_SIZE_UNITS = (
    ("bytes", 10 * 1024, False, 0),
    ("kB", 20 * 1024 - 1, True, 9),
    ("MB", 20 * 1024 - 1, True, 19),
    ("GB", 20 * 1024 - 1, True, 29),
    ("TB", 20 * 1024 - 1, True, 39),
    ("PB", 20 * 1024 - 1, True, 49),
)


@dataclass(frozen=True)
class PhaseResult:
    variant: str
    table: str
    phase: str
    value: float | int | None
    unit: str
    rows: int | None = None
    row_counts: tuple[int, ...] = ()

    def to_record(self) -> dict[str, Any]:
        record: dict[str, Any] = {
            "record": "phase",
            "variant": self.variant,
            "table": self.table,
            "phase": self.phase,
            "value": self.value,
            "unit": self.unit,
        }
        if self.rows is not None:
            record["rows"] = self.rows
        return record


def timing_result(variant: SchemaVariant, phase: str, elapsed_ms: float, **extra) -> PhaseResult:
    return PhaseResult(
        variant=variant.name,
        table=variant.table,
        phase=phase,
        value=round(float(elapsed_ms), 3),
        unit=UNIT_MS,
        **extra,
    )


@dataclass
class RunReport:
    run_id: str
    variants: tuple[SchemaVariant, ...]
    settings: dict[str, Any] = field(default_factory=dict)
    workload_size: int | None = None
    seed: int | None = None
    results: list[PhaseResult] = field(default_factory=list)
    status: str = STATUS_RUNNING
    failure: dict[str, Any] | None = None

    def add(self, result: PhaseResult) -> PhaseResult:
        self.results.append(result)
        return result

    def mark_complete(self) -> None:
        self.status = STATUS_COMPLETE

    def mark_failed(self, phase: str, variant: SchemaVariant | None, exc: BaseException) -> None:
        self.status = STATUS_INCOMPLETE
        self.failure = {
            "phase": phase,
            "variant": None if variant is None else variant.name,
            "table": None if variant is None else variant.table,
            "error_type": type(exc).__name__,
            "error": str(exc),
        }

    @property
    def complete(self) -> bool:
        return self.status == STATUS_COMPLETE

    def result(self, variant_name: str, phase: str) -> PhaseResult | None:
        for result in self.results:
            if result.variant == variant_name and result.phase == phase:
                return result
        return None

    def phases_for(self, variant_name: str) -> list[str]:
        return [result.phase for result in self.results if result.variant == variant_name]


def format_bytes(size: int | None) -> str:
    """Human-scaled size, rounded exactly as ``pg_size_pretty`` rounds it."""
    if size is None:
        return "n/a"
    size = int(size)
    sign = -1 if size < 0 else 1
    magnitude = abs(size)
    last = len(_SIZE_UNITS) - 1
    for index, (name, limit, half_round, bits) in enumerate(_SIZE_UNITS):
        if magnitude < limit or index == last:
            if half_round:
                magnitude = (magnitude + 1) // 2
            return f"{sign * magnitude} {name}"
        # Rounded units carry one extra low bit until the single final rounding.
        magnitude >>= _SIZE_UNITS[index + 1][3] - bits


def _fmt_ms(value: Any) -> str:
    if value is None:
        return "n/a"
    return f"{float(value):.3f} ms"


def _fmt_ratio(base: Any, other: Any) -> str:
    if base is None or other is None:
        return "n/a"
    if float(base) == 0.0:
        return "n/a"
    return f"{float(other) / float(base):.2f}x"


def _phase_label(result: PhaseResult) -> str:
    if result.phase == PHASE_INSERT:
        return "insert time"
    if result.phase == PHASE_SHARD_FILTER:
        return "shard_id filter time (all shards)"
    if result.phase == PHASE_FULL_SCAN:
        return "full table scan time"
    if result.phase == PHASE_INDEX_SIZE:
        return "index size"
    if result.phase == PHASE_BATCH_LOOKUP:
        return f"topic_id + message_id lookup time ({len(result.row_counts)} lookups)"
    return result.phase


def _variant_display(variants: Sequence[SchemaVariant], result: PhaseResult) -> str:
    for variant in variants:
        if variant.name == result.variant:
            return variant.display_name
    return result.table


def render_result_line(variants: Sequence[SchemaVariant], result: PhaseResult) -> str:
    label = f"{_variant_display(variants, result)} {_phase_label(result)}"
    if result.unit == UNIT_BYTES:
        if result.value is None:
            return f"{label}: n/a (not reported by this backend)"
        return f"{label}: {format_bytes(result.value)} ({int(result.value)} bytes)"
    line = f"{label}: {_fmt_ms(result.value)}"
    if result.rows is not None:
        line += f" [rows={result.rows}]"
    return line


def render_comparison_table(report: RunReport) -> list[str]:
    if len(report.variants) < 2:
        return []
    base, *others = report.variants
    lines = [
        "| Phase | " + " | ".join(variant.table for variant in report.variants) + " | "
        + " | ".join(f"{variant.table}/{base.table}" for variant in others) + " |",
        "| :--- | " + " | ".join(["---:"] * (len(report.variants) + len(others))) + " |",
    ]
    for phase in MEASURED_PHASES:
        base_result = report.result(base.name, phase)
        if base_result is None:
            continue
        cells = []
        values = []
        for variant in report.variants:
            result = report.result(variant.name, phase)
            value = None if result is None else result.value
            values.append(value)
            cells.append(format_bytes(value) if base_result.unit == UNIT_BYTES else _fmt_ms(value))
        ratios = [_fmt_ratio(values[0], value) for value in values[1:]]
        lines.append(f"| {phase} | " + " | ".join(cells) + " | " + " | ".join(ratios) + " |")
    return lines


def render_text(report: RunReport) -> str:
    lines: list[str] = []
    if not report.complete:
        lines.append(INCOMPLETE_BANNER)
    lines.append(f"run {report.run_id}: {report.workload_size or 0} tuples, seed {report.seed}")
    for result in report.results:
        lines.append(render_result_line(report.variants, result))
    if report.complete:
        table = render_comparison_table(report)
        if table:
            lines.append("")
            lines.extend(table)
    if report.failure is not None:
        failure = report.failure
        where = failure["phase"] if failure["table"] is None else f"{failure['phase']} on {failure['table']}"
        lines.append(f"FAILED during {where}: {failure['error_type']}: {failure['error']}")
    return "\n".join(lines)


def render_records(report: RunReport) -> list[str]:
    """One JSON document per phase result plus a closing summary record."""
    records = [json_dumps(result.to_record()) for result in report.results]
    summary: dict[str, Any] = {
        "record": "summary",
        "run_id": report.run_id,
        "status": report.status,
        "workload_size": report.workload_size,
        "seed": report.seed,
        "settings": report.settings,
    }
    if report.failure is not None:
        summary["failure"] = report.failure
    records.append(json_dumps(summary))
    return records
