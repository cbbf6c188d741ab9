import json

import pytest

from shardbench.errors import InsertError
from shardbench.report import (
    INCOMPLETE_BANNER,
    PHASE_BATCH_LOOKUP,
    PHASE_FULL_SCAN,
    PHASE_INDEX_SIZE,
    PHASE_INSERT,
    PHASE_SHARD_FILTER,
    UNIT_BYTES,
    PhaseResult,
    RunReport,
    format_bytes,
    render_comparison_table,
    render_records,
    render_result_line,
    render_text,
    timing_result,
)
from shardbench.schema import DEFAULT_VARIANTS, VARIANT_A, VARIANT_B


@pytest.mark.parametrize(
    "size,expected",
    [
        (None, "n/a"),
        (0, "0 bytes"),
        (8192, "8192 bytes"),
        (10239, "10239 bytes"),
        (16384, "16 kB"),
        (1_048_576, "1024 kB"),
        (20 * 1024 * 1024, "20 MB"),
        (10240, "10 kB"),
        (10751, "10 kB"),
        (10752, "11 kB"),
        (10_485_247, "10239 kB"),
        (10_485_248, "10 MB"),
        (11_009_536, "10 MB"),
        (11_010_048, "11 MB"),
        (20 * 1024**3, "20 GB"),
        (-16384, "-16 kB"),
    ],
)
def test_format_bytes_scales_like_pg_size_pretty(size, expected):
    assert format_bytes(size) == expected


def _size_result(variant, value):
    return PhaseResult(variant=variant.name, table=variant.table, phase=PHASE_INDEX_SIZE, value=value, unit=UNIT_BYTES)


def _complete_report():
    report = RunReport(run_id="run_test", variants=DEFAULT_VARIANTS, workload_size=8, seed=7)
    for variant, factor in ((VARIANT_A, 1.0), (VARIANT_B, 2.0)):
        report.add(timing_result(variant, PHASE_INSERT, 10.0 * factor, rows=8))
        report.add(timing_result(variant, PHASE_SHARD_FILTER, 3.0 * factor, rows=8))
        report.add(timing_result(variant, PHASE_FULL_SCAN, 1.0 * factor, rows=8))
        report.add(_size_result(variant, int(16384 * factor)))
    for variant in DEFAULT_VARIANTS:
        report.add(timing_result(variant, PHASE_BATCH_LOOKUP, 5.0, rows=2, row_counts=(1, 1)))
    report.mark_complete()
    return report


def test_timing_result_rounds_to_microseconds():
    result = timing_result(VARIANT_A, PHASE_INSERT, 12.345678, rows=3)

    assert result.value == 12.346
    assert result.unit == "ms"
    assert result.rows == 3
    assert result.table == "schema1"


def test_result_lines_name_the_table_and_phase():
    insert = timing_result(VARIANT_B, PHASE_INSERT, 1.5, rows=8)
    lookups = timing_result(VARIANT_A, PHASE_BATCH_LOOKUP, 2.0, rows=3, row_counts=(1, 1, 1))

    assert render_result_line(DEFAULT_VARIANTS, insert).startswith("schema2 (topic:msg composite key")
    assert "insert time: 1.500 ms [rows=8]" in render_result_line(DEFAULT_VARIANTS, insert)
    assert "(3 lookups)" in render_result_line(DEFAULT_VARIANTS, lookups)


def test_size_lines_show_pretty_and_raw_bytes():
    line = render_result_line(DEFAULT_VARIANTS, _size_result(VARIANT_A, 16384))
    assert line.endswith("index size: 16 kB (16384 bytes)")

    unknown = render_result_line(DEFAULT_VARIANTS, _size_result(VARIANT_A, None))
    assert unknown.endswith("n/a (not reported by this backend)")


def test_complete_report_has_no_banner_and_a_comparison_table():
    text = render_text(_complete_report())

    assert INCOMPLETE_BANNER not in text
    assert "FAILED" not in text
    assert "| insert | 10.000 ms | 20.000 ms | 2.00x |" in text
    assert "| index_size | 16 kB | 32 kB | 2.00x |" in text


def test_comparison_table_needs_two_variants():
    report = RunReport(run_id="run_single", variants=(VARIANT_A,))
    report.add(timing_result(VARIANT_A, PHASE_INSERT, 1.0))

    assert render_comparison_table(report) == []


def test_incomplete_report_leads_with_banner_and_names_the_failure():
    report = RunReport(run_id="run_partial", variants=DEFAULT_VARIANTS, workload_size=8, seed=7)
    report.add(timing_result(VARIANT_A, PHASE_INSERT, 4.0, rows=8))
    report.mark_failed(PHASE_SHARD_FILTER, VARIANT_A, InsertError("boom"))

    text = render_text(report)
    lines = text.splitlines()

    assert not report.complete
    assert lines[0] == INCOMPLETE_BANNER
    assert lines[-1] == "FAILED during shard_filter on schema1: InsertError: boom"
    assert "| insert |" not in text


def test_failure_without_variant_names_only_the_phase():
    report = RunReport(run_id="run_gen", variants=DEFAULT_VARIANTS)
    report.mark_failed("generate", None, ValueError("bad shape"))

    assert render_text(report).splitlines()[-1] == "FAILED during generate: ValueError: bad shape"


def test_report_lookup_helpers():
    report = _complete_report()

    assert report.result("B", PHASE_FULL_SCAN).value == 2.0
    assert report.result("C", PHASE_FULL_SCAN) is None
    assert report.phases_for("A") == [
        PHASE_INSERT,
        PHASE_SHARD_FILTER,
        PHASE_FULL_SCAN,
        PHASE_INDEX_SIZE,
        PHASE_BATCH_LOOKUP,
    ]


def test_records_are_json_lines_with_a_summary():
    report = _complete_report()
    report.settings = {"backend": "duckdb"}

    records = [json.loads(line) for line in render_records(report)]

    assert len(records) == len(report.results) + 1
    assert records[0] == {
        "record": "phase",
        "variant": "A",
        "table": "schema1",
        "phase": "insert",
        "value": 10.0,
        "unit": "ms",
        "rows": 8,
    }
    summary = records[-1]
    assert summary["record"] == "summary"
    assert summary["status"] == "complete"
    assert summary["seed"] == 7
    assert summary["settings"] == {"backend": "duckdb"}
    assert "failure" not in summary


def test_records_carry_the_failure():
    report = RunReport(run_id="run_partial", variants=DEFAULT_VARIANTS)
    report.mark_failed(PHASE_INSERT, VARIANT_B, InsertError("boom"))

    summary = json.loads(render_records(report)[-1])

    assert summary["status"] == "incomplete"
    assert summary["failure"]["table"] == "schema2"
    assert summary["failure"]["error_type"] == "InsertError"
