import logging
from dataclasses import replace

import pytest

from shardbench.config.settings import HarnessSettings, RunSettings, WorkloadSettings
from shardbench.errors import GenerationError, InsertError, RunAborted
from shardbench.report import (
    PHASE_BATCH_LOOKUP,
    PHASE_FULL_SCAN,
    PHASE_INDEX_SIZE,
    PHASE_INSERT,
    PHASE_SHARD_FILTER,
)
from shardbench.runner import Runner
from shardbench.schema import VARIANT_A, VARIANT_B

EXPECTED_PHASES = [PHASE_INSERT, PHASE_SHARD_FILTER, PHASE_FULL_SCAN, PHASE_INDEX_SIZE, PHASE_BATCH_LOOKUP]


def _settings(**workload_changes):
    workload = replace(
        WorkloadSettings(
            num_topics=2,
            num_shards=3,
            num_messages=4,
            msg_id_range=100,
            lookup_batch_size=5,
            random_seed=7,
        ),
        **workload_changes,
    )
    return HarnessSettings(workload=workload, run=RunSettings(backend="duckdb"))


def test_full_run_measures_both_variants(duckdb_backend):
    report = Runner(duckdb_backend, _settings(), run_id="run_full").run()

    assert report.complete
    assert report.failure is None
    assert report.run_id == "run_full"
    assert report.workload_size == 8
    assert report.seed == 7
    for name in ("A", "B"):
        assert report.phases_for(name) == EXPECTED_PHASES
        assert report.result(name, PHASE_FULL_SCAN).rows == 8
        assert report.result(name, PHASE_SHARD_FILTER).rows == 8
        assert report.result(name, PHASE_INDEX_SIZE).value is None
    assert report.result("A", PHASE_BATCH_LOOKUP).row_counts == report.result("B", PHASE_BATCH_LOOKUP).row_counts
    assert report.result("A", PHASE_BATCH_LOOKUP).rows == 5


def test_variant_a_is_fully_measured_before_variant_b(duckdb_backend):
    report = Runner(duckdb_backend, _settings()).run()

    order = [(result.variant, result.phase) for result in report.results]
    assert order[:4] == [("A", phase) for phase in EXPECTED_PHASES[:4]]
    assert order[4:8] == [("B", phase) for phase in EXPECTED_PHASES[:4]]
    assert order[8:] == [("A", PHASE_BATCH_LOOKUP), ("B", PHASE_BATCH_LOOKUP)]


def test_tables_are_kept_unless_drop_after(duckdb_backend):
    Runner(duckdb_backend, _settings()).run()
    assert duckdb_backend.table_exists("schema1")
    assert duckdb_backend.table_exists("schema2")

    settings = replace(_settings(), run=RunSettings(backend="duckdb", drop_after=True))
    Runner(duckdb_backend, settings).run()
    assert not duckdb_backend.table_exists("schema1")
    assert not duckdb_backend.table_exists("schema2")


def test_same_seed_gives_same_row_content(duckdb_backend):
    runner = Runner(duckdb_backend, _settings())

    assert runner.generate() == runner.generate()


def test_failed_insert_aborts_the_run(duckdb_backend):
    broken = replace(VARIANT_A, insert_template="INSERT INTO {table} ({columns}) VALUES {placeholders}")
    runner = Runner(duckdb_backend, _settings(), variants=(broken, VARIANT_B))
    shard_calls = []
    original = runner.queries.shard_filter_all
    runner.queries.shard_filter_all = lambda variant: shard_calls.append(variant) or original(variant)

    with pytest.raises(RunAborted) as excinfo:
        runner.run()

    aborted = excinfo.value
    assert aborted.phase == PHASE_INSERT
    assert aborted.variant is broken
    assert isinstance(aborted.cause, InsertError)
    assert shard_calls == []
    assert not duckdb_backend.table_exists("schema2")

    report = aborted.report
    assert not report.complete
    assert report.results == []
    assert report.failure["phase"] == PHASE_INSERT
    assert report.failure["table"] == "schema1"
    assert report.failure["error_type"] == "InsertError"


def test_generation_failure_aborts_before_any_ddl(duckdb_backend):
    runner = Runner(duckdb_backend, _settings(num_messages=200, msg_id_range=100))

    with pytest.raises(RunAborted) as excinfo:
        runner.run()

    assert excinfo.value.phase == "generate"
    assert excinfo.value.variant is None
    assert isinstance(excinfo.value.cause, GenerationError)
    assert excinfo.value.report.failure["table"] is None
    assert not duckdb_backend.table_exists("schema1")


def test_phase_failure_is_logged(duckdb_backend, caplog):
    runner = Runner(duckdb_backend, _settings(num_messages=200, msg_id_range=100), run_id="run_logged")

    with caplog.at_level(logging.ERROR, logger="shardbench.runner"):
        with pytest.raises(RunAborted):
            runner.run()

    assert any('"event":"phase_failed"' in message and "run_logged" in message for message in caplog.messages)


def test_runner_requires_a_variant(duckdb_backend):
    with pytest.raises(ValueError):
        Runner(duckdb_backend, _settings(), variants=())


def test_unexpected_errors_are_not_translated(duckdb_backend):
    runner = Runner(duckdb_backend, _settings(), variants=(VARIANT_B,))

    def explode(variant):
        raise RuntimeError("bug")

    runner.sizes.index_size = explode
    with pytest.raises(RuntimeError):
        runner.run()
