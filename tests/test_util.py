import json

import pytest

from shardbench.errors import BenchmarkError, InsertError, RunAborted, SchemaError
from shardbench.util.deps import MISSING_DEP_TEMPLATE, require_duckdb
from shardbench.util.json import json_dumps
from shardbench.util.timing import timed


def test_error_message_includes_cause():
    cause = KeyError("table")
    exc = InsertError("cannot render insert statement for schema1", cause)

    assert str(exc) == "cannot render insert statement for schema1: KeyError: 'table'"
    assert isinstance(exc, BenchmarkError)


def test_schema_error_keeps_the_failing_statement():
    exc = SchemaError("DDL failed for schema1", statement="CREATE TABLE schema1 ()")

    assert exc.statement == "CREATE TABLE schema1 ()"
    assert str(exc) == "DDL failed for schema1"


def test_run_aborted_carries_phase_context():
    exc = RunAborted("insert failed on schema1", phase="insert", variant=None, report=object())

    assert exc.phase == "insert"
    assert exc.cause is None


def test_timed_records_elapsed_even_on_error():
    with pytest.raises(RuntimeError):
        with timed() as timing:
            raise RuntimeError("boom")

    assert timing.elapsed_ms >= 0.0
    assert timing.elapsed_ms == pytest.approx(timing.seconds * 1000.0)


def test_json_helpers_return_text():
    text = json_dumps({"phase": "insert", "value": 1.5})

    assert isinstance(text, str)
    assert json.loads(text) == {"phase": "insert", "value": 1.5}


def test_require_duckdb_returns_module_when_installed():
    duckdb = pytest.importorskip("duckdb")

    assert require_duckdb("tests") is duckdb
    assert "pip install duckdb" in MISSING_DEP_TEMPLATE.format(pkg="duckdb", api_name="tests")


def test_json_dumps_handles_sets_and_non_string_keys():
    decoded = json.loads(json_dumps({"variants": frozenset({"B", "A"}), 7: "seed"}))

    assert decoded == {"variants": ["A", "B"], "7": "seed"}


def test_missing_driver_raises_import_error_with_install_hint(monkeypatch):
    from shardbench.util import deps

    monkeypatch.setattr(deps, "_optional_module", lambda module_name: None)

    with pytest.raises(ImportError, match=r"pip install psycopg\[binary\]"):
        deps.require_psycopg("PostgresBackend")
