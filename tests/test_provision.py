from dataclasses import replace

import pytest

from shardbench.errors import SchemaError
from shardbench.provision import SchemaProvisioner
from shardbench.schema import VARIANT_A, VARIANT_B
from tests.helpers import table_columns


def test_provision_creates_table_with_variant_column_order(duckdb_backend):
    provisioner = SchemaProvisioner(duckdb_backend)

    provisioner.provision(VARIANT_A)
    provisioner.provision(VARIANT_B)

    assert table_columns(duckdb_backend, "schema1") == ["topic_id", "shard_id", "message_id", "content"]
    assert table_columns(duckdb_backend, "schema2") == ["topic_id", "message_id", "shard_id", "content"]
    assert "idx_schema2_shard" in duckdb_backend.index_names("schema2")
    assert "idx_schema2_shard" not in duckdb_backend.index_names("schema1")


def test_provision_is_idempotent_and_resets_rows(duckdb_backend):
    provisioner = SchemaProvisioner(duckdb_backend)
    provisioner.provision(VARIANT_B)
    duckdb_backend.execute(VARIANT_B.insert_sql("?"), ("t1", 1, 1, "hello"))

    provisioner.provision(VARIANT_B)

    assert duckdb_backend.fetch_scalar(VARIANT_B.count_sql()) == 0
    assert duckdb_backend.index_names("schema2").count("idx_schema2_shard") == 1


def test_teardown_removes_table_and_tolerates_missing_table(duckdb_backend):
    provisioner = SchemaProvisioner(duckdb_backend)
    provisioner.provision(VARIANT_A)

    provisioner.teardown(VARIANT_A)
    assert not duckdb_backend.table_exists("schema1")

    provisioner.teardown(VARIANT_A)
    assert not duckdb_backend.table_exists("schema1")


def test_invalid_column_type_raises_schema_error_with_statement(duckdb_backend):
    broken = replace(
        VARIANT_A,
        columns=(
            ("topic_id", "TEXT"),
            ("shard_id", "NOT_A_TYPE"),
            ("message_id", "INT"),
            ("content", "TEXT"),
        ),
    )

    with pytest.raises(SchemaError) as excinfo:
        SchemaProvisioner(duckdb_backend).provision(broken)

    assert excinfo.value.statement.startswith("CREATE TABLE schema1")
    assert excinfo.value.cause is not None
    assert "schema1" in str(excinfo.value)


def test_closed_connection_raises_schema_error(duckdb_backend):
    duckdb_backend.close()

    with pytest.raises(SchemaError):
        SchemaProvisioner(duckdb_backend).provision(VARIANT_A)
