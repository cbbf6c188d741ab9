"""Schema variants under comparison.

Each variant is static configuration: a table, its column order, its primary
key, any auxiliary indexes and the statement template used to insert a
:class:`~shardbench.workload.MessageKey`.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from shardbench.workload import KEY_COLUMNS, MessageKey

CONTENT_COLUMN = "content"
CONTENT_PAYLOAD = "hello"
DEFAULT_INSERT_TEMPLATE = "INSERT INTO {table} ({columns}) VALUES ({placeholders})"
ON_CONFLICT_FAIL = "fail"
ON_CONFLICT_SKIP = "skip"
VALID_ON_CONFLICT = frozenset({ON_CONFLICT_FAIL, ON_CONFLICT_SKIP})
_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def validate_identifier(value: str, *, kind: str = "identifier") -> str:
    text = str(value)
    if not _IDENTIFIER_RE.match(text):
        raise ValueError(f"invalid SQL {kind}: {text!r}")
    return text


@dataclass(frozen=True)
class IndexDefinition:
    name: str
    columns: tuple[str, ...]


@dataclass(frozen=True)
class SchemaVariant:
    name: str
    label: str
    table: str
    columns: tuple[tuple[str, str], ...]
    primary_key: tuple[str, ...]
    indexes: tuple[IndexDefinition, ...] = ()
    insert_template: str = DEFAULT_INSERT_TEMPLATE

    def __post_init__(self):
        validate_identifier(self.table, kind="table name")
        names = self.column_names
        for column in names:
            validate_identifier(column, kind="column name")
        missing = [column for column in KEY_COLUMNS if column not in names]
        if missing:
            raise ValueError(f"variant {self.name} lacks key columns: {', '.join(missing)}")
        for column in self.primary_key:
            if column not in names:
                raise ValueError(f"primary key column {column!r} is not a column of {self.table}")
        for index in self.indexes:
            validate_identifier(index.name, kind="index name")
            for column in index.columns:
                if column not in names:
                    raise ValueError(f"index {index.name} references unknown column {column!r}")

    @property
    def column_names(self) -> tuple[str, ...]:
        return tuple(name for name, _sql_type in self.columns)

    @property
    def display_name(self) -> str:
        return f"{self.table} ({self.label})"

    def create_table_sql(self) -> str:
        column_defs = [f"{name} {sql_type}" for name, sql_type in self.columns]
        if self.primary_key:
            column_defs.append(f"PRIMARY KEY ({', '.join(self.primary_key)})")
        return f"CREATE TABLE {self.table} ({', '.join(column_defs)})"

    def create_index_sql(self) -> list[str]:
        return [
            f"CREATE INDEX {index.name} ON {self.table} ({', '.join(index.columns)})"
            for index in self.indexes
        ]

    def drop_table_sql(self) -> str:
        return f"DROP TABLE IF EXISTS {self.table}"

    def insert_sql(self, placeholder: str, *, on_conflict: str = ON_CONFLICT_FAIL) -> str:
        if on_conflict not in VALID_ON_CONFLICT:
            raise ValueError(f"on_conflict must be one of {sorted(VALID_ON_CONFLICT)}")
        statement = self.insert_template.format(
            table=self.table,
            columns=", ".join(self.column_names),
            placeholders=", ".join(placeholder for _ in self.columns),
        )
        if on_conflict == ON_CONFLICT_SKIP:
            statement += " ON CONFLICT DO NOTHING"
        return statement

    def row_for(self, key: MessageKey) -> tuple:
        values = key._asdict()
        return tuple(values.get(name, CONTENT_PAYLOAD) for name in self.column_names)

    def count_sql(self) -> str:
        return f"SELECT COUNT(*) FROM {self.table}"

    def shard_count_sql(self, placeholder: str) -> str:
        return f"SELECT COUNT(*) FROM {self.table} WHERE shard_id = {placeholder}"

    def lookup_sql(self, placeholder: str) -> str:
        return f"SELECT * FROM {self.table} WHERE topic_id = {placeholder} AND message_id = {placeholder}"


VARIANT_A = SchemaVariant(
    name="A",
    label="topic:shard:msg composite key",
    table="schema1",
    columns=(
        ("topic_id", "TEXT"),
        ("shard_id", "INT"),
        ("message_id", "INT"),
        (CONTENT_COLUMN, "TEXT"),
    ),
    primary_key=("topic_id", "shard_id", "message_id"),
)

VARIANT_B = SchemaVariant(
    name="B",
    label="topic:msg composite key, separate shard index",
    table="schema2",
    columns=(
        ("topic_id", "TEXT"),
        ("message_id", "INT"),
        ("shard_id", "INT"),
        (CONTENT_COLUMN, "TEXT"),
    ),
    primary_key=("topic_id", "message_id"),
    indexes=(IndexDefinition(name="idx_schema2_shard", columns=("shard_id",)),),
)

DEFAULT_VARIANTS: tuple[SchemaVariant, ...] = (VARIANT_A, VARIANT_B)
