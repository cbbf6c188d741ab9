from __future__ import annotations

import logging
from typing import Any, Sequence

from shardbench.backends.base import Backend
from shardbench.errors import BackendUnavailableError
from shardbench.util.deps import require_duckdb
from shardbench.util.logging import log_structured_event

LOG = logging.getLogger(__name__)
IN_MEMORY = ":memory:"


class DuckDBBackend(Backend):
    """In-process engine for dry runs without a server.

    DuckDB keeps no per-table index accounting, so index sizes are unknown.
    """

    name = "duckdb"
    placeholder = "?"

    def __init__(self, connection):
        duckdb = require_duckdb("DuckDBBackend")
        self._conn = connection
        self.errors = (duckdb.Error,)

    @classmethod
    def connect(cls, database: str = IN_MEMORY) -> "DuckDBBackend":
        duckdb = require_duckdb("DuckDBBackend.connect")
        log_structured_event(LOG, logging.INFO, "backend_connect", backend=cls.name, database=database)
        try:
            connection = duckdb.connect(database=str(database))
        except duckdb.Error as exc:
            raise BackendUnavailableError(f"cannot open duckdb database {database!r}", exc) from exc
        return cls(connection)

    def execute(self, sql: str, params: Sequence[Any] | None = None) -> None:
        self._conn.execute(sql, params)

    def execute_batch(self, sql: str, rows: Sequence[Sequence[Any]]) -> None:
        self._conn.executemany(sql, list(rows))

    def fetch_all(self, sql: str, params: Sequence[Any] | None = None) -> list[tuple]:
        return list(self._conn.execute(sql, params).fetchall())

    def index_size_bytes(self, table: str) -> int | None:
        return None

    def index_names(self, table: str) -> list[str]:
        rows = self.fetch_all(
            "SELECT index_name FROM duckdb_indexes() "
            "WHERE schema_name = current_schema() AND table_name = ? ORDER BY index_name",
            (table,),
        )
        return [str(row[0]) for row in rows]

    def close(self) -> None:
        self._conn.close()
