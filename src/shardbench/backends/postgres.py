from __future__ import annotations

import logging
from typing import Any, Sequence

from shardbench.backends.base import Backend
from shardbench.errors import BackendUnavailableError
from shardbench.util.deps import require_psycopg
from shardbench.util.logging import log_structured_event

LOG = logging.getLogger(__name__)


class PostgresBackend(Backend):
    name = "postgres"
    placeholder = "%s"

    def __init__(self, connection):
        psycopg = require_psycopg("PostgresBackend")
        self._conn = connection
        self.errors = (psycopg.Error,)

    @classmethod
    def connect(cls, settings) -> "PostgresBackend":
        psycopg = require_psycopg("PostgresBackend.connect")
        log_structured_event(
            LOG,
            logging.INFO,
            "backend_connect",
            backend=cls.name,
            host=settings.host,
            port=settings.port,
            dbname=settings.dbname,
            user=settings.user,
        )
        try:
            connection = psycopg.connect(
                host=settings.host,
                port=settings.port,
                user=settings.user,
                password=settings.password,
                dbname=settings.dbname,
                connect_timeout=settings.connect_timeout_seconds,
                autocommit=True,
            )
        except psycopg.Error as exc:
            raise BackendUnavailableError(
                f"cannot connect to postgres at {settings.host}:{settings.port}/{settings.dbname}",
                exc,
            ) from exc
        return cls(connection)

    def execute(self, sql: str, params: Sequence[Any] | None = None) -> None:
        with self._conn.cursor() as cur:
            cur.execute(sql, params)

    def execute_batch(self, sql: str, rows: Sequence[Sequence[Any]]) -> None:
        # psycopg pipelines executemany, so the whole batch is one submission.
        with self._conn.cursor() as cur:
            cur.executemany(sql, rows)

    def fetch_all(self, sql: str, params: Sequence[Any] | None = None) -> list[tuple]:
        with self._conn.cursor() as cur:
            cur.execute(sql, params)
            return list(cur.fetchall())

    def index_size_bytes(self, table: str) -> int | None:
        value = self.fetch_scalar("SELECT pg_indexes_size(%s::regclass)", (table,))
        return None if value is None else int(value)

    def index_names(self, table: str) -> list[str]:
        rows = self.fetch_all(
            "SELECT indexname FROM pg_indexes "
            "WHERE schemaname = current_schema() AND tablename = %s ORDER BY indexname",
            (table,),
        )
        return [str(row[0]) for row in rows]

    def close(self) -> None:
        self._conn.close()
