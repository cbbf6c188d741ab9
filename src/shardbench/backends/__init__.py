from __future__ import annotations

from shardbench.backends.base import Backend
from shardbench.errors import ConfigError

BACKEND_POSTGRES = "postgres"
BACKEND_DUCKDB = "duckdb"
VALID_BACKENDS = frozenset({BACKEND_POSTGRES, BACKEND_DUCKDB})


def create_backend(settings) -> Backend:
    """Open the backend named by ``settings.run.backend``."""
    backend_name = settings.run.backend
    if backend_name == BACKEND_POSTGRES:
        from shardbench.backends.postgres import PostgresBackend

        return PostgresBackend.connect(settings.connection)
    if backend_name == BACKEND_DUCKDB:
        from shardbench.backends.duckdb import DuckDBBackend

        return DuckDBBackend.connect(settings.run.duckdb_path)
    raise ConfigError(f"unknown backend {backend_name!r}; expected one of {sorted(VALID_BACKENDS)}")


__all__ = [
    "Backend",
    "BACKEND_DUCKDB",
    "BACKEND_POSTGRES",
    "VALID_BACKENDS",
    "create_backend",
]
