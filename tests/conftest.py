from __future__ import annotations

from pathlib import Path

import pytest

from tests.live_test_config import LIVE_TESTS_ENABLED


def pytest_ignore_collect(collection_path, config):  # pragma: no cover - pytest hook
    del config
    if LIVE_TESTS_ENABLED:
        return None
    path = Path(str(collection_path))
    return True if path.name.startswith("live_") else None


@pytest.fixture
def duckdb_backend():
    pytest.importorskip("duckdb")
    from shardbench.backends.duckdb import DuckDBBackend

    backend = DuckDBBackend.connect()
    try:
        yield backend
    finally:
        backend.close()
