"""Driver seam shared by every component that talks to the database."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Sequence


class Backend(ABC):
    """A single blocking database connection.

    ``errors`` holds the driver exception types; components translate exactly
    those into their own error kinds and let anything else propagate.
    """

    name: str = "abstract"
    placeholder: str = "?"
    errors: tuple[type[BaseException], ...] = ()

    @abstractmethod
    def execute(self, sql: str, params: Sequence[Any] | None = None) -> None:
        pass

    @abstractmethod
    def execute_batch(self, sql: str, rows: Sequence[Sequence[Any]]) -> None:
        """Submit ``sql`` once per row as a single batched execution."""

    @abstractmethod
    def fetch_all(self, sql: str, params: Sequence[Any] | None = None) -> list[tuple]:
        pass

    @abstractmethod
    def index_size_bytes(self, table: str) -> int | None:
        """Total size of every index on ``table``; ``None`` when the engine cannot tell."""

    @abstractmethod
    def index_names(self, table: str) -> list[str]:
        pass

    @abstractmethod
    def close(self) -> None:
        pass

    def fetch_scalar(self, sql: str, params: Sequence[Any] | None = None):
        rows = self.fetch_all(sql, params)
        if not rows:
            return None
        return rows[0][0]

    def table_exists(self, table: str) -> bool:
        count = self.fetch_scalar(
            "SELECT COUNT(*) FROM information_schema.tables "
            f"WHERE table_schema = current_schema() AND table_name = {self.placeholder}",
            (table,),
        )
        return bool(count)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False
