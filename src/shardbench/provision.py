from __future__ import annotations

import logging

from shardbench.backends.base import Backend
from shardbench.errors import SchemaError
from shardbench.schema import SchemaVariant
from shardbench.util.logging import log_structured_event

LOG = logging.getLogger(__name__)


class SchemaProvisioner:
    """Creates and drops variant tables. Both operations are idempotent."""

    def __init__(self, backend: Backend):
        self.backend = backend

    def _run(self, variant: SchemaVariant, statement: str) -> None:
        try:
            self.backend.execute(statement)
        except self.backend.errors as exc:
            raise SchemaError(
                f"DDL failed for {variant.table}",
                statement=statement,
                cause=exc,
            ) from exc

    def provision(self, variant: SchemaVariant) -> None:
        statements = [variant.drop_table_sql(), variant.create_table_sql(), *variant.create_index_sql()]
        for statement in statements:
            self._run(variant, statement)
        log_structured_event(
            LOG,
            logging.INFO,
            "schema_provisioned",
            variant=variant.name,
            table=variant.table,
            indexes=len(variant.indexes),
        )

    def teardown(self, variant: SchemaVariant) -> None:
        self._run(variant, variant.drop_table_sql())
        log_structured_event(LOG, logging.INFO, "schema_dropped", variant=variant.name, table=variant.table)
