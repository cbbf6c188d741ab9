from __future__ import annotations

import logging

from shardbench.backends.base import Backend
from shardbench.errors import SizeQueryError
from shardbench.report import PHASE_INDEX_SIZE, UNIT_BYTES, PhaseResult
from shardbench.schema import SchemaVariant
from shardbench.util.logging import log_structured_event

LOG = logging.getLogger(__name__)


class SizeReporter:
    def __init__(self, backend: Backend):
        self.backend = backend

    def index_size(self, variant: SchemaVariant) -> PhaseResult:
        """Bytes held by every index on the variant's table, primary key included."""
        try:
            size = self.backend.index_size_bytes(variant.table)
        except self.backend.errors as exc:
            raise SizeQueryError(f"index size query for {variant.table} failed", exc) from exc
        if size is None:
            log_structured_event(
                LOG,
                logging.WARNING,
                "index_size_unavailable",
                variant=variant.name,
                table=variant.table,
                backend=self.backend.name,
            )
        return PhaseResult(
            variant=variant.name,
            table=variant.table,
            phase=PHASE_INDEX_SIZE,
            value=size,
            unit=UNIT_BYTES,
        )
