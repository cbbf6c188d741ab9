from __future__ import annotations

from shardbench.util.logging import log_structured_event, new_job_id
from shardbench.util.timing import Timing, timed

__all__ = [
    "Timing",
    "new_job_id",
    "log_structured_event",
    "timed",
]
