from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from time import perf_counter
from typing import Iterator


@dataclass
class Timing:
    seconds: float = 0.0

    @property
    def elapsed_ms(self) -> float:
        return self.seconds * 1000.0


@contextmanager
def timed() -> Iterator[Timing]:
    """Wall-clock window around the body; filled in on exit, including on error."""
    timing = Timing()
    start = perf_counter()
    try:
        yield timing
    finally:
        timing.seconds = perf_counter() - start
