"""Timing helpers for report stages."""

from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Dict, Iterator


def elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


@contextmanager
def timed(stage: str, durations: Dict[str, int]) -> Iterator[None]:
    """Record how long the wrapped block took under ``durations[stage]``."""
    start = time.perf_counter()
    try:
        yield
    finally:
        durations[stage] = elapsed_ms(start)
