"""Simple span helper for recording call timings."""
from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Iterator

from .metrics import MetricsSink


@contextmanager
def span(metrics: MetricsSink, name: str, **tags: str) -> Iterator[None]:
    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed_ms = (time.perf_counter() - start) * 1000
        metrics.observe(f"{name}.ms", round(elapsed_ms, 2), **tags)


__all__ = ["span"]
