"""Prometheus metrics for text extraction.

Tracks which formats come in, which strategy ends up producing text, and
how long extraction takes, so scanned-PDF rates and fallback frequency are
visible in production.
"""

import time
from collections.abc import Iterator
from contextlib import contextmanager

from prometheus_client import Counter, Histogram

EXTRACTIONS_TOTAL = Counter(
    "extraction_requests_total",
    "Extraction requests by format and outcome",
    ["format", "outcome"],  # outcome: a strategy name on success, a failure kind otherwise
)

STRATEGY_ATTEMPTS_TOTAL = Counter(
    "extraction_strategy_attempts_total",
    "PDF cascade strategy attempts",
    ["strategy", "result"],  # result: success, insufficient, error, encrypted
)

EXTRACTION_DURATION = Histogram(
    "extraction_duration_seconds",
    "Time spent extracting text from one file",
    ["format"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
)


def record_extraction(fmt: str, outcome: str) -> None:
    EXTRACTIONS_TOTAL.labels(format=fmt, outcome=outcome).inc()


def record_strategy_attempt(strategy: str, result: str) -> None:
    STRATEGY_ATTEMPTS_TOTAL.labels(strategy=strategy, result=result).inc()


@contextmanager
def track_duration(fmt: str) -> Iterator[None]:
    """Observe wall-clock time of the enclosed block."""
    start = time.perf_counter()
    try:
        yield
    finally:
        EXTRACTION_DURATION.labels(format=fmt).observe(time.perf_counter() - start)
