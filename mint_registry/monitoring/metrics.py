"""Prometheus metrics definitions for Mint_Registry."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

MINT_WRITES = Counter(
    "mint_writes_total",
    "Total mint write requests by outcome.",
    labelnames=("outcome",),
)

MINT_QUERIES = Counter(
    "mint_queries_total",
    "Total read queries served by operation.",
    labelnames=("operation",),
)

STORE_ERRORS = Counter(
    "mint_store_errors_total",
    "Total storage failures grouped by store operation.",
    labelnames=("operation",),
)

STORE_OPERATION_DURATION = Histogram(
    "mint_store_operation_seconds",
    "Distribution of store operation durations in seconds.",
    labelnames=("operation",),
    buckets=(0.001, 0.005, 0.01, 0.05, 0.1, 0.25, 0.5, 1, 2, 5),
)


def record_mint_write(outcome: str) -> None:
    """Increment the mint write counter for ``created``, ``duplicate`` or ``rejected``."""

    MINT_WRITES.labels(outcome=outcome).inc()


def record_query(operation: str) -> None:
    MINT_QUERIES.labels(operation=operation).inc()


def record_store_error(operation: str) -> None:
    """Increment the storage failure counter for the given operation."""

    STORE_ERRORS.labels(operation=operation).inc()


def observe_store_duration(operation: str, duration_seconds: float) -> None:
    STORE_OPERATION_DURATION.labels(operation=operation).observe(max(duration_seconds, 0.0))
