"""Tests for Prometheus metrics helpers."""

from __future__ import annotations

from prometheus_client import REGISTRY

from mint_registry.monitoring.metrics import (
    observe_store_duration,
    record_mint_write,
    record_query,
    record_store_error,
)


def _get_metric_value(metric_name: str, labels: dict[str, str] | None = None) -> float:
    """Helper to retrieve current metric value from registry."""
    labels = labels or {}
    value = REGISTRY.get_sample_value(metric_name, labels)
    return float(value) if value is not None else 0.0


def test_record_mint_write_increments_counter() -> None:
    before = _get_metric_value("mint_writes_total", {"outcome": "created"})
    record_mint_write("created")
    after = _get_metric_value("mint_writes_total", {"outcome": "created"})

    assert after == before + 1


def test_record_query_increments_counter() -> None:
    before = _get_metric_value("mint_queries_total", {"operation": "event_stats"})
    record_query("event_stats")
    after = _get_metric_value("mint_queries_total", {"operation": "event_stats"})

    assert after == before + 1


def test_record_store_error_increments_counter() -> None:
    before = _get_metric_value("mint_store_errors_total", {"operation": "insert"})
    record_store_error("insert")
    after = _get_metric_value("mint_store_errors_total", {"operation": "insert"})

    assert after == before + 1


def test_observe_store_duration_clamps_negative_values() -> None:
    labels = {"operation": "metrics-test"}
    count_before = _get_metric_value("mint_store_operation_seconds_count", labels)
    sum_before = _get_metric_value("mint_store_operation_seconds_sum", labels)

    observe_store_duration("metrics-test", -1.0)
    observe_store_duration("metrics-test", 0.25)

    assert _get_metric_value("mint_store_operation_seconds_count", labels) == count_before + 2
    assert _get_metric_value("mint_store_operation_seconds_sum", labels) == sum_before + 0.25


def test_rejected_write_is_counted(client, make_payload) -> None:
    before = _get_metric_value("mint_writes_total", {"outcome": "rejected"})

    client.post("/api/nfts", json=make_payload(ownerAddress="0xbad"))

    assert _get_metric_value("mint_writes_total", {"outcome": "rejected"}) == before + 1


def test_store_operations_are_timed(store, make_record) -> None:
    labels = {"operation": "insert"}
    before = _get_metric_value("mint_store_operation_seconds_count", labels)

    store.insert(make_record())

    assert _get_metric_value("mint_store_operation_seconds_count", labels) == before + 1
