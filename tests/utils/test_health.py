"""Tests for health checking utilities."""

from __future__ import annotations

import asyncio

import pytest

from mint_registry.utils.health import (
    ComponentHealth,
    HealthChecker,
    HealthStatus,
    database_check,
)


@pytest.mark.asyncio
async def test_health_checker_runs_sync_and_async_checks():
    checker = HealthChecker()

    def sync_check() -> ComponentHealth:
        return ComponentHealth(name="sync", status=HealthStatus.HEALTHY)

    async def async_check() -> ComponentHealth:
        return ComponentHealth(name="async", status=HealthStatus.DEGRADED)

    checker.register_check("sync", sync_check)
    checker.register_check("async", async_check)

    system = await checker.check_all()
    checker.shutdown()

    assert system.status == HealthStatus.DEGRADED
    assert system.components["sync"].status == HealthStatus.HEALTHY
    assert system.components["async"].status == HealthStatus.DEGRADED
    assert system.uptime_seconds >= 0


@pytest.mark.asyncio
async def test_failing_check_reports_unhealthy():
    checker = HealthChecker()

    def broken() -> ComponentHealth:
        raise RuntimeError("boom")

    checker.register_check("broken", broken)

    result = await checker.check_component("broken")
    checker.shutdown()

    assert result.status == HealthStatus.UNHEALTHY
    assert "boom" in (result.message or "")


@pytest.mark.asyncio
async def test_unregistered_component_is_unhealthy():
    checker = HealthChecker()

    result = await checker.check_component("missing")

    assert result.status == HealthStatus.UNHEALTHY
    assert "not registered" in (result.message or "")


@pytest.mark.asyncio
async def test_check_all_times_out():
    checker = HealthChecker()

    async def slow() -> ComponentHealth:
        await asyncio.sleep(1)
        return ComponentHealth(name="slow", status=HealthStatus.HEALTHY)

    checker.register_check("slow", slow)

    system = await checker.check_all(timeout=0.01)

    assert system.status == HealthStatus.UNHEALTHY
    assert system.components["slow"].message == "Health check timed out"


@pytest.mark.asyncio
async def test_no_checks_is_healthy():
    system = await HealthChecker().check_all()

    assert system.status == HealthStatus.HEALTHY
    assert system.components == {}


def test_database_check_reflects_ping(store):
    assert database_check(store)().status == HealthStatus.HEALTHY


def test_database_check_reports_failed_ping(store, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(store, "ping", lambda: False)

    result = database_check(store)()

    assert result.status == HealthStatus.UNHEALTHY
    assert result.message == "Database connection failed"
