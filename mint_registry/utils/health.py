"""Component health checks behind ``GET /api/health``."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from ..models.store import MintStore


def _now() -> datetime:
    return datetime.now(timezone.utc)


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


class ComponentHealth(BaseModel):
    """Result of one component check."""

    name: str
    status: HealthStatus
    message: str | None = Field(None, description="Human-readable detail or failure reason")
    checked_at: datetime = Field(default_factory=_now)


class SystemHealth(BaseModel):
    """Worst-of roll-up across every registered component."""

    status: HealthStatus
    checked_at: datetime = Field(default_factory=_now)
    components: dict[str, ComponentHealth] = Field(default_factory=dict)
    uptime_seconds: float


_SEVERITY = {HealthStatus.HEALTHY: 0, HealthStatus.DEGRADED: 1, HealthStatus.UNHEALTHY: 2}


class HealthChecker:
    """Runs registered component checks and folds them into one status.

    Checks may be coroutine functions or plain callables; plain callables run
    on a private thread pool. A check that raises is reported as unhealthy.
    """

    def __init__(self) -> None:
        self._checks: dict[str, Callable[[], Any]] = {}
        self._started_at = _now()
        self._executor = ThreadPoolExecutor(thread_name_prefix="mint-registry-health")

    def register_check(self, name: str, check: Callable[[], Any]) -> None:
        """Register ``check`` under ``name``; it must return :class:`ComponentHealth`."""

        self._checks[name] = check

    def _unhealthy(self, name: str, message: str) -> ComponentHealth:
        return ComponentHealth(name=name, status=HealthStatus.UNHEALTHY, message=message)

    async def check_component(self, name: str) -> ComponentHealth:
        check = self._checks.get(name)
        if check is None:
            return self._unhealthy(name, f"Component '{name}' not registered")

        try:
            if asyncio.iscoroutinefunction(check):
                return await check()
            return await asyncio.get_running_loop().run_in_executor(self._executor, check)
        except Exception as exc:
            return self._unhealthy(name, f"Health check failed: {exc}")

    async def check_all(self, timeout: float = 5.0) -> SystemHealth:
        """Run every check concurrently; if ``timeout`` elapses all are marked unhealthy."""

        names = list(self._checks)
        try:
            results = await asyncio.wait_for(
                asyncio.gather(*(self.check_component(name) for name in names)),
                timeout=timeout,
            )
        except asyncio.TimeoutError:
            results = [self._unhealthy(name, "Health check timed out") for name in names]

        components = dict(zip(names, results))
        overall = max(
            (component.status for component in components.values()),
            key=_SEVERITY.__getitem__,
            default=HealthStatus.HEALTHY,
        )
        return SystemHealth(
            status=overall,
            components=components,
            uptime_seconds=self.uptime_seconds(),
        )

    def uptime_seconds(self) -> float:
        return (_now() - self._started_at).total_seconds()

    def shutdown(self) -> None:
        self._executor.shutdown(wait=False)


def database_check(store: MintStore) -> Callable[[], ComponentHealth]:
    """Build a check reporting whether ``store`` can reach its database."""

    def _check() -> ComponentHealth:
        if store.ping():
            return ComponentHealth(
                name="database",
                status=HealthStatus.HEALTHY,
                message="Database connection successful",
            )
        return ComponentHealth(
            name="database",
            status=HealthStatus.UNHEALTHY,
            message="Database connection failed",
        )

    return _check
