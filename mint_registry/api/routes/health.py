"""Health check and service banner endpoints."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Request

from ...utils.health import HealthChecker, HealthStatus

router = APIRouter()

ENDPOINTS: dict[str, str] = {
    "POST /api/nfts": "Save minted NFT data",
    "GET /api/nfts/:walletAddress": "Get user NFTs",
    "GET /api/nfts/stats/event": "Get event statistics",
    "GET /api/health": "Health check",
}

AVAILABLE_ROUTES: tuple[str, ...] = ("GET /", *ENDPOINTS.keys())


@router.get("/")
async def service_banner() -> dict[str, Any]:
    return {
        "message": "Mint Registry API",
        "status": "running",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "endpoints": ENDPOINTS,
    }


@router.get("/api/health")
async def health_check(request: Request) -> dict[str, Any]:
    """Liveness with database connectivity; always answers 200."""

    checker: HealthChecker = request.app.state.health_checker
    system = await checker.check_all()
    database = system.components.get("database")
    connected = database is not None and database.status == HealthStatus.HEALTHY

    return {
        "status": system.status.value,
        "database": "connected" if connected else "disconnected",
        "timestamp": system.checked_at.isoformat(),
        "uptime": system.uptime_seconds,
        "components": {
            name: component.model_dump(mode="json")
            for name, component in system.components.items()
        },
    }
