"""Shared FastAPI dependencies."""

from __future__ import annotations

from fastapi import Request

from ..models.store import MintStore
from ..utils.config import GlobalSettings


def get_store(request: Request) -> MintStore:
    """Return the store handle created during application startup."""

    return request.app.state.store


def get_app_settings(request: Request) -> GlobalSettings:
    return request.app.state.settings
