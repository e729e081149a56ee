"""Mint record API endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends, Query, Request, Response, status

from ...models.store import MintStore
from ...schemas.responses import EventStatsResponse, OwnerMintsResponse, SaveMintResponse
from ...utils.config import GlobalSettings
from ..dependencies import get_app_settings, get_store
from ..handlers import event_stats, list_owner_mints, save_mint
from ..rate_limit import client_ip

router = APIRouter()


@router.post("", status_code=status.HTTP_201_CREATED)
def create_mint(
    request: Request,
    response: Response,
    payload: Any = Body(...),
    store: MintStore = Depends(get_store),
    settings: GlobalSettings = Depends(get_app_settings),
) -> SaveMintResponse:
    """
    Record a minted NFT.

    Answers 201 for a new record and 200 with the stored record when the
    transaction hash was already recorded.
    """
    envelope, created = save_mint(
        store,
        payload,
        user_agent=request.headers.get("user-agent"),
        caller_ip=client_ip(request, trust_forwarded_for=settings.trust_forwarded_for),
    )
    if not created:
        response.status_code = status.HTTP_200_OK
    return envelope


# Registered before the wallet route so "stats" is not read as an address.
@router.get("/stats/event")
def get_event_stats(store: MintStore = Depends(get_store)) -> EventStatsResponse:
    """Aggregate confirmed mints per event."""

    return event_stats(store)


@router.get("/{wallet_address}")
def get_owner_mints(
    wallet_address: str,
    page: str | None = Query(None),
    limit: str | None = Query(None),
    store: MintStore = Depends(get_store),
    settings: GlobalSettings = Depends(get_app_settings),
) -> OwnerMintsResponse:
    """Paginated confirmed mints for a wallet, newest first."""

    return list_owner_mints(
        store,
        wallet_address,
        page,
        limit,
        default_page_size=settings.default_page_size,
        max_page_size=settings.max_page_size,
    )
