"""Response envelopes returned by the mint API."""

from __future__ import annotations

from datetime import datetime

from pydantic import Field

from .mint import CamelModel, EnrichedMintRecord, EventStatistics, StoredMint


class SaveMintMeta(CamelModel):
    user_total_mints: int = Field(..., description="Confirmed mints recorded for the owner")
    is_first_mint: bool = Field(..., description="True when the owner has exactly one mint")
    already_recorded: bool = Field(
        False, description="True when the transaction hash was recorded previously"
    )


class SaveMintResponse(CamelModel):
    """Envelope for a mint write."""

    success: bool = True
    message: str
    data: StoredMint
    meta: SaveMintMeta


class Pagination(CamelModel):
    current_page: int
    total_pages: int
    total_count: int
    has_next_page: bool
    has_prev_page: bool
    page_size: int


class OwnerMintsMeta(CamelModel):
    owner_address: str
    first_mint_date: datetime | None = None
    latest_mint_date: datetime | None = None


class OwnerMintsPage(CamelModel):
    nfts: list[EnrichedMintRecord]
    pagination: Pagination
    meta: OwnerMintsMeta


class OwnerMintsResponse(CamelModel):
    """Envelope for a paginated owner lookup."""

    success: bool = True
    data: OwnerMintsPage


class EventStatsSummary(CamelModel):
    total_mints: int
    total_unique_users: int
    events: list[EventStatistics]


class EventStatsResponse(CamelModel):
    """Envelope for aggregate event statistics."""

    success: bool = True
    data: EventStatsSummary
    timestamp: datetime
