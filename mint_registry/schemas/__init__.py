"""Schemas package initialization."""
from .mint import (
    ChainId,
    EnrichedMintRecord,
    EventName,
    EventStatistics,
    MintRecordCreate,
    MintStatus,
    StoredMint,
    enrich_record,
    validate_mint_payload,
)
from .responses import (
    EventStatsResponse,
    OwnerMintsResponse,
    Pagination,
    SaveMintResponse,
)

__all__ = [
    "ChainId",
    "EnrichedMintRecord",
    "EventName",
    "EventStatistics",
    "MintRecordCreate",
    "MintStatus",
    "StoredMint",
    "enrich_record",
    "validate_mint_payload",
    "EventStatsResponse",
    "OwnerMintsResponse",
    "Pagination",
    "SaveMintResponse",
]
