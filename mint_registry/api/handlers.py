"""Request handlers shaping store calls into API envelopes.

These functions know nothing about HTTP; routes pass in the store handle and
the raw inputs, and map raised :mod:`mint_registry.exceptions` to status codes.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

from ..exceptions import InvalidFormatError, MissingFieldsError, ValidationError
from ..models.store import MintStore
from ..monitoring.metrics import record_mint_write, record_query
from ..schemas.mint import (
    CID_PATTERN,
    DEFAULT_EVENT_NAME,
    MintStatus,
    build_gateway_image_url,
    enrich_record,
    is_valid_address,
    validate_mint_payload,
)
from ..schemas.responses import (
    EventStatsResponse,
    EventStatsSummary,
    OwnerMintsMeta,
    OwnerMintsPage,
    OwnerMintsResponse,
    Pagination,
    SaveMintMeta,
    SaveMintResponse,
)
from ..utils.logging import log_mint_event, setup_logger

logger = setup_logger(__name__, context={"component": "MintHandlers"})

REQUIRED_FIELDS: tuple[str, ...] = (
    "ownerAddress",
    "contentId",
    "metadataLocator",
    "tokenId",
    "contractAddress",
    "transactionHash",
)


def _is_missing(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def find_missing_fields(payload: Mapping[str, Any]) -> list[str]:
    """Return required keys that are absent or blank, in declaration order."""

    return [name for name in REQUIRED_FIELDS if _is_missing(payload.get(name))]


def parse_positive_int(value: Any, default: int) -> int:
    """Parse a query value leniently; anything unusable yields ``default``."""

    if value is None:
        return default
    try:
        parsed = int(str(value).strip())
    except (TypeError, ValueError):
        return default
    return parsed if parsed >= 1 else default


def _build_candidate(
    payload: Mapping[str, Any],
    *,
    user_agent: str | None,
    caller_ip: str | None,
    now: datetime,
) -> dict[str, Any]:
    """Assemble the record to validate, applying write-time defaults.

    ``eventName``/``mintedAt`` may arrive top-level or inside a legacy
    ``eventData`` object.
    """
    event_data = payload.get("eventData")
    if not isinstance(event_data, Mapping):
        event_data = {}

    candidate: dict[str, Any] = {name: payload[name] for name in REQUIRED_FIELDS}
    candidate["eventName"] = (
        payload.get("eventName") or event_data.get("eventName") or DEFAULT_EVENT_NAME.value
    )
    candidate["mintedAt"] = payload.get("mintedAt") or event_data.get("mintedAt") or now
    candidate["status"] = MintStatus.CONFIRMED.value
    candidate["userAgent"] = user_agent
    candidate["callerIp"] = caller_ip

    if payload.get("networkChainId") is not None:
        candidate["networkChainId"] = payload["networkChainId"]

    content_id = candidate["contentId"]
    if isinstance(content_id, str) and CID_PATTERN.match(content_id):
        candidate["imageUrl"] = build_gateway_image_url(content_id)

    return candidate


def save_mint(
    store: MintStore,
    payload: Any,
    *,
    user_agent: str | None = None,
    caller_ip: str | None = None,
    now: datetime | None = None,
) -> tuple[SaveMintResponse, bool]:
    """
    Record a mint claim, returning the envelope and whether a record was created.

    A transaction hash that is already stored is not an error: the existing
    record is returned with ``alreadyRecorded`` set.

    Raises:
        MissingFieldsError: required keys absent or blank
        ValidationError: one or more fields failed their constraints
        StorageError: the store is unavailable
    """
    if not isinstance(payload, Mapping):
        record_mint_write("rejected")
        raise ValidationError([{"field": "body", "message": "Request body must be a JSON object"}])

    missing = find_missing_fields(payload)
    if missing:
        record_mint_write("rejected")
        log_mint_event(logger, "rejected", missing=missing)
        raise MissingFieldsError(missing, list(REQUIRED_FIELDS))

    candidate = _build_candidate(
        payload,
        user_agent=user_agent,
        caller_ip=caller_ip,
        now=now or datetime.now(timezone.utc),
    )
    try:
        record = validate_mint_payload(candidate)
    except ValidationError as exc:
        record_mint_write("rejected")
        log_mint_event(
            logger,
            "rejected",
            owner=str(payload.get("ownerAddress")),
            errors=[error["field"] for error in exc.errors],
        )
        raise

    stored, created = store.insert_or_get_existing(record)
    total = store.count_by_owner(record.owner_address)

    outcome = "created" if created else "duplicate"
    record_mint_write(outcome)
    log_mint_event(
        logger,
        outcome,
        owner=record.owner_address,
        tx_hash=record.transaction_hash,
        user_total=total,
    )

    response = SaveMintResponse(
        message="NFT saved successfully" if created else "NFT already recorded",
        data=stored,
        meta=SaveMintMeta(
            user_total_mints=total,
            is_first_mint=total == 1,
            already_recorded=not created,
        ),
    )
    return response, created


def list_owner_mints(
    store: MintStore,
    owner_address: str,
    page: Any = None,
    limit: Any = None,
    *,
    default_page_size: int = 10,
    max_page_size: int = 100,
    now: datetime | None = None,
) -> OwnerMintsResponse:
    """
    Return one page of an owner's confirmed mints, newest first.

    ``limit`` is clamped to ``max_page_size``.

    Raises:
        InvalidFormatError: ``owner_address`` is not a 0x-prefixed 20-byte hex string
        StorageError: the store is unavailable
    """
    if not is_valid_address(owner_address):
        raise InvalidFormatError("walletAddress", "Invalid wallet address format")

    page_number = parse_positive_int(page, 1)
    page_size = min(parse_positive_int(limit, default_page_size), max_page_size)

    records, total = store.find_by_owner(owner_address, page_number, page_size)
    record_query("list_by_owner")

    total_pages = math.ceil(total / page_size)
    current_time = now or datetime.now(timezone.utc)
    nfts = [enrich_record(record, current_time) for record in records]
    minted = [nft.minted_at for nft in nfts]

    return OwnerMintsResponse(
        data=OwnerMintsPage(
            nfts=nfts,
            pagination=Pagination(
                current_page=page_number,
                total_pages=total_pages,
                total_count=total,
                has_next_page=page_number < total_pages,
                has_prev_page=page_number > 1,
                page_size=page_size,
            ),
            meta=OwnerMintsMeta(
                owner_address=owner_address.lower(),
                first_mint_date=min(minted) if minted else None,
                latest_mint_date=max(minted) if minted else None,
            ),
        )
    )


def event_stats(store: MintStore, *, now: datetime | None = None) -> EventStatsResponse:
    """Per-event breakdown of confirmed mints plus grand totals."""

    events = store.event_statistics()
    record_query("event_stats")

    return EventStatsResponse(
        data=EventStatsSummary(
            total_mints=sum(event.total_mints for event in events),
            total_unique_users=sum(event.unique_owner_count for event in events),
            events=events,
        ),
        timestamp=now or datetime.now(timezone.utc),
    )
