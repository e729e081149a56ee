"""Pydantic schemas for mint records, their validation and derived views."""

from __future__ import annotations

import re
from collections.abc import Mapping
from datetime import datetime, timedelta, timezone
from enum import Enum, IntEnum
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationInfo,
    computed_field,
    field_validator,
)
from pydantic import (
    ValidationError as PydanticValidationError,
)
from pydantic.alias_generators import to_camel

from ..exceptions import ValidationError

ADDRESS_PATTERN = re.compile(r"^0x[a-fA-F0-9]{40}$")
TX_HASH_PATTERN = re.compile(r"^0x[a-fA-F0-9]{64}$")
CID_PATTERN = re.compile(r"^Qm[a-zA-Z0-9]{44}$")
METADATA_LOCATOR_PATTERN = re.compile(r"^ipfs://Qm[a-zA-Z0-9]{44}$")
IMAGE_URL_PATTERN = re.compile(r"^https://.*\.pinata\.cloud/ipfs/Qm[a-zA-Z0-9]{44}$")

GATEWAY_BASE_URL = "https://gateway.pinata.cloud/ipfs/"
MAINNET_EXPLORER_URL = "https://basescan.org/tx/"
TESTNET_EXPLORER_URL = "https://sepolia.basescan.org/tx/"

ANALYTICS_MAX_LENGTH = 512


class EventName(str, Enum):
    """Events a mint may be recorded against."""

    ONCHAIN_SUMMER_LAGOS = "Onchain Summer Lagos"


DEFAULT_EVENT_NAME = EventName.ONCHAIN_SUMMER_LAGOS


class ChainId(IntEnum):
    """Known network chain identifiers."""

    BASE_MAINNET = 8453
    BASE_SEPOLIA = 84532


class MintStatus(str, Enum):
    """Lifecycle status of a mint record."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    FAILED = "failed"


def is_valid_address(value: Any) -> bool:
    return isinstance(value, str) and ADDRESS_PATTERN.match(value) is not None


def as_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime, treating naive values as UTC."""

    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def build_gateway_image_url(content_id: str) -> str:
    return f"{GATEWAY_BASE_URL}{content_id}"


def build_block_explorer_url(transaction_hash: str, network_chain_id: int) -> str:
    """Return the explorer link for a transaction; unknown chains use the testnet host."""

    if network_chain_id == ChainId.BASE_MAINNET:
        base_url = MAINNET_EXPLORER_URL
    else:
        base_url = TESTNET_EXPLORER_URL
    return f"{base_url}{transaction_hash}"


def days_since(minted_at: datetime, now: datetime | None = None) -> int:
    """Whole days elapsed between ``minted_at`` and ``now`` (floored)."""

    current = as_utc(now) if now is not None else datetime.now(timezone.utc)
    return (current - as_utc(minted_at)) // timedelta(days=1)


class CamelModel(BaseModel):
    """Base model exchanging camelCase keys with API clients."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class MintRecordCreate(CamelModel):
    """Validated, normalized mint record ready for persistence."""

    owner_address: str
    content_id: str
    metadata_locator: str
    token_id: str = Field(..., min_length=1)
    contract_address: str
    transaction_hash: str
    event_name: EventName = DEFAULT_EVENT_NAME
    minted_at: datetime
    network_chain_id: ChainId = ChainId.BASE_MAINNET
    image_url: str | None = None
    status: MintStatus = MintStatus.CONFIRMED
    user_agent: str | None = None
    caller_ip: str | None = None

    @field_validator("owner_address", "contract_address", "transaction_hash", mode="before")
    @classmethod
    def _lowercase_identifiers(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator("token_id", mode="before")
    @classmethod
    def _stringify_token_id(cls, value: Any) -> Any:
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("user_agent", "caller_ip", mode="before")
    @classmethod
    def _truncate_analytics(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value[:ANALYTICS_MAX_LENGTH]
        return value

    @field_validator("owner_address")
    @classmethod
    def _validate_owner_address(cls, value: str) -> str:
        if not ADDRESS_PATTERN.match(value):
            raise ValueError("Invalid Ethereum address format")
        return value

    @field_validator("contract_address")
    @classmethod
    def _validate_contract_address(cls, value: str) -> str:
        if not ADDRESS_PATTERN.match(value):
            raise ValueError("Invalid contract address format")
        return value

    @field_validator("transaction_hash")
    @classmethod
    def _validate_transaction_hash(cls, value: str) -> str:
        if not TX_HASH_PATTERN.match(value):
            raise ValueError("Invalid transaction hash format")
        return value

    @field_validator("content_id")
    @classmethod
    def _validate_content_id(cls, value: str) -> str:
        if not CID_PATTERN.match(value):
            raise ValueError("Invalid IPFS CID format")
        return value

    @field_validator("metadata_locator")
    @classmethod
    def _validate_metadata_locator(cls, value: str) -> str:
        if not METADATA_LOCATOR_PATTERN.match(value):
            raise ValueError("Invalid IPFS URI format")
        return value

    @field_validator("image_url")
    @classmethod
    def _validate_image_url(cls, value: str | None, info: ValidationInfo) -> str | None:
        if not value:
            return None
        if not IMAGE_URL_PATTERN.match(value):
            raise ValueError("Invalid Pinata image URL format")
        content_id = info.data.get("content_id")
        if content_id and not value.endswith(f"/ipfs/{content_id}"):
            raise ValueError("Image URL does not reference the record's contentId")
        return value

    @field_validator("minted_at")
    @classmethod
    def _normalize_minted_at(cls, value: datetime) -> datetime:
        return as_utc(value)


_FIELD_ALIASES = {
    name: field.alias or name for name, field in MintRecordCreate.model_fields.items()
}


def _collect_errors(exc: PydanticValidationError) -> list[dict[str, str]]:
    errors: list[dict[str, str]] = []
    for error in exc.errors():
        location = error.get("loc") or ("__root__",)
        field = _FIELD_ALIASES.get(str(location[0]), str(location[0]))
        context = error.get("ctx") or {}
        if error.get("type") == "value_error" and "error" in context:
            message = str(context["error"])
        else:
            message = error.get("msg", "Invalid value")
        errors.append({"field": field, "message": message})
    return errors


def validate_mint_payload(payload: Mapping[str, Any]) -> MintRecordCreate:
    """Validate a camelCase payload into a normalized record.

    Raises:
        ValidationError: listing every field that failed its constraint.
    """
    try:
        return MintRecordCreate.model_validate(dict(payload))
    except PydanticValidationError as exc:
        raise ValidationError(_collect_errors(exc)) from exc


class StoredMint(CamelModel):
    """Mint record as read back from the store, without analytics fields."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    owner_address: str
    content_id: str
    metadata_locator: str
    token_id: str
    contract_address: str
    transaction_hash: str
    event_name: str
    minted_at: datetime
    network_chain_id: int
    image_url: str | None = None
    status: MintStatus
    created_at: datetime
    updated_at: datetime

    @field_validator("minted_at", "created_at", "updated_at")
    @classmethod
    def _ensure_utc(cls, value: datetime) -> datetime:
        return as_utc(value)

    @computed_field(alias="gatewayImageUrl")  # type: ignore[prop-decorator]
    @property
    def gateway_image_url(self) -> str:
        return build_gateway_image_url(self.content_id)

    @computed_field(alias="blockExplorerUrl")  # type: ignore[prop-decorator]
    @property
    def block_explorer_url(self) -> str:
        return build_block_explorer_url(self.transaction_hash, self.network_chain_id)


class EnrichedMintRecord(StoredMint):
    """Stored record decorated with read-time values for list responses."""

    days_since_mint: int


def enrich_record(record: StoredMint, now: datetime | None = None) -> EnrichedMintRecord:
    """Derive the list view of a stored record."""

    data = record.model_dump(exclude={"gateway_image_url", "block_explorer_url"})
    return EnrichedMintRecord(**data, days_since_mint=days_since(record.minted_at, now))


class EventStatistics(CamelModel):
    """Aggregate figures for one event across confirmed records."""

    model_config = ConfigDict(from_attributes=True)

    event_name: str
    total_mints: int
    unique_owner_count: int
    first_mint: datetime | None = None
    last_mint: datetime | None = None

    @field_validator("first_mint", "last_mint")
    @classmethod
    def _ensure_utc(cls, value: datetime | None) -> datetime | None:
        return as_utc(value) if value is not None else None
