"""SQLAlchemy model definition for mint persistence."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import DateTime, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ..schemas.mint import DEFAULT_EVENT_NAME, ChainId, MintStatus
from .base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MintRecord(Base):
    """Database representation of a single recorded mint."""

    __tablename__ = "mint_records"
    __table_args__ = (
        UniqueConstraint("transaction_hash", name="uq_mint_records_transaction_hash"),
        Index("ix_mint_records_owner_created", "owner_address", "created_at"),
        Index("ix_mint_records_event_created", "event_name", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    owner_address: Mapped[str] = mapped_column(String(42), nullable=False, index=True)
    content_id: Mapped[str] = mapped_column(String(64), nullable=False)
    metadata_locator: Mapped[str] = mapped_column(String(80), nullable=False)
    token_id: Mapped[str] = mapped_column(String(128), nullable=False)
    contract_address: Mapped[str] = mapped_column(String(42), nullable=False)
    transaction_hash: Mapped[str] = mapped_column(String(66), nullable=False)
    event_name: Mapped[str] = mapped_column(
        String(128), nullable=False, default=DEFAULT_EVENT_NAME.value
    )
    minted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    network_chain_id: Mapped[int] = mapped_column(
        Integer, nullable=False, default=int(ChainId.BASE_MAINNET), index=True
    )
    image_url: Mapped[str | None] = mapped_column(String(255), nullable=True)
    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default=MintStatus.CONFIRMED.value, index=True
    )
    user_agent: Mapped[str | None] = mapped_column(String(512), nullable=True)
    caller_ip: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False
    )

    def __repr__(self) -> str:
        """Return a developer-friendly string representation."""

        return (
            f"<MintRecord id={self.id} owner={self.owner_address} "
            f"tx={self.transaction_hash} status={self.status}>"
        )
