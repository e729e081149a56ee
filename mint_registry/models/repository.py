"""Repository helpers for persistence models."""

from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy import distinct, func, select
from sqlalchemy.orm import Session, defer

from ..schemas.mint import EventStatistics, MintRecordCreate, MintStatus
from .mint_record import MintRecord


class MintRecordRepository:
    """Data access helpers for :class:`MintRecord`.

    Address and hash arguments are lowercased before querying so lookups are
    case-insensitive against the normalized stored values.
    """

    def __init__(self, session: Session):
        """Store the SQLAlchemy session used for persistence operations."""

        self._session = session

    def create(self, record_data: MintRecordCreate) -> MintRecord:
        """Persist a new mint record and return the mapped instance."""

        record = MintRecord(
            owner_address=record_data.owner_address,
            content_id=record_data.content_id,
            metadata_locator=record_data.metadata_locator,
            token_id=record_data.token_id,
            contract_address=record_data.contract_address,
            transaction_hash=record_data.transaction_hash,
            event_name=record_data.event_name.value,
            minted_at=record_data.minted_at,
            network_chain_id=int(record_data.network_chain_id),
            image_url=record_data.image_url,
            status=record_data.status.value,
            user_agent=record_data.user_agent,
            caller_ip=record_data.caller_ip,
        )
        self._session.add(record)
        self._session.flush()
        return record

    def get_by_transaction_hash(self, transaction_hash: str) -> MintRecord | None:
        statement = select(MintRecord).where(
            MintRecord.transaction_hash == transaction_hash.lower()
        )
        return self._session.scalars(statement).first()

    def count_by_owner(self, owner_address: str) -> int:
        """Count confirmed mints held by ``owner_address``."""

        statement = (
            select(func.count())
            .select_from(MintRecord)
            .where(
                MintRecord.owner_address == owner_address.lower(),
                MintRecord.status == MintStatus.CONFIRMED.value,
            )
        )
        return int(self._session.scalar(statement) or 0)

    def find_by_owner(
        self,
        owner_address: str,
        *,
        offset: int,
        limit: int,
    ) -> Sequence[MintRecord]:
        """Return confirmed mints for an owner, most recently recorded first."""

        statement = (
            select(MintRecord)
            .options(defer(MintRecord.user_agent), defer(MintRecord.caller_ip))
            .where(
                MintRecord.owner_address == owner_address.lower(),
                MintRecord.status == MintStatus.CONFIRMED.value,
            )
            .order_by(MintRecord.created_at.desc(), MintRecord.id.desc())
            .offset(offset)
            .limit(limit)
        )
        return self._session.scalars(statement).all()

    def event_statistics(self) -> list[EventStatistics]:
        """Aggregate confirmed mints per event name."""

        statement = (
            select(
                MintRecord.event_name.label("event_name"),
                func.count(MintRecord.id).label("total_mints"),
                func.count(distinct(MintRecord.owner_address)).label("unique_owner_count"),
                func.min(MintRecord.minted_at).label("first_mint"),
                func.max(MintRecord.minted_at).label("last_mint"),
            )
            .where(MintRecord.status == MintStatus.CONFIRMED.value)
            .group_by(MintRecord.event_name)
            .order_by(MintRecord.event_name)
        )
        return [EventStatistics.model_validate(row) for row in self._session.execute(statement)]

    def update_status(self, transaction_hash: str, status: MintStatus) -> MintRecord | None:
        record = self.get_by_transaction_hash(transaction_hash)
        if record is None:
            return None
        record.status = status.value
        self._session.flush()
        return record
