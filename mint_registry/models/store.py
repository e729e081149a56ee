"""Process-wide store handle wrapping the SQLAlchemy engine."""

from __future__ import annotations

import time
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import Engine, text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..exceptions import DuplicateKeyError, RecordNotFoundError, StorageError
from ..monitoring.metrics import observe_store_duration, record_store_error
from ..schemas.mint import EventStatistics, MintRecordCreate, MintStatus, StoredMint
from ..utils.config import GlobalSettings
from ..utils.logging import setup_logger
from .base import Base, build_session_factory, create_engine_from_settings, session_scope
from .repository import MintRecordRepository

logger = setup_logger(__name__, context={"component": "MintStore"})


def _is_transaction_hash_conflict(exc: IntegrityError) -> bool:
    message = str(exc.orig).lower()
    return "transaction_hash" in message


class MintStore:
    """Durable persistence and querying over mint records.

    One instance owns one engine and its connection pool. Build it once at
    startup, call :meth:`initialize`, and :meth:`close` it on shutdown.
    Storage failures surface as :class:`StorageError`; nothing is retried.
    """

    def __init__(self, engine: Engine) -> None:
        self._engine = engine
        self._session_factory = build_session_factory(engine)

    @classmethod
    def from_settings(cls, settings: GlobalSettings) -> MintStore:
        return cls(create_engine_from_settings(settings))

    @property
    def engine(self) -> Engine:
        return self._engine

    @contextmanager
    def _operation(self, name: str, *, identity: str | None = None) -> Iterator[Session]:
        """Run a unit of work, translating driver errors into store errors."""

        started = time.perf_counter()
        try:
            with session_scope(self._session_factory) as session:
                yield session
        except IntegrityError as exc:
            if _is_transaction_hash_conflict(exc):
                raise DuplicateKeyError("transactionHash", identity) from exc
            record_store_error(name)
            logger.error("Integrity failure during %s: %s", name, exc.orig)
            raise StorageError(f"Store operation '{name}' failed", operation=name) from exc
        except SQLAlchemyError as exc:
            record_store_error(name)
            logger.error("Store operation %s failed: %s", name, exc)
            raise StorageError(
                f"Store operation '{name}' failed: {exc}", operation=name
            ) from exc
        finally:
            observe_store_duration(name, time.perf_counter() - started)

    def initialize(self) -> None:
        """Create missing tables and indexes."""

        try:
            Base.metadata.create_all(bind=self._engine)
        except SQLAlchemyError as exc:
            record_store_error("initialize")
            raise StorageError(f"Unable to initialize schema: {exc}", operation="initialize") from exc

    def close(self) -> None:
        """Release every pooled connection."""

        self._engine.dispose()

    def ping(self) -> bool:
        try:
            with self._engine.connect() as connection:
                connection.execute(text("SELECT 1"))
        except SQLAlchemyError as exc:
            logger.warning("Database ping failed: %s", exc)
            return False
        return True

    def insert(self, record: MintRecordCreate) -> StoredMint:
        """Persist ``record``; a reused transaction hash raises :class:`DuplicateKeyError`."""

        with self._operation("insert", identity=record.transaction_hash) as session:
            created = MintRecordRepository(session).create(record)
            return StoredMint.model_validate(created)

    def insert_or_get_existing(self, record: MintRecordCreate) -> tuple[StoredMint, bool]:
        """Idempotent write keyed on transaction hash.

        Returns the stored record and whether this call created it. When a
        concurrent writer wins the unique constraint, the winner's record is
        returned.
        """
        existing = self.get_by_transaction_hash(record.transaction_hash)
        if existing is not None:
            return existing, False

        try:
            return self.insert(record), True
        except DuplicateKeyError:
            existing = self.get_by_transaction_hash(record.transaction_hash)
            if existing is None:
                raise
            logger.info(
                "Concurrent write already recorded transaction",
                extra={"tx_hash": record.transaction_hash, "status": "duplicate"},
            )
            return existing, False

    def get_by_transaction_hash(self, transaction_hash: str) -> StoredMint | None:
        with self._operation("get_by_transaction_hash") as session:
            found = MintRecordRepository(session).get_by_transaction_hash(transaction_hash)
            return StoredMint.model_validate(found) if found is not None else None

    def count_by_owner(self, owner_address: str) -> int:
        with self._operation("count_by_owner") as session:
            return MintRecordRepository(session).count_by_owner(owner_address)

    def find_by_owner(
        self,
        owner_address: str,
        page: int = 1,
        page_size: int = 10,
    ) -> tuple[list[StoredMint], int]:
        """Return one page of an owner's confirmed mints and their total count.

        Pages past the end are empty; their offset never reaches the database.
        """

        if page < 1 or page_size < 1:
            raise ValueError("page and page_size must be positive integers")

        offset = (page - 1) * page_size
        with self._operation("find_by_owner") as session:
            repository = MintRecordRepository(session)
            total = repository.count_by_owner(owner_address)
            if offset >= total:
                return [], total
            rows = repository.find_by_owner(owner_address, offset=offset, limit=page_size)
            records = [StoredMint.model_validate(row) for row in rows]
        return records, total

    def event_statistics(self) -> list[EventStatistics]:
        with self._operation("event_statistics") as session:
            return MintRecordRepository(session).event_statistics()

    def update_status(self, transaction_hash: str, status: MintStatus) -> StoredMint:
        """Move a record to ``status``; unknown hashes raise :class:`RecordNotFoundError`."""

        with self._operation("update_status") as session:
            updated = MintRecordRepository(session).update_status(transaction_hash, status)
            if updated is None:
                raise RecordNotFoundError(
                    f"No mint recorded for transaction {transaction_hash.lower()}"
                )
            return StoredMint.model_validate(updated)
