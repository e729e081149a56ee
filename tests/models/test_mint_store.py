"""Tests for the SQLAlchemy-backed mint store."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

import pytest
from sqlalchemy import create_engine

from mint_registry.exceptions import DuplicateKeyError, RecordNotFoundError, StorageError
from mint_registry.models import MintStore
from mint_registry.schemas.mint import MintStatus

OTHER_OWNER = "0x" + "22" * 20
UNKNOWN_TX_HASH = "0x" + "ab" * 32


def test_insert_returns_stored_record(store: MintStore, make_record, owner_address) -> None:
    record = make_record(userAgent="pytest", callerIp="127.0.0.1")

    stored = store.insert(record)

    assert stored.id > 0
    assert stored.transaction_hash == record.transaction_hash
    assert stored.owner_address == owner_address.lower()
    assert stored.status is MintStatus.CONFIRMED
    assert stored.minted_at == datetime(2026, 10, 1, 12, 0, tzinfo=timezone.utc)
    assert stored.created_at.tzinfo is not None


def test_insert_rejects_reused_transaction_hash(store: MintStore, make_record) -> None:
    record = make_record()
    store.insert(record)

    with pytest.raises(DuplicateKeyError) as exc_info:
        store.insert(record)

    assert exc_info.value.field == "transactionHash"
    assert exc_info.value.value == record.transaction_hash


def test_insert_or_get_existing_is_idempotent(
    store: MintStore, make_record, owner_address
) -> None:
    record = make_record()

    first, created = store.insert_or_get_existing(record)
    second, created_again = store.insert_or_get_existing(record)

    assert created is True
    assert created_again is False
    assert second.id == first.id
    assert store.count_by_owner(owner_address) == 1


def test_insert_or_get_existing_returns_concurrent_winner(
    store: MintStore, make_record, monkeypatch: pytest.MonkeyPatch
) -> None:
    record = make_record()
    winner = store.insert(record)

    # First lookup misses as if the winning write landed after the pre-check.
    original_lookup = store.get_by_transaction_hash
    calls: list[str] = []

    def racing_lookup(transaction_hash: str):
        calls.append(transaction_hash)
        if len(calls) == 1:
            return None
        return original_lookup(transaction_hash)

    monkeypatch.setattr(store, "get_by_transaction_hash", racing_lookup)

    stored, created = store.insert_or_get_existing(record)

    assert created is False
    assert stored.id == winner.id
    assert len(calls) == 2


def test_get_by_transaction_hash_is_case_insensitive(store: MintStore, make_record) -> None:
    record = make_record()
    store.insert(record)

    found = store.get_by_transaction_hash("0x" + record.transaction_hash[2:].upper())

    assert found is not None
    assert found.transaction_hash == record.transaction_hash
    assert store.get_by_transaction_hash(UNKNOWN_TX_HASH) is None


def test_count_by_owner_counts_confirmed_only(
    store: MintStore, make_record, insert_row, owner_address
) -> None:
    store.insert(make_record())
    store.insert(make_record())
    insert_row(status=MintStatus.PENDING.value)
    insert_row(owner_address=OTHER_OWNER)

    assert store.count_by_owner(owner_address) == 2
    assert store.count_by_owner(owner_address.lower()) == 2
    assert store.count_by_owner(OTHER_OWNER) == 1


def test_find_by_owner_paginates_newest_first(
    store: MintStore, make_record, owner_address
) -> None:
    inserted = [store.insert(make_record()) for _ in range(5)]

    first_page, total = store.find_by_owner(owner_address, page=1, page_size=2)
    last_page, _ = store.find_by_owner(owner_address, page=3, page_size=2)
    beyond, total_beyond = store.find_by_owner(owner_address, page=4, page_size=2)

    assert total == 5
    assert [record.id for record in first_page] == [inserted[4].id, inserted[3].id]
    assert [record.id for record in last_page] == [inserted[0].id]
    assert beyond == []
    assert total_beyond == 5


def test_find_by_owner_rejects_non_positive_paging(store: MintStore, owner_address) -> None:
    with pytest.raises(ValueError):
        store.find_by_owner(owner_address, page=0, page_size=10)
    with pytest.raises(ValueError):
        store.find_by_owner(owner_address, page=1, page_size=0)


def test_event_statistics_groups_confirmed_records(store: MintStore, insert_row) -> None:
    insert_row(event_name="A", minted_at=datetime(2026, 10, 2, tzinfo=timezone.utc))
    insert_row(event_name="A", minted_at=datetime(2026, 10, 4, tzinfo=timezone.utc))
    insert_row(
        event_name="A",
        owner_address=OTHER_OWNER,
        minted_at=datetime(2026, 10, 3, tzinfo=timezone.utc),
    )
    insert_row(event_name="B")
    insert_row(event_name="B", status=MintStatus.FAILED.value)

    stats = store.event_statistics()

    assert [stat.event_name for stat in stats] == ["A", "B"]
    event_a, event_b = stats
    assert event_a.total_mints == 3
    assert event_a.unique_owner_count == 2
    assert event_a.first_mint == datetime(2026, 10, 2, tzinfo=timezone.utc)
    assert event_a.last_mint == datetime(2026, 10, 4, tzinfo=timezone.utc)
    assert event_b.total_mints == 1
    assert event_b.unique_owner_count == 1


def test_event_statistics_empty_store(store: MintStore) -> None:
    assert store.event_statistics() == []


def test_update_status_changes_visibility(store: MintStore, make_record, owner_address) -> None:
    record = make_record()
    store.insert(record)

    updated = store.update_status(record.transaction_hash, MintStatus.FAILED)

    assert updated.status is MintStatus.FAILED
    assert store.count_by_owner(owner_address) == 0


def test_update_status_unknown_hash(store: MintStore) -> None:
    with pytest.raises(RecordNotFoundError):
        store.update_status(UNKNOWN_TX_HASH, MintStatus.FAILED)


def test_ping_reports_connected_store(store: MintStore) -> None:
    assert store.ping() is True


def test_unreachable_database_raises_storage_error(tmp_path: Path, owner_address) -> None:
    missing_dir = tmp_path / "does-not-exist"
    unreachable = MintStore(create_engine(f"sqlite:///{missing_dir / 'mints.sqlite'}"))

    assert unreachable.ping() is False
    with pytest.raises(StorageError) as exc_info:
        unreachable.count_by_owner(owner_address)
    assert exc_info.value.operation == "count_by_owner"

    unreachable.close()
