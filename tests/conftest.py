"""Shared fixtures: an isolated SQLite database per test and mint payload factories."""

from __future__ import annotations

import itertools
from collections.abc import Callable, Iterator
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from mint_registry.api.main import create_app
from mint_registry.models import MintRecord, MintStore, build_session_factory, session_scope
from mint_registry.schemas.mint import MintRecordCreate, MintStatus, validate_mint_payload
from mint_registry.utils.config import get_settings

CONFIG_DIR = Path(__file__).resolve().parents[1] / "config"

OWNER = "0xAbCdEf0123456789aBcDeF0123456789AbCdEf01"
CONTRACT = "0x" + "1f" * 20


def cid_for(seed: int) -> str:
    return "Qm" + f"{seed:044d}"


def tx_hash_for(seed: int) -> str:
    return "0x" + f"{seed:064x}"


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Iterator[None]:
    """Point every test at its own SQLite file and the repository config templates."""

    monkeypatch.setenv("MINT_DATABASE_URL", f"sqlite:///{tmp_path / 'mints.sqlite'}")
    monkeypatch.setenv("MINT_CONFIG_DIR", str(CONFIG_DIR))
    monkeypatch.delenv("MINT_ENVIRONMENT", raising=False)
    monkeypatch.delenv("MINT_CONFIG_PROFILE", raising=False)

    get_settings(reload=True)
    yield
    monkeypatch.undo()
    get_settings(reload=True)


@pytest.fixture
def owner_address() -> str:
    return OWNER


@pytest.fixture
def make_payload() -> Callable[..., dict[str, Any]]:
    """Factory for valid camelCase mint payloads with fresh identities."""

    counter = itertools.count(1)

    def _factory(**overrides: Any) -> dict[str, Any]:
        seed = next(counter)
        payload: dict[str, Any] = {
            "ownerAddress": OWNER,
            "contentId": cid_for(seed),
            "metadataLocator": f"ipfs://{cid_for(seed)}",
            "tokenId": str(seed),
            "contractAddress": CONTRACT,
            "transactionHash": tx_hash_for(seed),
            "mintedAt": "2026-10-01T12:00:00Z",
        }
        payload.update(overrides)
        return payload

    return _factory


@pytest.fixture
def make_record(make_payload: Callable[..., dict[str, Any]]) -> Callable[..., MintRecordCreate]:
    """Factory for validated records ready for the store."""

    def _factory(**overrides: Any) -> MintRecordCreate:
        return validate_mint_payload(make_payload(**overrides))

    return _factory


@pytest.fixture
def store() -> Iterator[MintStore]:
    """Initialized store bound to the per-test SQLite database."""

    mint_store = MintStore.from_settings(get_settings())
    mint_store.initialize()
    yield mint_store
    mint_store.close()


@pytest.fixture
def app() -> FastAPI:
    return create_app(get_settings())


@pytest.fixture
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def insert_row(store: MintStore) -> Callable[..., None]:
    """Insert mint rows directly, bypassing payload validation.

    Used to seed statuses and event names the write path never produces.
    """

    counter = itertools.count(10_000)
    session_factory = build_session_factory(store.engine)

    def _factory(**overrides: Any) -> None:
        seed = next(counter)
        values: dict[str, Any] = {
            "owner_address": OWNER.lower(),
            "content_id": cid_for(seed),
            "metadata_locator": f"ipfs://{cid_for(seed)}",
            "token_id": str(seed),
            "contract_address": CONTRACT,
            "transaction_hash": tx_hash_for(seed),
            "event_name": "Onchain Summer Lagos",
            "minted_at": datetime(2026, 10, 1, tzinfo=timezone.utc),
            "network_chain_id": 8453,
            "status": MintStatus.CONFIRMED.value,
        }
        values.update(overrides)
        with session_scope(session_factory) as session:
            session.add(MintRecord(**values))

    return _factory
