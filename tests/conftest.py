"""
Pytest fixtures for StampID tests. Uses a temporary SQLite DB and an in-memory TTL store.
"""

from __future__ import annotations

import pytest

from backend_stampid.stamp.ledger import LedgerLog

CONTRACT = "0x1111111111111111111111111111111111111111"
TX_REF = "0x" + "ab" * 32


class FakeLedger:
    """LedgerReader stand-in: canned logs per tx_ref, or an exception to raise."""

    def __init__(self, logs: dict[str, list[LedgerLog]] | None = None, error: Exception | None = None) -> None:
        self.logs = dict(logs or {})
        self.error = error
        self.calls: list[str] = []

    def get_transaction_logs(self, tx_ref: str) -> list[LedgerLog] | None:
        self.calls.append(tx_ref)
        if self.error is not None:
            raise self.error
        return self.logs.get(tx_ref)


@pytest.fixture
def stampid_db(tmp_path, monkeypatch):
    """
    Point the database layer at a temporary SQLite file and create tables.
    Resets engine and settings caches so each test gets a fresh DB. Unset DATABASE_URL so we use SQLite.
    """
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.delenv("STAMPID_DB_URL", raising=False)
    monkeypatch.delenv("REDIS_URL", raising=False)
    monkeypatch.delenv("STAMPID_ADMIN_TOKEN", raising=False)
    monkeypatch.delenv("AUTH_DOMAIN", raising=False)
    monkeypatch.setenv("STAMPID_DB_PATH", str(tmp_path / "stampid.db"))
    monkeypatch.setenv("STAMP_CONTRACT_ADDRESS", CONTRACT)

    from backend_stampid.config import get_settings
    from backend_stampid import database

    get_settings.cache_clear()
    database.reset_engine_for_test()
    database.init_db()
    yield database
    database.reset_engine_for_test()
    get_settings.cache_clear()


@pytest.fixture
def ttl_store():
    """Fresh in-memory TTL store installed as the process-wide store."""
    from backend_stampid.ratelimit import InMemoryTTLStore, reset_ttl_store_for_test

    store = InMemoryTTLStore()
    reset_ttl_store_for_test(store)
    yield store
    reset_ttl_store_for_test()


@pytest.fixture
def fake_ledger():
    return FakeLedger()


@pytest.fixture
def client(stampid_db, ttl_store, fake_ledger):
    """FastAPI TestClient with the ledger replaced by fake_ledger. Depends on stampid_db so the temp DB is set first."""
    from fastapi.testclient import TestClient

    from backend_stampid.api_server.middleware import get_ledger_reader
    from backend_stampid.api_server.server import app

    app.dependency_overrides[get_ledger_reader] = lambda: fake_ledger
    yield TestClient(app)
    app.dependency_overrides.clear()
