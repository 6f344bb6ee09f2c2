"""Integration test fixtures — real files on disk but no network."""

from __future__ import annotations

from pathlib import Path

import pytest

from price_ledger.core.config import LedgerConfig, StorageConfig
from price_ledger.core.models import StorageBackend
from price_ledger.ingestion.store import SqliteStore


@pytest.fixture
def integration_config(tmp_path: Path) -> LedgerConfig:
    return LedgerConfig(
        storage=StorageConfig(
            backend=StorageBackend.SQLITE,
            sqlite_path=str(tmp_path / "integration.db"),
        )
    )


@pytest.fixture
async def integration_store(integration_config: LedgerConfig) -> SqliteStore:
    """An initialized file-backed SqliteStore."""
    store = SqliteStore(integration_config.storage)
    await store.initialize()
    yield store
    await store.close()
