"""Shared pytest fixtures for price-ledger."""

import io
import zipfile

import pytest

from price_ledger.core.config import ArchiveConfig, StorageConfig
from price_ledger.core.models import StorageBackend
from price_ledger.ingestion.ledger import PriceLedger
from price_ledger.ingestion.store import SqliteStore

HEADER = "id,name,category,price,create_date\n"


def make_zip(members: dict[str, str | bytes]) -> bytes:
    """Build an in-memory zip archive from name -> content."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as zf:
        for name, content in members.items():
            zf.writestr(name, content)
    return buffer.getvalue()


def read_zip_entry(raw: bytes, name: str = "data.csv") -> str:
    with zipfile.ZipFile(io.BytesIO(raw)) as zf:
        return zf.read(name).decode("utf-8")


@pytest.fixture(name="make_zip")
def make_zip_fixture():
    return make_zip


@pytest.fixture(name="read_zip_entry")
def read_zip_entry_fixture():
    return read_zip_entry


@pytest.fixture
def sample_csv() -> str:
    return (
        HEADER
        + "1,Widget,Tools,9.99,2024-01-01\n"
        + "2,Gadget,Tools,20.50,2024-01-02\n"
        + "3,Apple,Food,1.25,2024-01-03\n"
    )


@pytest.fixture
def sample_zip(sample_csv) -> bytes:
    return make_zip({"data.csv": sample_csv})


@pytest.fixture
async def store():
    """An initialized in-memory SqliteStore."""
    config = StorageConfig(backend=StorageBackend.SQLITE, sqlite_path=":memory:")
    s = SqliteStore(config)
    await s.initialize()
    yield s
    await s.close()


@pytest.fixture
def ledger(store) -> PriceLedger:
    return PriceLedger(store, ArchiveConfig())
