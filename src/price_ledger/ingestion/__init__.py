"""Price list ingestion and export: archive codec, row decoding, storage, ledger."""

from price_ledger.ingestion.archive import build_archive, extract_rows
from price_ledger.ingestion.ledger import PriceLedger
from price_ledger.ingestion.rows import decode_row, decode_rows
from price_ledger.ingestion.store import (
    PostgresStore,
    SqliteStore,
    StorageProtocol,
    create_store,
)

__all__ = [
    "build_archive",
    "extract_rows",
    "decode_row",
    "decode_rows",
    "PriceLedger",
    "PostgresStore",
    "SqliteStore",
    "StorageProtocol",
    "create_store",
]
