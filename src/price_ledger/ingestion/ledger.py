"""Price ledger: the ingest and export pipelines over a storage backend."""

from __future__ import annotations

import logging
from typing import Sequence

from pydantic import ValidationError

from price_ledger.core.config import ArchiveConfig
from price_ledger.core.models import (
    CSV_COLUMNS,
    ExportResult,
    IngestResult,
    LedgerStats,
    PriceRecord,
    RowFields,
    SkippedRow,
)
from price_ledger.ingestion.archive import build_archive, extract_rows
from price_ledger.ingestion.rows import decode_rows
from price_ledger.ingestion.store import RawPriceRow, StorageProtocol

logger = logging.getLogger(__name__)


class PriceLedger:
    """Moves price lists between zip/CSV payloads and the store.

    Ingest is all-or-nothing: every row is decoded before the store is
    touched, and the inserts share one transaction. Export is best-effort:
    a stored row that cannot be turned into a PriceRecord is reported in
    ``ExportResult.skipped`` and left out of the archive.

    Parameters
    ----------
    store : StorageProtocol
        An initialized storage backend. The ledger does not own it.
    archive_config : ArchiveConfig | None
        Suffixes and file names for the zip payloads.
    """

    def __init__(
        self, store: StorageProtocol, archive_config: ArchiveConfig | None = None
    ) -> None:
        self._store = store
        self._archive = archive_config or ArchiveConfig()

    @property
    def store(self) -> StorageProtocol:
        return self._store

    # --- Ingest ---

    async def ingest(self, rows: Sequence[RowFields]) -> IngestResult:
        """Validate and insert data rows, then report ledger-wide statistics."""
        price_rows = decode_rows(rows)
        inserted = await self._store.insert_prices(price_rows)
        stats = await self._store.get_statistics()
        logger.info(
            "Ingested %d rows; ledger now holds %d items in %d categories",
            inserted,
            stats.total_items,
            stats.total_categories,
        )
        return IngestResult(inserted=inserted, stats=stats)

    async def ingest_archive(self, raw: bytes) -> IngestResult:
        """Extract the table from a zip upload and ingest it."""
        rows = extract_rows(raw, self._archive.tabular_suffixes)
        return await self.ingest(rows)

    async def statistics(self) -> LedgerStats:
        return await self._store.get_statistics()

    # --- Export ---

    async def export(self) -> ExportResult:
        """Encode every stored row, ordered by id, as a zipped CSV table."""
        raw_rows = await self._store.fetch_price_rows()
        records, skipped = self._to_records(raw_rows)
        archive = build_archive(
            (record.to_csv_row() for record in records),
            entry_name=self._archive.export_entry_name,
        )
        if skipped:
            logger.warning(
                "Export left out %d of %d rows", len(skipped), len(raw_rows)
            )
        return ExportResult(archive=archive, exported=len(records), skipped=skipped)

    @staticmethod
    def _to_records(
        raw_rows: Sequence[RawPriceRow],
    ) -> tuple[list[PriceRecord], list[SkippedRow]]:
        records: list[PriceRecord] = []
        skipped: list[SkippedRow] = []
        for position, raw in enumerate(raw_rows):
            try:
                records.append(PriceRecord(**dict(zip(CSV_COLUMNS, raw, strict=True))))
            except ValueError as e:
                reason = _skip_reason(e)
                logger.warning("Skipping stored row at position %d: %s", position, e)
                skipped.append(SkippedRow(position=position, reason=reason))
        return records, skipped


def _skip_reason(exc: ValueError) -> str:
    """One-line description of why a stored row could not be exported."""
    if isinstance(exc, ValidationError):
        first = exc.errors()[0]
        field = ".".join(str(p) for p in first["loc"]) or "row"
        return f"{field}: {first['msg']}"
    return str(exc)
