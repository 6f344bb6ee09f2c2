"""Tests for the PriceLedger ingest and export pipelines."""

from decimal import Decimal

import pytest

from price_ledger.core.config import ArchiveConfig
from price_ledger.core.exceptions import (
    CorruptArchiveError,
    InvalidFormatError,
    InvalidPriceError,
    NoTabularEntryError,
)
from price_ledger.core.models import LedgerStats
from price_ledger.ingestion.ledger import PriceLedger


class FakeStore:
    """Store double that serves canned rows to the export pipeline."""

    def __init__(self, rows):
        self._rows = rows

    async def fetch_price_rows(self):
        return list(self._rows)

    async def get_statistics(self):
        return LedgerStats()


# --- Ingest ---


class TestIngest:
    async def test_header_excluded(self, ledger, sample_zip):
        result = await ledger.ingest_archive(sample_zip)
        assert result.inserted == 3
        assert result.stats.total_items == 3
        assert result.stats.total_categories == 2
        assert result.stats.rounded_total_price == 32

    async def test_single_row_rounds_total(self, ledger, make_zip):
        raw = make_zip({"data.csv": "id,name,category,price,create_date\n1,Widget,Tools,9.99,2024-01-01\n"})
        result = await ledger.ingest_archive(raw)
        assert result.stats.total_items == 1
        assert result.stats.total_categories == 1
        assert result.stats.rounded_total_price == 10

    async def test_wrong_arity_rejects_whole_batch(self, ledger, make_zip):
        raw = make_zip(
            {
                "data.csv": (
                    "id,name,category,price,create_date\n"
                    "1,Widget,Tools,9.99,2024-01-01\n"
                    "2,Gadget,Tools,20.50\n"
                )
            }
        )
        with pytest.raises(InvalidFormatError) as exc_info:
            await ledger.ingest_archive(raw)
        assert exc_info.value.context["row"] == 2
        stats = await ledger.statistics()
        assert stats.total_items == 0

    async def test_bad_price_rejects_whole_batch(self, ledger, make_zip):
        raw = make_zip({"data.csv": "1,A,B,1,2024-01-01\n2,C,D,abc,2024-01-01\n"})
        with pytest.raises(InvalidPriceError):
            await ledger.ingest_archive(raw)
        assert (await ledger.statistics()).total_items == 0

    async def test_no_csv_inserts_nothing(self, ledger, make_zip):
        with pytest.raises(NoTabularEntryError):
            await ledger.ingest_archive(make_zip({"prices.json": "[]"}))
        assert (await ledger.statistics()).total_items == 0

    async def test_corrupt_archive(self, ledger):
        with pytest.raises(CorruptArchiveError):
            await ledger.ingest_archive(b"PK\x03\x04 truncated")

    async def test_stats_span_whole_ledger(self, ledger, sample_zip, make_zip):
        await ledger.ingest_archive(sample_zip)
        second = make_zip({"data.csv": "9,Pear,Fruit,2.00,2024-02-01\n"})
        result = await ledger.ingest_archive(second)
        assert result.inserted == 1
        assert result.stats.total_items == 4
        assert result.stats.total_categories == 3
        assert result.stats.rounded_total_price == 34

    async def test_empty_table(self, ledger, make_zip):
        result = await ledger.ingest_archive(
            make_zip({"data.csv": "id,name,category,price,create_date\n"})
        )
        assert result.inserted == 0
        assert result.stats.total_items == 0

    async def test_custom_suffixes(self, store, make_zip):
        ledger = PriceLedger(store, ArchiveConfig(tabular_suffixes=(".txt",)))
        result = await ledger.ingest_archive(
            make_zip({"data.txt": "1,A,B,2,2024-01-01\n"})
        )
        assert result.inserted == 1

    async def test_ingest_rows_directly(self, ledger):
        result = await ledger.ingest([["1", "A", "B", "3.5", "2024-01-01"]])
        assert result.inserted == 1
        assert result.stats.total_price == Decimal("3.5")


# --- Export ---


class TestExport:
    async def test_empty_ledger(self, ledger, read_zip_entry):
        result = await ledger.export()
        assert result.exported == 0
        assert result.skipped == []
        assert read_zip_entry(result.archive) == ""

    async def test_ordered_with_rounded_prices(self, ledger, sample_zip, read_zip_entry):
        await ledger.ingest_archive(sample_zip)
        result = await ledger.export()
        assert result.exported == 3
        assert read_zip_entry(result.archive).splitlines() == [
            "1,Widget,Tools,10,2024-01-01",
            "2,Gadget,Tools,20,2024-01-02",
            "3,Apple,Food,1,2024-01-03",
        ]

    async def test_store_ids_replace_source_ids(self, ledger, make_zip, read_zip_entry):
        await ledger.ingest_archive(make_zip({"data.csv": "500,A,B,2,2024-01-01\n"}))
        result = await ledger.export()
        assert read_zip_entry(result.archive) == "1,A,B,2,2024-01-01\n"

    async def test_export_is_repeatable(self, ledger, sample_zip, read_zip_entry):
        await ledger.ingest_archive(sample_zip)
        first = await ledger.export()
        second = await ledger.export()
        assert read_zip_entry(first.archive) == read_zip_entry(second.archive)

    async def test_custom_entry_name(self, store, sample_zip, read_zip_entry):
        ledger = PriceLedger(store, ArchiveConfig(export_entry_name="prices.csv"))
        await ledger.ingest_archive(sample_zip)
        result = await ledger.export()
        assert read_zip_entry(result.archive, "prices.csv").startswith("1,Widget")

    async def test_unreadable_rows_skipped(self, read_zip_entry):
        store = FakeStore(
            [
                (1, "A", "B", Decimal("2"), "2024-01-01"),
                (2, "Bad", "B", None, "2024-01-01"),
                (3, "Short", "B"),
                (4, "C", "D", Decimal("7.5"), "2024-01-02"),
            ]
        )
        result = await PriceLedger(store).export()
        assert result.exported == 2
        assert [s.position for s in result.skipped] == [1, 2]
        assert result.skipped[0].reason.startswith("price:")
        assert read_zip_entry(result.archive).splitlines() == [
            "1,A,B,2,2024-01-01",
            "4,C,D,8,2024-01-02",
        ]
