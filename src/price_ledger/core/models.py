"""Pydantic data models — the system's type contracts."""

from __future__ import annotations

from decimal import ROUND_HALF_EVEN, Decimal
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator

# --- Type Aliases ---

RowFields = list[str]
PriceId = int

# Column order of the CSV payload in both directions.
CSV_COLUMNS = ("id", "name", "category", "price", "create_date")

# --- Enumerations ---


class StorageBackend(StrEnum):
    """Supported storage backends."""

    SQLITE = "sqlite"
    POSTGRESQL = "postgresql"


# Largest price the `prices` table holds: NUMERIC(12, 2).
MAX_PRICE = Decimal("9999999999.99")

# --- Helpers ---


def format_price(value: Decimal) -> str:
    """Render a price with zero decimal places, rounding half to even."""
    return f"{value.quantize(Decimal(1), rounding=ROUND_HALF_EVEN):f}"


def _check_price(v: Decimal) -> Decimal:
    if not v.is_finite():
        raise ValueError(f"price must be finite, got {v}")
    if v < 0:
        raise ValueError(f"price must be >= 0, got {v}")
    if v > MAX_PRICE:
        raise ValueError(f"price must be <= {MAX_PRICE}, got {v}")
    return v


# --- Price Models ---


class PriceRow(BaseModel):
    """A validated data row from an uploaded table, not yet stored."""

    model_config = ConfigDict(frozen=True)

    name: str
    category: str
    price: Decimal
    create_date: str
    source_id: str | None = None
    row_number: int | None = None

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("name must not be empty")
        return v

    @field_validator("price")
    @classmethod
    def price_finite_non_negative(cls, v: Decimal) -> Decimal:
        return _check_price(v)


class PriceRecord(BaseModel):
    """A row of the `prices` table as read back from the store."""

    model_config = ConfigDict(frozen=True)

    id: PriceId
    name: str
    category: str
    price: Decimal
    create_date: str

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("name must not be empty")
        return v

    @field_validator("price")
    @classmethod
    def price_finite_non_negative(cls, v: Decimal) -> Decimal:
        return _check_price(v)

    def to_csv_row(self) -> RowFields:
        """Fields in export order, price at zero decimal places."""
        return [
            str(self.id),
            self.name,
            self.category,
            format_price(self.price),
            self.create_date,
        ]


# --- Result Models ---


class LedgerStats(BaseModel):
    """Aggregate view over the entire ledger at query time."""

    model_config = ConfigDict(frozen=True)

    total_items: int = 0
    total_categories: int = 0
    total_price: Decimal = Decimal(0)

    @property
    def rounded_total_price(self) -> int:
        """Total price at zero decimal places."""
        return int(self.total_price.quantize(Decimal(1), rounding=ROUND_HALF_EVEN))


class IngestResult(BaseModel):
    """Outcome of a successful ingest batch."""

    model_config = ConfigDict(frozen=True)

    inserted: int
    stats: LedgerStats


class SkippedRow(BaseModel):
    """A stored row that could not be exported."""

    model_config = ConfigDict(frozen=True)

    position: int
    reason: str


class ExportResult(BaseModel):
    """Encoded export archive plus the rows left out of it."""

    model_config = ConfigDict(frozen=True)

    archive: bytes
    exported: int
    skipped: list[SkippedRow] = Field(default_factory=list)
