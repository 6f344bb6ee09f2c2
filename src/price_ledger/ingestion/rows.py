"""Typed decoding of raw CSV rows into PriceRow models.

Each row must carry exactly ``id, name, category, price, create_date``.
Decoding is fail-fast: the first bad row raises an error naming the row
and the field at fault, and the caller aborts the batch.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Iterable, Sequence

from price_ledger.core.exceptions import (
    InvalidFormatError,
    InvalidNameError,
    InvalidPriceError,
)
from price_ledger.core.models import CSV_COLUMNS, MAX_PRICE, PriceRow

ROW_ARITY = len(CSV_COLUMNS)


def parse_price(raw: str, row_number: int) -> Decimal:
    """Parse a price field as a non-negative decimal no larger than MAX_PRICE."""
    try:
        value = Decimal(raw.strip())
    except InvalidOperation as e:
        raise InvalidPriceError(
            f"Invalid price {raw!r} in row {row_number}",
            context={"row": row_number, "value": raw},
        ) from e
    if not value.is_finite() or value < 0 or value > MAX_PRICE:
        raise InvalidPriceError(
            f"Invalid price {raw!r} in row {row_number}",
            context={"row": row_number, "value": raw},
        )
    return value


def decode_row(fields: Sequence[str], row_number: int) -> PriceRow:
    """Convert one CSV row into a PriceRow.

    Raises
    ------
    InvalidFormatError
        The row does not have exactly five fields.
    InvalidNameError
        The name field is empty.
    InvalidPriceError
        The price field is not a non-negative decimal within MAX_PRICE.
    """
    if len(fields) != ROW_ARITY:
        raise InvalidFormatError(
            f"Invalid format in row {row_number}: expected {ROW_ARITY} fields, "
            f"got {len(fields)}",
            context={"row": row_number, "fields": len(fields), "expected": ROW_ARITY},
        )

    source_id, name, category, raw_price, create_date = fields
    if not name.strip():
        raise InvalidNameError(
            f"Empty name in row {row_number}", context={"row": row_number}
        )

    return PriceRow(
        name=name,
        category=category,
        price=parse_price(raw_price, row_number),
        create_date=create_date,
        source_id=source_id or None,
        row_number=row_number,
    )


def decode_rows(rows: Iterable[Sequence[str]]) -> list[PriceRow]:
    """Decode every data row, stopping at the first invalid one."""
    return [decode_row(fields, n) for n, fields in enumerate(rows, start=1)]
