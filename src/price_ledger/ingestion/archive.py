"""Zip/CSV codec for price payloads.

Uploads arrive as a zip archive holding one comma-delimited table; exports
leave the same way. This module only moves between bytes and lists of text
fields. Typed validation lives in ``price_ledger.ingestion.rows``.
"""

from __future__ import annotations

import csv
import io
import logging
import zipfile
import zlib
from typing import Iterable, Sequence

from price_ledger.core.exceptions import (
    CorruptArchiveError,
    EncodeError,
    MalformedTableError,
    NoTabularEntryError,
)
from price_ledger.core.models import RowFields

logger = logging.getLogger(__name__)

HEADER_SENTINEL = "id"

# Resource-fork folder added by the macOS archiver.
_IGNORED_PREFIXES = ("__MACOSX/",)


def find_tabular_entry(
    archive: zipfile.ZipFile, suffixes: Sequence[str] = (".csv",)
) -> zipfile.ZipInfo:
    """Return the first member, in stored order, with a tabular suffix."""
    wanted = tuple(s.lower() for s in suffixes)
    for info in archive.infolist():
        if info.is_dir() or info.filename.startswith(_IGNORED_PREFIXES):
            continue
        if info.filename.lower().endswith(wanted):
            return info
    raise NoTabularEntryError(
        "CSV file not found in archive",
        context={"entries": archive.namelist(), "suffixes": list(wanted)},
    )


def parse_table(text: str, entry: str = "<table>") -> list[RowFields]:
    """Parse CSV text into rows, dropping a leading ``id`` header row."""
    reader = csv.reader(io.StringIO(text, newline=""), strict=True)
    try:
        rows = [row for row in reader if row]
    except csv.Error as e:
        raise MalformedTableError(
            f"Failed to read CSV: {e}",
            context={"entry": entry, "line": reader.line_num},
        ) from e

    if rows and rows[0][0] == HEADER_SENTINEL:
        rows = rows[1:]
    return rows


def extract_rows(raw: bytes, suffixes: Sequence[str] = (".csv",)) -> list[RowFields]:
    """Decode the first tabular entry of a zip archive into rows.

    Parameters
    ----------
    raw : bytes
        The complete archive, already read into memory.
    suffixes : Sequence[str]
        Member name suffixes recognized as tables (case-insensitive).

    Returns
    -------
    list[RowFields]
        Data rows in file order, header excluded.
    """
    try:
        archive = zipfile.ZipFile(io.BytesIO(raw))
    except (zipfile.BadZipFile, zipfile.LargeZipFile) as e:
        raise CorruptArchiveError(
            "Failed to read zip archive", context={"reason": str(e)}
        ) from e

    with archive:
        info = find_tabular_entry(archive, suffixes)
        try:
            payload = archive.read(info)
        except (
            zipfile.BadZipFile,
            zlib.error,
            EOFError,
            NotImplementedError,
            RuntimeError,
        ) as e:
            raise CorruptArchiveError(
                f"Failed to open {info.filename} in archive",
                context={"reason": str(e), "entry": info.filename},
            ) from e

    try:
        text = payload.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise MalformedTableError(
            f"Failed to read CSV: {info.filename} is not valid UTF-8",
            context={"entry": info.filename, "line": None},
        ) from e

    rows = parse_table(text, entry=info.filename)
    logger.debug("Extracted %d rows from %s", len(rows), info.filename)
    return rows


def encode_table(rows: Iterable[Sequence[str]]) -> str:
    """Write rows as CSV text with ``\\n`` line endings."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    try:
        writer.writerows(rows)
    except csv.Error as e:
        raise EncodeError(f"Failed to create CSV: {e}", context={"stage": "csv"}) from e
    return buffer.getvalue()


def build_archive(rows: Iterable[Sequence[str]], entry_name: str = "data.csv") -> bytes:
    """Encode rows as CSV and wrap them as a single zip member."""
    table = encode_table(rows)
    buffer = io.BytesIO()
    try:
        with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as archive:
            archive.writestr(entry_name, table.encode("utf-8"))
    except (OSError, ValueError) as e:
        raise EncodeError(
            f"Failed to create zip file: {e}",
            context={"stage": "zip", "entry": entry_name},
        ) from e
    return buffer.getvalue()
