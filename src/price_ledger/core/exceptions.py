"""Custom exception hierarchy for price-ledger."""

from typing import Any


class PriceLedgerError(Exception):
    """Base exception for all price-ledger errors.

    All exceptions carry an optional `context` dict for structured error
    metadata that can be logged or serialized without parsing the message.
    """

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        super().__init__(message)
        self.context = context or {}


class ConfigError(PriceLedgerError):
    """Invalid or missing configuration.

    Raised by load_config() during startup. Should be treated as fatal.

    Context keys:
        field: str — the config field that failed validation
        value: Any — the invalid value (redacted for secrets)
    """


class UploadError(PriceLedgerError):
    """The request did not carry a usable file upload.

    Policy: reject the request (HTTP 400). Nothing is written.

    Context keys:
        field: str — the form field that was expected
        size: int — upload size in bytes, when the limit was exceeded
    """


class ArchiveError(PriceLedgerError):
    """The uploaded archive could not be turned into table rows.

    Policy: reject the request (HTTP 400). Nothing is written.
    """


class CorruptArchiveError(ArchiveError):
    """Payload is not a readable zip container.

    Context keys:
        reason: str — message from the zip reader
    """


class NoTabularEntryError(ArchiveError):
    """Archive holds no entry with a tabular-data suffix.

    Context keys:
        entries: list[str] — names found in the archive
        suffixes: list[str] — suffixes that were accepted
    """


class MalformedTableError(ArchiveError):
    """The tabular entry could not be decoded as CSV.

    Context keys:
        entry: str — archive member name
        line: int | None — line where the reader gave up
    """


class RowValidationError(PriceLedgerError):
    """A data row does not describe a valid price record.

    Policy: abort the whole batch (HTTP 400). Nothing is written.

    Context keys:
        row: int — 1-based position among the data rows
    """


class InvalidFormatError(RowValidationError):
    """Row has the wrong number of fields.

    Context keys:
        fields: int — number of fields found
        expected: int — number of fields required
    """


class InvalidNameError(RowValidationError):
    """Row has an empty name field."""


class InvalidPriceError(RowValidationError):
    """Price field is not a non-negative decimal within the schema range.

    Context keys:
        value: str — the raw price text
    """


class StorageError(PriceLedgerError):
    """Database operation failed.

    Policy: raise immediately. Data integrity is critical.

    Context keys:
        operation: str — "insert", "query", "initialize", etc.
        table: str — the table involved
    """


class StorageUnavailableError(StorageError):
    """Store could not be reached or queried.

    Policy: fatal to the request, never retried. Fatal to the process
    when raised during startup.
    """


class StorageWriteError(StorageError):
    """An insert failed and the batch transaction was rolled back.

    Context keys:
        row: int | None — data row whose insert failed
    """


class EncodeError(PriceLedgerError):
    """Export rows could not be encoded as CSV or zipped.

    Context keys:
        stage: str — "csv" or "zip"
    """
