"""price_ledger.core — Foundation types, config, and exceptions."""

from price_ledger.core.config import (
    APIConfig,
    ArchiveConfig,
    LedgerConfig,
    StorageConfig,
    load_config,
)
from price_ledger.core.exceptions import (
    ArchiveError,
    ConfigError,
    CorruptArchiveError,
    EncodeError,
    InvalidFormatError,
    InvalidNameError,
    InvalidPriceError,
    MalformedTableError,
    NoTabularEntryError,
    PriceLedgerError,
    RowValidationError,
    StorageError,
    StorageUnavailableError,
    StorageWriteError,
    UploadError,
)
from price_ledger.core.models import (
    CSV_COLUMNS,
    MAX_PRICE,
    ExportResult,
    IngestResult,
    LedgerStats,
    PriceId,
    PriceRecord,
    PriceRow,
    RowFields,
    SkippedRow,
    StorageBackend,
    format_price,
)

__all__ = [
    # Type aliases
    "PriceId",
    "RowFields",
    "CSV_COLUMNS",
    "MAX_PRICE",
    # Enums
    "StorageBackend",
    # Price models
    "PriceRow",
    "PriceRecord",
    "format_price",
    # Result models
    "LedgerStats",
    "IngestResult",
    "SkippedRow",
    "ExportResult",
    # Config
    "LedgerConfig",
    "StorageConfig",
    "ArchiveConfig",
    "APIConfig",
    "load_config",
    # Exceptions
    "PriceLedgerError",
    "ConfigError",
    "UploadError",
    "ArchiveError",
    "CorruptArchiveError",
    "NoTabularEntryError",
    "MalformedTableError",
    "RowValidationError",
    "InvalidFormatError",
    "InvalidNameError",
    "InvalidPriceError",
    "StorageError",
    "StorageUnavailableError",
    "StorageWriteError",
    "EncodeError",
]
