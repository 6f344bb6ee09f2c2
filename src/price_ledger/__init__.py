"""price-ledger: zip/CSV price list ingest and export over a relational store."""

__version__ = "0.1.0"
