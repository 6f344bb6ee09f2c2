"""REST API for price list ingest and export."""

from price_ledger.api.app import create_app

__all__ = ["create_app"]
