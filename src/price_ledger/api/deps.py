"""Dependency injection for FastAPI routes."""

from __future__ import annotations

from dataclasses import dataclass

from fastapi import Request

from price_ledger.core.config import LedgerConfig
from price_ledger.ingestion.ledger import PriceLedger
from price_ledger.ingestion.store import StorageProtocol


@dataclass
class AppState:
    """Shared application state, attached to app.state during lifespan."""

    config: LedgerConfig
    store: StorageProtocol
    ledger: PriceLedger


def get_config(request: Request) -> LedgerConfig:
    """Dependency: retrieve config."""
    return request.app.state.app_state.config


def get_ledger(request: Request) -> PriceLedger:
    """Dependency: retrieve the price ledger bound to the shared store."""
    return request.app.state.app_state.ledger
