"""API-specific request/response schemas (Pydantic v2)."""

from __future__ import annotations

from pydantic import BaseModel

from price_ledger.core.models import LedgerStats


class PriceStatsResponse(BaseModel):
    """Response for POST /api/v0/prices: statistics over the whole ledger."""

    total_items: int
    total_categories: int
    total_price: int

    @classmethod
    def from_stats(cls, stats: LedgerStats) -> PriceStatsResponse:
        return cls(
            total_items=stats.total_items,
            total_categories=stats.total_categories,
            total_price=stats.rounded_total_price,
        )


class HealthResponse(BaseModel):
    """Response for GET /api/v0/health."""

    status: str = "ok"
    version: str
    storage_backend: str
    total_items: int
