"""FastAPI route definitions for the price ledger API."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request, Response
from starlette.datastructures import UploadFile

import price_ledger
from price_ledger.api.deps import get_config, get_ledger
from price_ledger.api.schemas import HealthResponse, PriceStatsResponse
from price_ledger.core.config import LedgerConfig
from price_ledger.core.exceptions import StorageError, UploadError
from price_ledger.ingestion.ledger import PriceLedger

logger = logging.getLogger(__name__)

router = APIRouter()

UPLOAD_FIELD = "file"


# -- Health --


@router.get("/health", response_model=HealthResponse)
async def health_check(
    ledger: PriceLedger = Depends(get_ledger),
    config: LedgerConfig = Depends(get_config),
):
    """Store reachability and ledger size.

    An unreachable store reports ``degraded`` with zero items instead of
    failing the request.
    """
    healthy = await ledger.store.health_check()
    total_items = 0
    if healthy:
        try:
            total_items = (await ledger.statistics()).total_items
        except StorageError as e:
            logger.warning("Health check could not read statistics: %s", e)
            healthy = False
    return HealthResponse(
        status="ok" if healthy else "degraded",
        version=price_ledger.__version__,
        storage_backend=str(config.storage.backend.value),
        total_items=total_items,
    )


# -- Prices --


@router.post("/prices", response_model=PriceStatsResponse)
async def upload_prices(
    request: Request,
    ledger: PriceLedger = Depends(get_ledger),
    config: LedgerConfig = Depends(get_config),
):
    """Ingest a zip archive holding a CSV price list.

    The whole batch is rejected if any row is invalid. The response
    describes the entire ledger after the insert, not just this batch.
    """
    raw = await _read_upload(request, config.api.max_upload_bytes)
    result = await ledger.ingest_archive(raw)
    return PriceStatsResponse.from_stats(result.stats)


@router.get("/prices")
async def download_prices(
    ledger: PriceLedger = Depends(get_ledger),
    config: LedgerConfig = Depends(get_config),
):
    """Export the ledger, ordered by id, as a zip archive."""
    result = await ledger.export()
    return Response(
        content=result.archive,
        media_type="application/zip",
        headers={
            "Content-Disposition": (
                f"attachment; filename={config.archive.export_filename}"
            ),
            "X-Skipped-Rows": str(len(result.skipped)),
        },
    )


# -- Helpers --


async def _read_upload(request: Request, limit: int) -> bytes:
    """Read the uploaded archive from the multipart ``file`` field."""
    try:
        form = await request.form()
    except Exception as e:
        raise UploadError(
            "Failed to parse multipart form", context={"reason": str(e)}
        ) from e

    try:
        upload = form.get(UPLOAD_FIELD)
        if not isinstance(upload, UploadFile):
            raise UploadError(
                "Failed to get file from form", context={"field": UPLOAD_FIELD}
            )
        raw = await upload.read(limit + 1)
    finally:
        await form.close()

    if len(raw) > limit:
        raise UploadError(
            f"Uploaded file exceeds {limit} bytes",
            context={"field": UPLOAD_FIELD, "size": len(raw)},
        )
    logger.debug("Received upload %s (%d bytes)", upload.filename, len(raw))
    return raw
