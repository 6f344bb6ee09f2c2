"""FastAPI application factory."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from price_ledger.api.deps import AppState
from price_ledger.api.routes import router
from price_ledger.core.config import LedgerConfig, load_config
from price_ledger.core.exceptions import (
    ArchiveError,
    ConfigError,
    EncodeError,
    PriceLedgerError,
    RowValidationError,
    StorageError,
    UploadError,
)
from price_ledger.ingestion.ledger import PriceLedger
from price_ledger.ingestion.store import StorageProtocol, create_store

logger = logging.getLogger(__name__)

_STATUS_MAP: dict[type[PriceLedgerError], int] = {
    UploadError: 400,
    ArchiveError: 400,
    RowValidationError: 400,
    ConfigError: 500,
    StorageError: 500,
    EncodeError: 500,
}


def status_for(exc: PriceLedgerError) -> int:
    """HTTP status for an error, resolved through its class hierarchy."""
    for cls in type(exc).__mro__:
        if cls in _STATUS_MAP:
            return _STATUS_MAP[cls]
    return 500


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup/shutdown lifecycle.

    A store that cannot be reached aborts startup.
    """
    config = app.state._pending_config or load_config()
    injected = app.state._pending_store
    store = injected or await create_store(config.storage)

    app.state.app_state = AppState(
        config=config,
        store=store,
        ledger=PriceLedger(store, config.archive),
    )

    yield

    if injected is None:
        await store.close()


def create_app(
    config: LedgerConfig | None = None,
    store: StorageProtocol | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    ``store`` lets callers supply an already initialized backend; the app
    then leaves closing it to them.
    """
    import price_ledger

    app = FastAPI(
        title="Price Ledger API",
        description="Zip/CSV price list ingest and export",
        version=price_ledger.__version__,
        lifespan=lifespan,
    )

    # Stash config and store so lifespan can retrieve them
    app.state._pending_config = config
    app.state._pending_store = store

    app.include_router(router, prefix="/api/v0")

    # Exception handlers
    @app.exception_handler(PriceLedgerError)
    async def ledger_exception_handler(request: Request, exc: PriceLedgerError):
        status = status_for(exc)
        level = logging.ERROR if status >= 500 else logging.WARNING
        logger.log(
            level,
            "%s %s failed with %s: %s %s",
            request.method,
            request.url.path,
            type(exc).__name__,
            exc,
            exc.context,
        )
        return PlainTextResponse(str(exc), status_code=status)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return PlainTextResponse(
            str(exc.detail), status_code=exc.status_code, headers=exc.headers
        )

    return app
