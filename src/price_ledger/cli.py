"""Click-based CLI for price-ledger.

Commands open the configured store, run one ledger operation, and close it.
`serve` hands the app factory to uvicorn.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

console = Console(stderr=True)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run_async(coro):
    """Run an async coroutine from synchronous Click code."""
    return asyncio.run(coro)


def _load_config(ctx: click.Context):
    """Load config lazily, caching on first call."""
    if "config" not in ctx.obj:
        from price_ledger.core import ConfigError, load_config

        try:
            ctx.obj["config"] = load_config(config_path=ctx.obj.get("config_path"))
        except ConfigError as e:
            _fail(e)
    return ctx.obj["config"]


async def _create_ledger_async(config):
    """Create and initialize storage, and wrap it in a ledger."""
    from price_ledger.ingestion import PriceLedger, create_store

    store = await create_store(config.storage)
    return PriceLedger(store, config.archive)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )


def _fail(exc: Exception) -> None:
    """Report a library error and exit non-zero."""
    console.print(f"[red]{type(exc).__name__}: {exc}[/red]")
    raise SystemExit(1)


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True),
    envvar="PRICE_LEDGER_CONFIG",
    default=None,
    help="Path to price-ledger.yml config file.",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    default=False,
    help="Enable verbose output.",
)
@click.version_option(package_name="price-ledger")
@click.pass_context
def cli(ctx: click.Context, config: str | None, verbose: bool) -> None:
    """Price Ledger: zip/CSV price list ingest and export."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config
    _configure_logging(verbose)


# ---------------------------------------------------------------------------
# import
# ---------------------------------------------------------------------------


@cli.command(name="import")
@click.argument("archive", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def import_archive(ctx: click.Context, archive: str) -> None:
    """Ingest a local zip archive holding a CSV price list."""
    from price_ledger.core import PriceLedgerError
    from price_ledger.api.schemas import PriceStatsResponse

    config = _load_config(ctx)
    raw = Path(archive).read_bytes()

    async def _run():
        ledger = await _create_ledger_async(config)
        try:
            return await ledger.ingest_archive(raw)
        finally:
            await ledger.store.close()

    try:
        result = _run_async(_run())
    except PriceLedgerError as e:
        _fail(e)

    console.print(f"Inserted [bold]{result.inserted}[/bold] rows from {archive}")
    click.echo(json.dumps(PriceStatsResponse.from_stats(result.stats).model_dump()))


# ---------------------------------------------------------------------------
# export
# ---------------------------------------------------------------------------


@cli.command(name="export")
@click.argument("output", type=click.Path(dir_okay=False, writable=True))
@click.pass_context
def export_archive(ctx: click.Context, output: str) -> None:
    """Write the ledger, ordered by id, to a zip archive."""
    from price_ledger.core import PriceLedgerError

    config = _load_config(ctx)

    async def _run():
        ledger = await _create_ledger_async(config)
        try:
            return await ledger.export()
        finally:
            await ledger.store.close()

    try:
        result = _run_async(_run())
    except PriceLedgerError as e:
        _fail(e)

    Path(output).write_bytes(result.archive)
    console.print(f"Exported [bold]{result.exported}[/bold] rows to {output}")
    for skipped in result.skipped:
        console.print(
            f"[yellow]Skipped row at position {skipped.position}: {skipped.reason}[/yellow]"
        )


# ---------------------------------------------------------------------------
# serve
# ---------------------------------------------------------------------------


@cli.command()
@click.option("--host", type=str, default=None, help="Bind address (default from config).")
@click.option("--port", "-p", type=int, default=None, help="Port number (default from config).")
@click.option("--reload", is_flag=True, default=False, help="Auto-reload on code changes.")
@click.pass_context
def serve(ctx: click.Context, host: str | None, port: int | None, reload: bool) -> None:
    """Start the REST API server."""
    import uvicorn

    config = _load_config(ctx)
    host = host or config.api.host
    port = port or config.api.port

    # The app factory loads its own config; point it at the same file.
    if ctx.obj.get("config_path"):
        os.environ["PRICE_LEDGER_CONFIG"] = ctx.obj["config_path"]

    console.print(f"Starting price-ledger API on [bold]{host}:{port}[/bold]")
    console.print(f"API docs: http://{host}:{port}/docs")

    uvicorn.run(
        "price_ledger.api.app:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
    )


# ---------------------------------------------------------------------------
# status
# ---------------------------------------------------------------------------


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show storage backend and ledger statistics."""
    from price_ledger.core import PriceLedgerError, StorageBackend, format_price

    config = _load_config(ctx)

    async def _run():
        ledger = await _create_ledger_async(config)
        try:
            return await ledger.statistics()
        finally:
            await ledger.store.close()

    try:
        stats = _run_async(_run())
    except PriceLedgerError as e:
        _fail(e)

    table = Table(title="Price Ledger Status")
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")

    table.add_row("Storage backend", config.storage.backend.value)
    if config.storage.backend == StorageBackend.SQLITE:
        table.add_row("Database path", config.storage.sqlite_path)
    table.add_section()
    table.add_row("Total items", str(stats.total_items))
    table.add_row("Categories", str(stats.total_categories))
    table.add_row("Total price", format_price(stats.total_price))

    console.print(table)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main() -> None:
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
