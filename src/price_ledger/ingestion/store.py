"""Storage backend: Protocol definition, SQLite and PostgreSQL implementations, factory."""

from __future__ import annotations

import asyncio
import logging
from decimal import Decimal
from pathlib import Path
from typing import Any, ClassVar, Protocol, Sequence, runtime_checkable

import aiosqlite
import psycopg
from psycopg_pool import AsyncConnectionPool, PoolTimeout

from price_ledger.core.config import StorageConfig
from price_ledger.core.exceptions import (
    StorageError,
    StorageUnavailableError,
    StorageWriteError,
)
from price_ledger.core.models import (
    LedgerStats,
    PriceRow,
    StorageBackend as StorageBackendEnum,
)

logger = logging.getLogger(__name__)

# (id, name, category, price, create_date), as returned by the driver.
RawPriceRow = tuple[Any, ...]


@runtime_checkable
class StorageProtocol(Protocol):
    """Abstract storage interface for the price ledger."""

    async def insert_prices(self, rows: Sequence[PriceRow]) -> int: ...
    async def fetch_price_rows(self) -> list[RawPriceRow]: ...
    async def get_statistics(self) -> LedgerStats: ...
    async def initialize(self) -> None: ...
    async def close(self) -> None: ...
    async def health_check(self) -> bool: ...


def _stats_from_row(row: Sequence[Any] | None) -> LedgerStats:
    if row is None:
        return LedgerStats()
    total_price = row[2] if row[2] is not None else 0
    return LedgerStats(
        total_items=row[0],
        total_categories=row[1],
        total_price=Decimal(str(total_price)),
    )


class SqliteStore:
    """SQLite implementation of the storage protocol.

    Uses aiosqlite for async access, WAL mode for concurrent reads,
    and a version-tracked migration system. The single connection is
    shared by all requests, so every operation holds ``_lock`` to keep
    one batch's transaction from interleaving with another's.
    """

    _MIGRATIONS: ClassVar[dict[int, tuple[str, list[str]]]] = {
        1: (
            "Initial schema",
            [
                """CREATE TABLE IF NOT EXISTS schema_version (
                    version INTEGER PRIMARY KEY,
                    applied_at TEXT DEFAULT (datetime('now'))
                )""",
                """CREATE TABLE IF NOT EXISTS prices (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL,
                    category TEXT NOT NULL,
                    price NUMERIC NOT NULL,
                    create_date TEXT NOT NULL
                )""",
                "CREATE INDEX IF NOT EXISTS idx_prices_category ON prices(category)",
            ],
        ),
    }

    _INSERT_SQL: ClassVar[str] = (
        "INSERT INTO prices (name, category, price, create_date) VALUES (?, ?, ?, ?)"
    )

    def __init__(self, config: StorageConfig) -> None:
        self._path = config.sqlite_path
        self._db: aiosqlite.Connection | None = None
        self._lock = asyncio.Lock()

    async def initialize(self) -> None:
        """Open connection, enable WAL, run migrations."""
        try:
            if self._path != ":memory:":
                Path(self._path).parent.mkdir(parents=True, exist_ok=True)
            self._db = await aiosqlite.connect(self._path)
            await self._db.execute("PRAGMA journal_mode=WAL")
            current = await self._get_schema_version()
            await self._apply_migrations(current)
            await self._db.commit()
        except Exception as e:
            raise StorageUnavailableError(
                f"Failed to initialize SQLite store: {e}",
                context={"operation": "initialize", "path": self._path},
            ) from e

    async def close(self) -> None:
        if self._db is not None:
            await self._db.close()
            self._db = None

    async def health_check(self) -> bool:
        if self._db is None:
            return False
        try:
            async with self._db.execute("SELECT 1") as cursor:
                row = await cursor.fetchone()
            return row is not None
        except Exception:
            return False

    def _require_db(self) -> aiosqlite.Connection:
        if self._db is None:
            raise StorageUnavailableError(
                "SQLite store is not initialized",
                context={"operation": "connect", "path": self._path},
            )
        return self._db

    # --- Schema Migration ---

    async def _get_schema_version(self) -> int:
        try:
            async with self._db.execute(
                "SELECT MAX(version) FROM schema_version"
            ) as cursor:
                row = await cursor.fetchone()
            return row[0] if row[0] is not None else 0
        except aiosqlite.OperationalError:
            return 0

    async def _apply_migrations(self, current_version: int) -> None:
        for version in sorted(self._MIGRATIONS.keys()):
            if version <= current_version:
                continue
            desc, statements = self._MIGRATIONS[version]
            logger.info("Applying migration %d: %s", version, desc)
            for sql in statements:
                await self._db.execute(sql)
            await self._db.execute(
                "INSERT INTO schema_version (version) VALUES (?)", (version,)
            )

    # --- Price Operations ---

    async def insert_prices(self, rows: Sequence[PriceRow]) -> int:
        """Insert all rows in one transaction; roll back on any failure."""
        if not rows:
            return 0
        db = self._require_db()
        async with self._lock:
            current: PriceRow | None = None
            try:
                for row in rows:
                    current = row
                    await db.execute(
                        self._INSERT_SQL,
                        (row.name, row.category, str(row.price), row.create_date),
                    )
                await db.commit()
            except Exception as e:
                await db.rollback()
                failed_row = current.row_number if current else None
                logger.warning(
                    "Rolled back batch of %d rows (failed at row %s): %s",
                    len(rows),
                    failed_row,
                    e,
                )
                raise StorageWriteError(
                    f"Failed to insert prices: {e}",
                    context={"operation": "insert", "table": "prices", "row": failed_row},
                ) from e
        logger.info("Inserted %d price rows", len(rows))
        return len(rows)

    async def fetch_price_rows(self) -> list[RawPriceRow]:
        db = self._require_db()
        try:
            async with self._lock:
                async with db.execute(
                    """SELECT id, name, category, price, create_date
                       FROM prices ORDER BY id ASC"""
                ) as cursor:
                    rows = await cursor.fetchall()
            return [tuple(r) for r in rows]
        except Exception as e:
            raise StorageUnavailableError(
                f"Failed to query database: {e}",
                context={"operation": "query", "table": "prices"},
            ) from e

    async def get_statistics(self) -> LedgerStats:
        db = self._require_db()
        try:
            async with self._lock:
                async with db.execute(
                    """SELECT COUNT(*), COUNT(DISTINCT category),
                              COALESCE(SUM(price), 0)
                       FROM prices"""
                ) as cursor:
                    row = await cursor.fetchone()
            return _stats_from_row(row)
        except Exception as e:
            raise StorageUnavailableError(
                f"Failed to compute statistics: {e}",
                context={"operation": "query", "table": "prices"},
            ) from e


class PostgresStore:
    """PostgreSQL implementation of the storage protocol.

    Uses a psycopg async connection pool. Each ingest batch runs on one
    pooled connection inside one transaction. The ``prices`` table is
    owned by the database administrator; this store never creates it.
    """

    _INSERT_SQL: ClassVar[str] = (
        "INSERT INTO prices (name, category, price, create_date) "
        "VALUES (%s, %s, %s, %s)"
    )

    def __init__(self, config: StorageConfig) -> None:
        self._conninfo = config.postgresql_url
        self._min_size = config.pool_min_size
        self._max_size = config.pool_max_size
        self._pool: AsyncConnectionPool | None = None

    async def initialize(self) -> None:
        """Open the pool and verify the server answers."""
        try:
            self._pool = AsyncConnectionPool(
                conninfo=self._conninfo,
                min_size=self._min_size,
                max_size=self._max_size,
                open=False,
            )
            await self._pool.open(wait=True)
            async with self._pool.connection() as conn:
                await conn.execute("SELECT 1")
        except Exception as e:
            await self.close()
            raise StorageUnavailableError(
                f"Failed to connect to PostgreSQL: {e}",
                context={"operation": "initialize"},
            ) from e
        logger.info(
            "Opened PostgreSQL pool (min=%d, max=%d)", self._min_size, self._max_size
        )

    async def close(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None

    async def health_check(self) -> bool:
        if self._pool is None:
            return False
        try:
            async with self._pool.connection() as conn:
                cursor = await conn.execute("SELECT 1")
                row = await cursor.fetchone()
            return row is not None
        except Exception:
            return False

    def _require_pool(self) -> AsyncConnectionPool:
        if self._pool is None:
            raise StorageUnavailableError(
                "PostgreSQL pool is not open", context={"operation": "connect"}
            )
        return self._pool

    async def insert_prices(self, rows: Sequence[PriceRow]) -> int:
        """Insert all rows in one transaction; roll back on any failure."""
        if not rows:
            return 0
        pool = self._require_pool()
        current: PriceRow | None = None
        try:
            async with pool.connection() as conn:
                async with conn.transaction():
                    async with conn.cursor() as cur:
                        for row in rows:
                            current = row
                            await cur.execute(
                                self._INSERT_SQL,
                                (row.name, row.category, row.price, row.create_date),
                            )
        except (PoolTimeout, psycopg.OperationalError) as e:
            raise StorageUnavailableError(
                f"Failed to reach database: {e}",
                context={"operation": "insert", "table": "prices"},
            ) from e
        except Exception as e:
            failed_row = current.row_number if current else None
            logger.warning(
                "Rolled back batch of %d rows (failed at row %s): %s",
                len(rows),
                failed_row,
                e,
            )
            raise StorageWriteError(
                f"Failed to insert prices: {e}",
                context={"operation": "insert", "table": "prices", "row": failed_row},
            ) from e
        logger.info("Inserted %d price rows", len(rows))
        return len(rows)

    async def fetch_price_rows(self) -> list[RawPriceRow]:
        pool = self._require_pool()
        try:
            async with pool.connection() as conn:
                cursor = await conn.execute(
                    """SELECT id, name, category, price, create_date::text
                       FROM prices ORDER BY id ASC"""
                )
                rows = await cursor.fetchall()
            return [tuple(r) for r in rows]
        except Exception as e:
            raise StorageUnavailableError(
                f"Failed to query database: {e}",
                context={"operation": "query", "table": "prices"},
            ) from e

    async def get_statistics(self) -> LedgerStats:
        pool = self._require_pool()
        try:
            async with pool.connection() as conn:
                cursor = await conn.execute(
                    """SELECT COUNT(*), COUNT(DISTINCT category),
                              COALESCE(SUM(price), 0)
                       FROM prices"""
                )
                row = await cursor.fetchone()
            return _stats_from_row(row)
        except Exception as e:
            raise StorageUnavailableError(
                f"Failed to compute statistics: {e}",
                context={"operation": "query", "table": "prices"},
            ) from e


async def create_store(config: StorageConfig) -> SqliteStore | PostgresStore:
    """Create and initialize a storage backend based on configuration."""
    if config.backend == StorageBackendEnum.SQLITE:
        store: SqliteStore | PostgresStore = SqliteStore(config)
    elif config.backend == StorageBackendEnum.POSTGRESQL:
        store = PostgresStore(config)
    else:
        raise StorageError(
            f"Unsupported storage backend: {config.backend}",
            context={"operation": "create_store", "backend": str(config.backend)},
        )
    await store.initialize()
    return store
