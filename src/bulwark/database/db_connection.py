"""
Database connection management.

Bulwark keeps a **single long-lived aiosqlite connection** for the whole
process:
  - pragmas are applied once and the page cache stays warm
  - WAL mode lets outside readers (backups, the sqlite shell) run alongside the writer

Concurrency model
-----------------
SQLite is single-writer. Every statement goes through the one shared
connection, so reads and writes are serialised at the application layer
with one semaphore (``_access_sem``). Coroutines queue instead of hitting
SQLite's busy timeout, and a read never runs between the statements of an
open transaction, so it cannot see rows that are later rolled back.

A read-modify-write that must observe its own read (the document store's
update operators) runs entirely inside one ``transaction()`` block.

Usage
-----
    connection = ConnectionManager()
    await connection.open(path)

    async with connection.read() as conn:
        cursor = await conn.execute("SELECT ...")

    async with connection.transaction() as conn:
        await conn.execute("UPDATE ...")
        # commits on clean exit, rolls back on exception

    await connection.close()
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

import aiosqlite

from bulwark.errors import StoreUnavailableError
from bulwark.util.logger import get_logger

logger = get_logger("database_connection")

_PRAGMAS = [
    "PRAGMA journal_mode = WAL",
    "PRAGMA synchronous = NORMAL",    # safe with WAL
    "PRAGMA cache_size = -65536",     # 64 MB page cache
    "PRAGMA temp_store = MEMORY",
    "PRAGMA busy_timeout = 5000",
]


class ConnectionManager:
    """
    Wrapper around the single aiosqlite connection of the process.

    * Reads  - ``async with read()``
    * Writes - ``async with transaction()``

    Both take ``_access_sem``, so neither may be nested inside the other.
    """

    def __init__(self) -> None:
        self._conn: aiosqlite.Connection | None = None
        self._access_sem = asyncio.Semaphore(1)
        self._path: Path | None = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def open(self, path: Path) -> None:
        """
        Open the database file and apply the pragmas.

        Args:
            path: Path to the SQLite database file. Parent directories are created.
        """
        if self._conn is not None:
            logger.warning("[DB CONNECTION] open() called but connection already exists, ignoring")
            return

        self._path = path
        path.parent.mkdir(parents=True, exist_ok=True)

        self._conn = await aiosqlite.connect(path)
        self._conn.row_factory = aiosqlite.Row

        for pragma in _PRAGMAS:
            await self._conn.execute(pragma)
        await self._conn.commit()

        logger.info("[DB CONNECTION] Opened connection to %s", path)

    async def close(self) -> None:
        """Checkpoint the WAL and close the connection."""
        if self._conn is None:
            return

        try:
            await self._conn.execute("PRAGMA wal_checkpoint(TRUNCATE)")
            await self._conn.commit()
        except Exception:
            logger.exception("[DB CONNECTION] WAL checkpoint failed during close")
        finally:
            await self._conn.close()
            self._conn = None
            logger.info("[DB CONNECTION] Connection closed")

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    @property
    def connection(self) -> aiosqlite.Connection:
        """
        The raw aiosqlite connection.

        Raises:
            StoreUnavailableError: If the connection has not been opened.
        """
        if self._conn is None:
            raise StoreUnavailableError("Database connection is not open")
        return self._conn

    # ------------------------------------------------------------------
    # Contexts
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        """
        Serialised write transaction.

        Commits on clean exit and rolls back if the body raises.

        Raises:
            StoreUnavailableError: If the connection is not open.
        """
        conn = self.connection

        async with self._access_sem:
            try:
                yield conn
                await conn.commit()
            except Exception:
                await conn.rollback()
                raise

    @asynccontextmanager
    async def read(self) -> AsyncIterator[aiosqlite.Connection]:
        """Read context. Waits for any open transaction to commit or roll back."""
        conn = self.connection

        async with self._access_sem:
            yield conn
