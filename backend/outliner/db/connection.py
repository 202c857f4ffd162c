"""Async SQLite connection wrapper with WAL mode, schema init, and a single-writer lock."""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import aiosqlite

from outliner.db.schema import SCHEMA_SQL, run_migrations

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """The underlying SQLite call failed. Any open transaction was rolled back."""

    def __init__(self, message: str) -> None:
        super().__init__(f"Storage failure: {message}")


class Transaction:
    """Statement executor bound to an open transaction. Never commits on its own."""

    def __init__(self, connection: aiosqlite.Connection) -> None:
        self._conn = connection

    async def execute(self, sql: str, params: tuple | None = None) -> aiosqlite.Cursor:
        return await self._conn.execute(sql, params or ())

    async def fetchone(self, sql: str, params: tuple | None = None) -> aiosqlite.Row | None:
        cursor = await self._conn.execute(sql, params or ())
        return await cursor.fetchone()

    async def fetchall(self, sql: str, params: tuple | None = None) -> list[aiosqlite.Row]:
        cursor = await self._conn.execute(sql, params or ())
        return list(await cursor.fetchall())


class Database:
    """Thin async wrapper around aiosqlite with WAL mode and auto-schema.

    All access goes through one asyncio.Lock: single statements hold it for the
    statement, ``transaction()`` holds it until commit or rollback. Readers
    therefore never observe a half-applied multi-statement mutation.
    """

    def __init__(self, connection: aiosqlite.Connection) -> None:
        self._conn = connection
        self._lock = asyncio.Lock()

    @classmethod
    async def connect(cls, path: str = "outliner.db") -> "Database":
        """Create a connection with WAL mode, foreign keys, and schema init."""
        conn = await aiosqlite.connect(path)
        conn.row_factory = aiosqlite.Row
        await conn.execute("PRAGMA journal_mode=WAL")
        await conn.execute("PRAGMA foreign_keys=ON")
        await conn.execute("PRAGMA busy_timeout=5000")
        db = cls(conn)
        await db._ensure_schema()
        logger.info("Opened database %s", path)
        return db

    async def _ensure_schema(self) -> None:
        """Create tables if they don't exist, then apply pending migrations. Idempotent."""
        await self._conn.executescript(SCHEMA_SQL)
        await self._conn.commit()
        await run_migrations(self)

    async def execute(self, sql: str, params: tuple | None = None) -> aiosqlite.Cursor:
        """Execute a single SQL statement and commit."""
        async with self._lock:
            try:
                cursor = await self._conn.execute(sql, params or ())
                await self._conn.commit()
            except aiosqlite.Error as e:
                await self._conn.rollback()
                logger.exception("Statement failed")
                raise StorageError(str(e)) from e
            return cursor

    async def fetchone(self, sql: str, params: tuple | None = None) -> aiosqlite.Row | None:
        """Execute and return a single row."""
        async with self._lock:
            try:
                cursor = await self._conn.execute(sql, params or ())
                return await cursor.fetchone()
            except aiosqlite.Error as e:
                raise StorageError(str(e)) from e

    async def fetchall(self, sql: str, params: tuple | None = None) -> list[aiosqlite.Row]:
        """Execute and return all rows."""
        async with self._lock:
            try:
                cursor = await self._conn.execute(sql, params or ())
                return list(await cursor.fetchall())
            except aiosqlite.Error as e:
                raise StorageError(str(e)) from e

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[Transaction]:
        """Run a block of statements atomically under the write lock.

        Commits when the block exits normally. Rolls back on any exception;
        SQLite errors are re-raised as StorageError, everything else as-is.
        """
        async with self._lock:
            await self._conn.execute("BEGIN IMMEDIATE")
            try:
                yield Transaction(self._conn)
            except aiosqlite.Error as e:
                await self._conn.rollback()
                logger.exception("Transaction rolled back")
                raise StorageError(str(e)) from e
            except BaseException:
                await self._conn.rollback()
                raise
            await self._conn.commit()

    async def close(self) -> None:
        """Close the database connection."""
        await self._conn.close()
