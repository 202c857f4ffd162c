"""Tests for the migration system: version tracking and idempotency."""

import aiosqlite

from outliner.db.connection import Database
from outliner.db.schema import _MIGRATIONS, run_migrations

# nodes table as shipped before node_size existed
_LEGACY_NODES_SQL = """
CREATE TABLE nodes (
    id TEXT PRIMARY KEY,
    content TEXT,
    content_zh TEXT,
    parent_id TEXT,
    position INTEGER,
    is_expanded BOOLEAN DEFAULT 1,
    has_markdown BOOLEAN DEFAULT 0,
    created_at INTEGER,
    updated_at INTEGER,
    FOREIGN KEY (parent_id) REFERENCES nodes (id)
);
"""


class TestMigrationsContract:
    async def test_migrations_recorded_on_fresh_database(self):
        """Fresh database: every migration is recorded in schema_migrations."""
        db = await Database.connect(":memory:")
        try:
            rows = await db.fetchall("SELECT name, applied_at FROM schema_migrations ORDER BY name")
            assert [r["name"] for r in rows] == [name for name, _sql in _MIGRATIONS]
            for row in rows:
                assert "T" in row["applied_at"]  # ISO 8601
        finally:
            await db.close()

    async def test_fresh_nodes_table_has_node_size(self):
        db = await Database.connect(":memory:")
        try:
            columns = {r["name"] for r in await db.fetchall("PRAGMA table_info(nodes)")}
            assert "node_size" in columns
        finally:
            await db.close()

    async def test_running_twice_is_noop(self):
        db = await Database.connect(":memory:")
        try:
            await run_migrations(db)
            rows = await db.fetchall("SELECT name FROM schema_migrations")
            assert len(rows) == len(_MIGRATIONS)
        finally:
            await db.close()


class TestLegacyDatabase:
    async def test_legacy_table_gains_node_size(self, tmp_path):
        """A database from the old schema gets node_size with default 20."""
        path = str(tmp_path / "legacy.db")
        conn = await aiosqlite.connect(path)
        await conn.executescript(_LEGACY_NODES_SQL)
        await conn.execute(
            "INSERT INTO nodes (id, content, content_zh, parent_id, position, created_at, updated_at) "
            "VALUES ('old', 'Legacy', '', NULL, 0, 1, 1)"
        )
        await conn.commit()
        await conn.close()

        db = await Database.connect(path)
        try:
            row = await db.fetchone("SELECT node_size FROM nodes WHERE id = 'old'")
            assert row is not None
            assert row["node_size"] == 20
        finally:
            await db.close()
