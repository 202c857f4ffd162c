"""Database schema DDL. All tables use CREATE IF NOT EXISTS for idempotency."""

from datetime import UTC, datetime

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS nodes (
    id TEXT PRIMARY KEY,
    content TEXT NOT NULL DEFAULT '',
    content_zh TEXT NOT NULL DEFAULT '',
    parent_id TEXT,
    position INTEGER NOT NULL,
    is_expanded INTEGER NOT NULL DEFAULT 1,
    has_markdown INTEGER NOT NULL DEFAULT 0,
    created_at INTEGER NOT NULL,
    updated_at INTEGER NOT NULL,
    FOREIGN KEY (parent_id) REFERENCES nodes(id) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_nodes_parent_id ON nodes(parent_id);
CREATE INDEX IF NOT EXISTS idx_nodes_parent_position ON nodes(parent_id, position);

CREATE TABLE IF NOT EXISTS schema_migrations (
    name TEXT PRIMARY KEY,
    applied_at TEXT NOT NULL
);
"""

# Incremental changes for databases created by older releases.
# Each entry is (name, sql); names are recorded in schema_migrations once applied.
_MIGRATIONS: list[tuple[str, str]] = [
    (
        "0001_nodes_node_size",
        "ALTER TABLE nodes ADD COLUMN node_size INTEGER NOT NULL DEFAULT 20",
    ),
]


async def run_migrations(db: object) -> None:
    """Apply migrations not yet recorded in schema_migrations, in list order.

    A migration whose column already exists (a database that predates the
    tracking table) is recorded without being re-run.
    """
    applied_rows = await db._conn.execute_fetchall("SELECT name FROM schema_migrations")
    applied = {row["name"] for row in applied_rows}
    columns = {
        row["name"] for row in await db._conn.execute_fetchall("PRAGMA table_info(nodes)")
    }

    for name, sql in _MIGRATIONS:
        if name in applied:
            continue
        if not _column_already_present(sql, columns):
            await db._conn.execute(sql)
        await db._conn.execute(
            "INSERT INTO schema_migrations (name, applied_at) VALUES (?, ?)",
            (name, datetime.now(UTC).isoformat()),
        )
    await db._conn.commit()


def _column_already_present(sql: str, columns: set[str]) -> bool:
    """True for an ADD COLUMN statement whose column is already in the table."""
    marker = "ADD COLUMN "
    idx = sql.upper().find(marker)
    if idx == -1:
        return False
    column = sql[idx + len(marker):].split()[0]
    return column in columns
