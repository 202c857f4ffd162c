"""Row-level SQL over the nodes table.

Every function takes an executor: a Transaction while a mutation is in
progress, or the Database itself for one-shot reads. Nothing here commits;
transaction boundaries belong to NodeService.
"""

from typing import Protocol
from uuid import uuid4

import aiosqlite

from outliner.nodes.schemas import NodeResponse
from outliner.utils.clock import now_ms

_NODE_COLUMNS = """
    n.id, n.content, n.content_zh, n.parent_id, n.position, n.is_expanded,
    n.has_markdown, n.node_size, n.created_at, n.updated_at,
    (SELECT COUNT(*) FROM nodes c WHERE c.parent_id = n.id) AS child_count
"""

# Stable render order. Positions are unique among siblings, the tail keys only
# matter for legacy data that predates that rule.
ORDER_BY = "n.position, n.created_at, n.id"


class Executor(Protocol):
    async def execute(self, sql: str, params: tuple | None = None) -> aiosqlite.Cursor: ...

    async def fetchone(self, sql: str, params: tuple | None = None) -> aiosqlite.Row | None: ...

    async def fetchall(self, sql: str, params: tuple | None = None) -> list[aiosqlite.Row]: ...


def node_from_row(row: aiosqlite.Row) -> NodeResponse:
    return NodeResponse(
        id=row["id"],
        content=row["content"] or "",
        content_zh=row["content_zh"] or "",
        parent_id=row["parent_id"],
        position=row["position"],
        is_expanded=bool(row["is_expanded"]),
        has_markdown=bool(row["has_markdown"]),
        node_size=row["node_size"],
        child_count=row["child_count"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _parent_clause(parent_id: str | None, alias: str = "") -> tuple[str, tuple]:
    """WHERE fragment matching a sibling set; NULL parent means the root level."""
    column = f"{alias}parent_id"
    if parent_id is None:
        return f"{column} IS NULL", ()
    return f"{column} = ?", (parent_id,)


async def get_node(ex: Executor, node_id: str) -> NodeResponse | None:
    row = await ex.fetchone(f"SELECT {_NODE_COLUMNS} FROM nodes n WHERE n.id = ?", (node_id,))
    return node_from_row(row) if row else None


async def get_children(ex: Executor, parent_id: str | None) -> list[NodeResponse]:
    """Direct children of parent_id (roots when None) in render order."""
    clause, params = _parent_clause(parent_id, "n.")
    rows = await ex.fetchall(
        f"SELECT {_NODE_COLUMNS} FROM nodes n WHERE {clause} ORDER BY {ORDER_BY}",
        params,
    )
    return [node_from_row(r) for r in rows]


async def node_exists(ex: Executor, node_id: str) -> bool:
    row = await ex.fetchone("SELECT 1 FROM nodes WHERE id = ?", (node_id,))
    return row is not None


async def next_position(
    ex: Executor, parent_id: str | None, *, exclude_id: str | None = None
) -> int:
    """max(sibling position) + 1, or 0 for an empty sibling set."""
    clause, params = _parent_clause(parent_id)
    sql = f"SELECT MAX(position) AS max_pos FROM nodes WHERE {clause}"
    if exclude_id is not None:
        sql += " AND id != ?"
        params = params + (exclude_id,)
    row = await ex.fetchone(sql, params)
    if row is None or row["max_pos"] is None:
        return 0
    return row["max_pos"] + 1


async def position_taken(
    ex: Executor, parent_id: str | None, position: int, *, exclude_id: str | None = None
) -> bool:
    clause, params = _parent_clause(parent_id)
    sql = f"SELECT 1 FROM nodes WHERE {clause} AND position = ?"
    params = params + (position,)
    if exclude_id is not None:
        sql += " AND id != ?"
        params = params + (exclude_id,)
    return await ex.fetchone(sql, params) is not None


async def shift_siblings(
    ex: Executor,
    parent_id: str | None,
    from_position: int,
    delta: int,
    *,
    exclude_id: str | None = None,
    now: int | None = None,
) -> int:
    """Add delta to every sibling at position >= from_position. Returns rows touched."""
    clause, params = _parent_clause(parent_id)
    sql = (
        f"UPDATE nodes SET position = position + ?, updated_at = ? "
        f"WHERE {clause} AND position >= ?"
    )
    args: tuple = (delta, now or now_ms()) + params + (from_position,)
    if exclude_id is not None:
        sql += " AND id != ?"
        args = args + (exclude_id,)
    cursor = await ex.execute(sql, args)
    return cursor.rowcount


async def insert_node(
    ex: Executor,
    *,
    content: str,
    content_zh: str,
    parent_id: str | None,
    position: int,
) -> str:
    node_id = str(uuid4())
    now = now_ms()
    await ex.execute(
        """
        INSERT INTO nodes
            (id, content, content_zh, parent_id, position, created_at, updated_at)
        VALUES (?, ?, ?, ?, ?, ?, ?)
        """,
        (node_id, content, content_zh, parent_id, position, now, now),
    )
    return node_id


_UPDATABLE_COLUMNS = {"content", "content_zh", "is_expanded", "node_size", "parent_id", "position"}


async def update_columns(ex: Executor, node_id: str, values: dict) -> None:
    """SET the given columns plus updated_at on one row."""
    unknown = set(values) - _UPDATABLE_COLUMNS
    if unknown:
        raise ValueError(f"Cannot update columns: {sorted(unknown)}")
    assignments = [f"{column} = ?" for column in values] + ["updated_at = ?"]
    params = tuple(values.values()) + (now_ms(), node_id)
    await ex.execute(
        f"UPDATE nodes SET {', '.join(assignments)} WHERE id = ?",  # noqa: S608
        params,
    )


async def ancestor_ids(ex: Executor, node_id: str) -> list[str]:
    """Ids on the parent chain of node_id, nearest first, excluding node_id itself.

    Stops at the first revisited node, and the CTE is depth-capped, so a
    corrupted table cannot loop forever.
    """
    rows = await ex.fetchall(
        """
        WITH RECURSIVE chain(id, parent_id, depth) AS (
            SELECT id, parent_id, 0 FROM nodes WHERE id = ?
            UNION
            SELECT n.id, n.parent_id, chain.depth + 1
            FROM nodes n JOIN chain ON n.id = chain.parent_id
            WHERE chain.depth < 10000
        )
        SELECT id, depth FROM chain WHERE depth > 0 ORDER BY depth
        """,
        (node_id,),
    )
    seen: set[str] = {node_id}
    result: list[str] = []
    for row in rows:
        if row["id"] in seen:
            break
        seen.add(row["id"])
        result.append(row["id"])
    return result


async def subtree_nodes(ex: Executor, root_id: str | None) -> list[NodeResponse]:
    """Every node under root_id (inclusive), or the whole forest when None.

    Rows come back in render order, so grouping them by parent_id yields each
    sibling set already sorted.
    """
    if root_id is None:
        rows = await ex.fetchall(f"SELECT {_NODE_COLUMNS} FROM nodes n ORDER BY {ORDER_BY}")
    else:
        rows = await ex.fetchall(
            f"""
            WITH RECURSIVE subtree(id) AS (
                SELECT id FROM nodes WHERE id = ?
                UNION
                SELECT n.id FROM nodes n JOIN subtree ON n.parent_id = subtree.id
            )
            SELECT {_NODE_COLUMNS} FROM nodes n JOIN subtree s ON s.id = n.id
            ORDER BY {ORDER_BY}
            """,
            (root_id,),
        )
    return [node_from_row(r) for r in rows]


_SUBTREE_DEPTH_CTE = """
    WITH RECURSIVE subtree(id, depth) AS (
        SELECT id, 0 FROM nodes WHERE id = ?
        UNION
        SELECT n.id, subtree.depth + 1
        FROM nodes n JOIN subtree ON n.parent_id = subtree.id
        WHERE subtree.depth < 100000
    )
"""


async def delete_subtree(ex: Executor, node_id: str) -> int:
    """Delete node_id and every descendant. Returns rows removed.

    Deletes one depth level at a time, deepest first, so no row still has
    children when it goes: the FK cascade never fires and never nests past
    SQLite's trigger depth limit on long chains.
    """
    row = await ex.fetchone(
        _SUBTREE_DEPTH_CTE + "SELECT MAX(depth) AS max_depth FROM subtree", (node_id,)
    )
    if row is None or row["max_depth"] is None:
        return 0
    deleted = 0
    for depth in range(row["max_depth"], -1, -1):
        cursor = await ex.execute(
            _SUBTREE_DEPTH_CTE
            + "DELETE FROM nodes WHERE id IN (SELECT id FROM subtree WHERE depth = ?)",
            (node_id, depth),
        )
        deleted += cursor.rowcount
    return deleted


async def previous_sibling(ex: Executor, node: NodeResponse) -> NodeResponse | None:
    """Sibling rendered directly above node, if any."""
    clause, params = _parent_clause(node.parent_id, "n.")
    row = await ex.fetchone(
        f"SELECT {_NODE_COLUMNS} FROM nodes n WHERE {clause} AND n.id != ? "
        f"AND (n.position < ? OR (n.position = ? AND n.created_at < ?)) "
        f"ORDER BY n.position DESC, n.created_at DESC LIMIT 1",
        params + (node.id, node.position, node.position, node.created_at),
    )
    return node_from_row(row) if row else None


async def next_sibling(ex: Executor, node: NodeResponse) -> NodeResponse | None:
    """Sibling rendered directly below node, if any."""
    clause, params = _parent_clause(node.parent_id, "n.")
    row = await ex.fetchone(
        f"SELECT {_NODE_COLUMNS} FROM nodes n WHERE {clause} AND n.id != ? "
        f"AND (n.position > ? OR (n.position = ? AND n.created_at > ?)) "
        f"ORDER BY n.position, n.created_at LIMIT 1",
        params + (node.id, node.position, node.position, node.created_at),
    )
    return node_from_row(row) if row else None


async def set_expanded_all(ex: Executor, expanded: bool) -> int:
    cursor = await ex.execute(
        "UPDATE nodes SET is_expanded = ?, updated_at = ? WHERE is_expanded != ?",
        (int(expanded), now_ms(), int(expanded)),
    )
    return cursor.rowcount


async def flip_expanded(ex: Executor, node_id: str) -> int:
    """Toggle is_expanded in one statement so concurrent flips never collapse into one."""
    cursor = await ex.execute(
        "UPDATE nodes SET is_expanded = NOT is_expanded, updated_at = ? WHERE id = ?",
        (now_ms(), node_id),
    )
    return cursor.rowcount
