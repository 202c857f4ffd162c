"""
Offline integrity check for an outliner database.

Reports sibling sets with duplicate positions, nodes whose parent_id points
at a missing row, and nodes caught in a parent cycle. With --fix, duplicate
positions are renumbered 0..n-1 (keeping position, created_at, id order) and
orphans are moved to the end of the root level.

Usage:
    cd backend
    python scripts/check_tree.py [path/to/outliner.db] [--fix]
"""

import sqlite3
import sys
import time
from collections import defaultdict
from pathlib import Path


def get_db_path() -> Path:
    """Resolve the default database path relative to the backend directory."""
    backend_dir = Path(__file__).resolve().parent.parent
    return backend_dir / "outliner.db"


def find_cycle_members(parents: dict[str, str | None]) -> set[str]:
    """Ids whose parent chain loops back on itself instead of reaching a root."""
    in_cycle: set[str] = set()
    for start in parents:
        seen: list[str] = []
        current: str | None = start
        while current is not None and current in parents and current not in seen:
            seen.append(current)
            current = parents[current]
        if current is not None and current in seen:
            in_cycle.update(seen[seen.index(current):])
    return in_cycle


def check(db_path: Path, fix: bool = False) -> int:
    """Print problems found; return how many there were."""
    conn = sqlite3.connect(str(db_path))
    conn.row_factory = sqlite3.Row

    rows = conn.execute(
        "SELECT id, parent_id, position, created_at FROM nodes "
        "ORDER BY position, created_at, id"
    ).fetchall()
    parents = {r["id"]: r["parent_id"] for r in rows}

    siblings: dict[str | None, list[sqlite3.Row]] = defaultdict(list)
    for row in rows:
        siblings[row["parent_id"]].append(row)

    duplicates = []
    for parent_id, children in siblings.items():
        positions = [c["position"] for c in children]
        if len(positions) != len(set(positions)):
            duplicates.append(parent_id)

    orphans = [r["id"] for r in rows if r["parent_id"] is not None and r["parent_id"] not in parents]
    cycles = find_cycle_members(parents)

    for parent_id in duplicates:
        print(f"Duplicate positions under {parent_id or '<root>'}")
    for node_id in orphans:
        print(f"Orphan node {node_id} (parent {parents[node_id]} missing)")
    for node_id in sorted(cycles):
        print(f"Node {node_id} is part of a parent cycle")

    problems = len(duplicates) + len(orphans) + len(cycles)

    if fix and (duplicates or orphans):
        now = int(time.time() * 1000)
        for parent_id in duplicates:
            for index, child in enumerate(siblings[parent_id]):
                conn.execute(
                    "UPDATE nodes SET position = ?, updated_at = ? WHERE id = ?",
                    (index, now, child["id"]),
                )
            print(f"  Renumbered {len(siblings[parent_id])} node(s) under {parent_id or '<root>'}")

        row = conn.execute(
            "SELECT COALESCE(MAX(position), -1) AS max_pos FROM nodes WHERE parent_id IS NULL"
        ).fetchone()
        next_pos = row["max_pos"] + 1
        for node_id in orphans:
            conn.execute(
                "UPDATE nodes SET parent_id = NULL, position = ?, updated_at = ? WHERE id = ?",
                (next_pos, now, node_id),
            )
            print(f"  Moved orphan {node_id} to root position {next_pos}")
            next_pos += 1
        conn.commit()

    if cycles:
        print("Cycles are reported only; reattach one member with PUT /api/nodes/{id}.")

    conn.close()
    print(f"\nDone. {problems} problem(s) found.")
    return problems


if __name__ == "__main__":
    args = [a for a in sys.argv[1:] if not a.startswith("--")]
    db_path = Path(args[0]) if args else get_db_path()
    if not db_path.exists():
        print(f"Database not found at {db_path}")
        sys.exit(1)
    print(f"Database: {db_path}")
    found = check(db_path, fix="--fix" in sys.argv)
    sys.exit(1 if found and "--fix" not in sys.argv else 0)
