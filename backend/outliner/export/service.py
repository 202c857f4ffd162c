"""Export service: nested JSON and indented markdown outlines."""

from outliner.db.connection import Database
from outliner.nodes import store
from outliner.utils.clock import ms_to_iso, now_ms


class ExportService:
    """Builds export artifacts from the node table.

    Reads happen inside one transaction so an export never mixes states from
    before and after a concurrent move.
    """

    def __init__(self, db: Database) -> None:
        self._db = db

    async def export_json(self, root_id: str | None = None) -> dict | None:
        """Export the forest (or one subtree) as nested dicts.

        Returns None if root_id is given but not found.
        """
        forest = await self._load(root_id)
        if forest is None:
            return None
        return {
            "exported_at": ms_to_iso(now_ms()),
            "root_id": root_id,
            "nodes": forest,
        }

    async def export_markdown(self, root_id: str | None = None, lang: str = "en") -> str | None:
        """Export as a markdown bullet list, two spaces of indent per level."""
        forest = await self._load(root_id)
        if forest is None:
            return None
        lines: list[str] = []
        stack = [(node, 0) for node in reversed(forest)]
        while stack:
            node, depth = stack.pop()
            text = display_text(node, lang).replace("\n", " ").strip()
            lines.append(f"{'  ' * depth}- {text}")
            stack.extend((child, depth + 1) for child in reversed(node["children"]))
        return "\n".join(lines) + ("\n" if lines else "")

    async def _load(self, root_id: str | None) -> list[dict] | None:
        """Nested entries for the forest or one subtree, built without recursion."""
        async with self._db.transaction() as tx:
            if root_id is not None and not await store.node_exists(tx, root_id):
                return None
            nodes = await store.subtree_nodes(tx, root_id)

        entries: dict[str, dict] = {}
        for node in nodes:
            entry = node.model_dump()
            entry["children"] = []
            entries[node.id] = entry

        roots: list[dict] = []
        for node in nodes:
            if node.id == root_id or (root_id is None and node.parent_id is None):
                roots.append(entries[node.id])
            elif node.parent_id in entries:
                entries[node.parent_id]["children"].append(entries[node.id])
        return roots


def display_text(node: dict, lang: str) -> str:
    """Text for the chosen language; Chinese falls back to English when empty."""
    if lang == "zh":
        return node.get("content_zh") or node.get("content") or ""
    return node.get("content") or ""
