"""Substring search over node content in both display languages."""

import logging

from outliner.db.connection import Database
from outliner.search.schemas import SearchResultItem

logger = logging.getLogger(__name__)

MIN_QUERY_LENGTH = 2


class SearchService:
    """Case-insensitive LIKE search across content and content_zh."""

    def __init__(self, db: Database) -> None:
        self._db = db

    async def search(
        self,
        query: str,
        *,
        exclude_id: str | None = None,
        lang: str = "en",
        limit: int = 100,
    ) -> list[SearchResultItem]:
        """Nodes whose content or content_zh contains query.

        Matches in the requested language's field sort first; otherwise results
        follow tree position. Queries under MIN_QUERY_LENGTH return nothing.
        """
        term = query.strip()
        if len(term) < MIN_QUERY_LENGTH:
            return []

        pattern = f"%{self._escape_like(term)}%"
        primary = "n.content_zh" if lang == "zh" else "n.content"

        clauses = ["(n.content LIKE ? ESCAPE '\\' OR n.content_zh LIKE ? ESCAPE '\\')"]
        params: list[str | int] = [pattern, pattern]
        if exclude_id:
            clauses.append("n.id != ?")
            params.append(exclude_id)

        sql = f"""
            SELECT
                n.id, n.content, n.content_zh, n.parent_id, n.position,
                n.is_expanded, n.has_markdown, n.node_size,
                n.created_at, n.updated_at,
                (SELECT COUNT(*) FROM nodes c WHERE c.parent_id = n.id) AS child_count,
                p.content AS parent_content,
                p.content_zh AS parent_content_zh
            FROM nodes n
            LEFT JOIN nodes p ON p.id = n.parent_id
            WHERE {" AND ".join(clauses)}
            ORDER BY ({primary} LIKE ? ESCAPE '\\') DESC, n.position, n.created_at
            LIMIT ?
        """
        params.extend([pattern, limit])

        rows = await self._db.fetchall(sql, tuple(params))
        logger.debug("Search %r returned %d rows", term, len(rows))

        return [
            SearchResultItem(
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
                parent_content=row["parent_content"],
                parent_content_zh=row["parent_content_zh"],
            )
            for row in rows
        ]

    @staticmethod
    def _escape_like(raw: str) -> str:
        """Escape LIKE wildcards so user input matches literally."""
        return raw.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
