"""Search API routes."""

from typing import Literal

from fastapi import APIRouter, Depends, Query

from outliner.search.schemas import SearchResultItem
from outliner.search.service import SearchService

router = APIRouter(prefix="/api/nodes", tags=["search"])


def get_search_service() -> SearchService:
    """Dependency placeholder, overridden at startup."""
    raise RuntimeError("SearchService not configured")


@router.get("/search")
async def search_nodes(
    q: str = Query(""),
    exclude_id: str | None = Query(None, alias="excludeId"),
    lang: Literal["en", "zh"] = Query("en"),
    limit: int = Query(100, ge=1, le=200),
    service: SearchService = Depends(get_search_service),
) -> list[SearchResultItem]:
    """Substring search across both content fields."""
    return await service.search(q, exclude_id=exclude_id, lang=lang, limit=limit)
