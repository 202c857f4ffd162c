"""Export API routes."""

from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from fastapi.responses import JSONResponse

from outliner.export.service import ExportService

router = APIRouter(prefix="/api/nodes", tags=["export"])


def get_export_service() -> ExportService:
    """Dependency placeholder, overridden at startup."""
    raise RuntimeError("ExportService not configured")


@router.get("/export")
async def export_outline(
    format: Literal["json", "markdown"] = Query("json"),
    root_id: str | None = Query(None, alias="rootId"),
    lang: Literal["en", "zh"] = Query("en"),
    service: ExportService = Depends(get_export_service),
) -> Response:
    """Export the whole forest, or the subtree under rootId."""
    if format == "json":
        result = await service.export_json(root_id)
        if result is None:
            raise HTTPException(status_code=404, detail=f"Node not found: {root_id}")
        return JSONResponse(content=result)

    text = await service.export_markdown(root_id, lang=lang)
    if text is None:
        raise HTTPException(status_code=404, detail=f"Node not found: {root_id}")
    filename = f"{root_id or 'outline'}.md"
    return Response(
        content=text,
        media_type="text/markdown",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
