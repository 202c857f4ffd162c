"""Outliner FastAPI application entry point."""

import logging
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from outliner.db.connection import Database, StorageError
from outliner.export.router import get_export_service
from outliner.export.router import router as export_router
from outliner.export.service import ExportService
from outliner.nodes.router import get_node_service
from outliner.nodes.router import router as nodes_router
from outliner.nodes.service import NodeService
from outliner.search.router import get_search_service
from outliner.search.router import router as search_router
from outliner.search.service import SearchService

logger = logging.getLogger(__name__)

# Load .env from backend/ directory before reading any settings
load_dotenv(Path(__file__).resolve().parent.parent / ".env")

logging.basicConfig(
    level=os.environ.get("OUTLINER_LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


def _cors_origins() -> list[str]:
    raw = os.environ.get("OUTLINER_CORS_ORIGINS", "http://localhost:5173")
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage database lifecycle and service wiring."""
    db_path = os.environ.get("OUTLINER_DB_PATH", "outliner.db")
    db = await Database.connect(db_path)

    node_service = NodeService(db)
    app.dependency_overrides[get_node_service] = lambda: node_service

    search_svc = SearchService(db)
    app.dependency_overrides[get_search_service] = lambda: search_svc

    export_service = ExportService(db)
    app.dependency_overrides[get_export_service] = lambda: export_service

    app.state.db = db
    yield

    await db.close()
    logger.info("Closed database %s", db_path)


app = FastAPI(
    title="Outliner",
    description="Hierarchical bilingual outliner: ordered node forest with drag-and-drop reordering",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins(),
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError) -> JSONResponse:
    logger.error("Storage failure on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=500, content={"detail": str(exc)})


# Literal /api/nodes/<word> routes must be registered before /api/nodes/{node_id}
app.include_router(search_router)
app.include_router(export_router)
app.include_router(nodes_router)


@app.get("/api/health")
async def health() -> dict:
    return {"status": "ok", "version": "0.1.0"}
