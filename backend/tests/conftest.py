"""Shared pytest fixtures for outliner tests."""

import pytest
from httpx import ASGITransport, AsyncClient

from outliner.db.connection import Database
from outliner.export.router import get_export_service
from outliner.export.service import ExportService
from outliner.main import app
from outliner.nodes.router import get_node_service
from outliner.nodes.service import NodeService
from outliner.search.router import get_search_service
from outliner.search.service import SearchService


@pytest.fixture
async def db():
    """In-memory database for tests."""
    database = await Database.connect(":memory:")
    yield database
    await database.close()


@pytest.fixture
async def service(db):
    """NodeService backed by in-memory database."""
    return NodeService(db)


@pytest.fixture
async def client(db):
    """Async test client with in-memory DB wired into the app."""
    node_service = NodeService(db)
    search_service = SearchService(db)
    export_service = ExportService(db)
    app.dependency_overrides[get_node_service] = lambda: node_service
    app.dependency_overrides[get_search_service] = lambda: search_service
    app.dependency_overrides[get_export_service] = lambda: export_service
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client
    app.dependency_overrides.clear()
