"""Shared pytest fixtures for arborist tests."""

import pytest
from httpx import ASGITransport, AsyncClient

from arborist.db.connection import Database
from arborist.main import app
from arborist.tree.manager import TreeManager
from arborist.tree.router import get_node_service
from arborist.tree.service import NodeService


@pytest.fixture
async def db():
    """In-memory database for tests."""
    database = await Database.connect(":memory:")
    yield database
    await database.close()


@pytest.fixture
async def manager(db):
    """TreeManager over the bundled nodes table."""
    return TreeManager(db)


@pytest.fixture
async def client(manager):
    """Async test client with in-memory DB wired into the app."""
    service = NodeService(manager)
    app.dependency_overrides[get_node_service] = lambda: service
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client
    app.dependency_overrides.clear()
