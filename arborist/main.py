"""Arborist FastAPI application entry point."""

import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI

from arborist.db.connection import Database
from arborist.db.schema import NODE_FIELDS_SQL, tree_table_sql
from arborist.tree.manager import TreeManager
from arborist.tree.router import get_node_service
from arborist.tree.router import router as nodes_router
from arborist.tree.service import NodeService


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage database lifecycle and service wiring."""
    load_dotenv(Path(__file__).resolve().parent.parent / ".env")

    table = os.environ.get("ARBORIST_TABLE", "nodes")
    db = await Database.connect(
        os.environ.get("ARBORIST_DB_PATH", "arborist.db"),
        schema=tree_table_sql(table, extra_columns=NODE_FIELDS_SQL),
    )
    manager = TreeManager(db, table=table)
    service = NodeService(manager)
    app.dependency_overrides[get_node_service] = lambda: service

    app.state.db = db
    yield

    await db.close()


app = FastAPI(
    title="Arborist",
    description="Adjacency-list tree storage with cached level and depth",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(nodes_router)


@app.get("/api/health")
async def health() -> dict:
    return {"status": "ok", "version": "0.1.0"}
