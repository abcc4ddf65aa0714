"""Shared test helpers: tree builders and an invariant checker."""

from collections import defaultdict
from typing import Any

from arborist.db.connection import Database
from arborist.models import TreeColumns
from arborist.tree.manager import TreeManager


async def build_tree(
    manager: TreeManager, edges: dict[str, str | None], **fields: Any
) -> dict[str, int]:
    """Create nodes from a name -> parent name mapping, parents listed first.

    Each node's title is its name. Returns name -> id.
    """
    ids: dict[str, int] = {}
    for name, parent in edges.items():
        data = {manager.columns.parent: ids[parent] if parent else None, "title": name}
        data.update(fields)
        ids[name] = await manager.create(data)
    return ids


async def insert_raw(db: Database, table: str = "nodes", **row: Any) -> int:
    """Insert a row bypassing the tree manager (for stale or corrupt data)."""
    if not row:
        cursor = await db.execute(f"INSERT INTO {table} DEFAULT VALUES")
        return cursor.lastrowid
    columns = ", ".join(row)
    placeholders = ", ".join("?" for _ in row)
    cursor = await db.execute(
        f"INSERT INTO {table} ({columns}) VALUES ({placeholders})", tuple(row.values())
    )
    return cursor.lastrowid


async def load_rows(
    db: Database, table: str = "nodes", columns: TreeColumns | None = None
) -> dict[Any, dict]:
    """All rows of ``table`` keyed by id."""
    columns = columns or TreeColumns()
    rows = await db.fetchall(f"SELECT * FROM {TreeColumns.quote_identifier(table)}")
    return {row[columns.id]: dict(row) for row in rows}


async def assert_consistent(
    db: Database, table: str = "nodes", columns: TreeColumns | None = None
) -> None:
    """Assert the level and depth invariants hold for every row."""
    c = columns or TreeColumns()
    nodes = await load_rows(db, table, c)
    children: dict[Any, list] = defaultdict(list)
    for node_id, node in nodes.items():
        parent = node[c.parent]
        assert parent is None or parent in nodes, f"node {node_id} has dangling parent {parent}"
        if parent is not None:
            children[parent].append(node_id)

    for node_id, node in nodes.items():
        parent = node[c.parent]
        expected_level = 0 if parent is None else nodes[parent][c.level] + 1
        assert node[c.level] == expected_level, (
            f"node {node_id}: level {node[c.level]} != {expected_level}"
        )
        kids = children.get(node_id)
        expected_depth = 1 + max(nodes[k][c.depth] for k in kids) if kids else 0
        assert node[c.depth] == expected_depth, (
            f"node {node_id}: depth {node[c.depth]} != {expected_depth}"
        )
