"""Ancestor and descendant lookups over parent links."""

import logging
from collections.abc import AsyncIterator
from typing import Any

from arborist.db.rows import RowStore
from arborist.models import NodeId, TreeColumns
from arborist.tree.errors import DataCorruptionError, NodeNotFoundError

logger = logging.getLogger(__name__)

MAX_LEVEL = 200


class AncestorWalker:
    """Climbs parent links from a node up to its root."""

    def __init__(
        self,
        store: RowStore,
        table: str,
        columns: TreeColumns,
        max_level: int = MAX_LEVEL,
    ) -> None:
        self._store = store
        self._table = table
        self._columns = columns
        self.max_level = max_level

    async def parent_of(self, node_id: NodeId) -> NodeId | None:
        row = await self._store.fetchone(
            self._table, {self._columns.id: node_id}, [self._columns.parent]
        )
        if row is None:
            raise NodeNotFoundError(node_id)
        return row[self._columns.parent]

    async def ancestors(
        self, node_id: NodeId | None, stop_at_missing: bool = False
    ) -> list[NodeId]:
        """Return the ancestor chain, nearest parent first and root last.

        Raises NodeNotFoundError if ``node_id`` or any link in the chain is
        missing (unless ``stop_at_missing``, which ends the chain at the last
        existing ancestor), and DataCorruptionError past ``max_level`` hops.
        """
        chain: list[NodeId] = []
        if node_id is None:
            return chain
        current = await self.parent_of(node_id)
        while current is not None:
            try:
                parent = await self.parent_of(current)
            except NodeNotFoundError:
                if stop_at_missing:
                    break
                raise
            chain.append(current)
            if len(chain) > self.max_level:
                logger.warning("Ancestor chain of %r exceeds %d hops", node_id, self.max_level)
                raise DataCorruptionError(
                    current,
                    f"limit of {self.max_level} nesting levels reached, recursive parent data?",
                )
            current = parent
        return chain

    async def level_of(self, node_id: NodeId | None) -> int:
        return len(await self.ancestors(node_id))

    async def root_of(self, node_id: NodeId, stop_at_missing: bool = False) -> NodeId:
        chain = await self.ancestors(node_id, stop_at_missing)
        return chain[-1] if chain else node_id


class DescendantFinder:
    """Collects every descendant id of a node.

    The traversal is a recursive self-join bounded by the node's cached
    depth, so a stale depth yields a truncated set.
    """

    def __init__(self, store: RowStore, table: str, columns: TreeColumns) -> None:
        self._store = store
        self._table = table
        self._columns = columns

    async def descendants(
        self, node_id: NodeId, empty_on_missing: bool = False
    ) -> list[NodeId]:
        c = self._columns
        row = await self._store.fetchone(self._table, {c.id: node_id}, [c.depth])
        if row is None:
            if empty_on_missing:
                return []
            raise NodeNotFoundError(node_id)
        depth = row[c.depth]
        if not depth:
            return []

        q = TreeColumns.quote_identifier
        table, node, parent = q(self._table), q(c.id), q(c.parent)
        rows = await self._store.db.fetchall(
            f"""
            WITH RECURSIVE branch(node_id, hops) AS (
                SELECT {node}, 1 FROM {table} WHERE {parent} = ?
                UNION
                SELECT n.{node}, b.hops + 1
                FROM {table} n JOIN branch b ON n.{parent} = b.node_id
                WHERE b.hops < ?
            )
            SELECT DISTINCT node_id FROM branch
            """,
            (node_id, depth),
        )
        return [r["node_id"] for r in rows]


async def iter_children(
    store: RowStore,
    table: str,
    columns: TreeColumns,
    parents: list[NodeId] | None,
    fields: list[str],
) -> AsyncIterator[dict[str, Any]]:
    """Yield the direct children of ``parents``, or every root when None.

    ``IN`` lookups are split to respect the store's chunk size.
    """
    if parents is None:
        async for row in store.query(table, {columns.parent: None}, fields):
            yield row
        return
    size = store.max_per_query
    for start in range(0, len(parents), size):
        chunk = parents[start:start + size]
        async for row in store.query(table, {columns.parent: chunk}, fields):
            yield row
