"""Detection and removal of nodes whose parent no longer exists."""

import logging
from collections import defaultdict

from arborist.db.rows import RowStore
from arborist.models import NodeId, TreeColumns
from arborist.tree.walker import DescendantFinder

logger = logging.getLogger(__name__)


class OrphanCollector:
    def __init__(
        self,
        store: RowStore,
        table: str,
        columns: TreeColumns,
        finder: DescendantFinder,
    ) -> None:
        self._store = store
        self._table = table
        self._columns = columns
        self._finder = finder

    async def find_orphans(self) -> dict[NodeId, list[NodeId]]:
        """Map each dangling parent id to the nodes still referencing it."""
        q = TreeColumns.quote_identifier
        table, node, parent = q(self._table), q(self._columns.id), q(self._columns.parent)
        rows = await self._store.db.fetchall(
            f"""
            SELECT n.{node} AS node_id, n.{parent} AS parent_id
            FROM {table} n
            LEFT JOIN {table} p ON n.{parent} = p.{node}
            WHERE n.{parent} IS NOT NULL AND p.{node} IS NULL
            """
        )
        orphans: dict[NodeId, list[NodeId]] = defaultdict(list)
        for row in rows:
            orphans[row["parent_id"]].append(row["node_id"])
        return dict(orphans)

    async def collect(self) -> int:
        """Remove orphans and their branches until none remain.

        Removing one generation can expose another (a descendant missed
        because of a stale cached depth), hence the loop. Returns the number
        of rows deleted.
        """
        c = self._columns
        removed = 0
        passes = 0
        while True:
            orphans = await self.find_orphans()
            if not orphans:
                break
            passes += 1
            for dangling_id, node_ids in orphans.items():
                for node_id in node_ids:
                    branch = await self._finder.descendants(node_id, empty_on_missing=True)
                    removed += await self._store.delete_set(self._table, c.id, branch)
                # Every node still pointing at the dangling id goes in one statement.
                removed += await self._store.delete(self._table, {c.parent: dangling_id})
            logger.debug("Orphan pass %d: %d dangling parent ids", passes, len(orphans))

        if removed:
            logger.info("Purged %d orphaned nodes in %d passes", removed, passes)
        return removed
