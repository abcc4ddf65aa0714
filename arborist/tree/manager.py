"""Tree manager: keeps cached level/depth columns of an adjacency-list table consistent.

Every mutating method validates, writes the rows, then refreshes the
affected branch. None of it is atomic; wrap calls in an external
transaction when partial failure matters, and re-run ``refresh`` or
``purge_orphaned`` to repair a tree left half-refreshed.
"""

import logging
from collections import defaultdict
from collections.abc import Iterable, Mapping
from typing import Any

from arborist.db.connection import Database
from arborist.db.rows import DEFAULT_MAX_PER_QUERY, RowStore
from arborist.models import NodeId, TreeColumns
from arborist.tree.depths import DepthRefresher
from arborist.tree.errors import (
    ConfigurationError,
    DataCorruptionError,
    NodeNotFoundError,
    StructuralError,
)
from arborist.tree.levels import LevelRefresher
from arborist.tree.orphans import OrphanCollector
from arborist.tree.propagate import ContextUpdater, Propagator, propagate_changes
from arborist.tree.walker import MAX_LEVEL, AncestorWalker, DescendantFinder

logger = logging.getLogger(__name__)


class TreeManager:
    """Sole writer of the level and depth columns of one tree table."""

    def __init__(
        self,
        db: Database,
        table: str = "nodes",
        id_column: str | None = None,
        parent_column: str | None = None,
        level_column: str | None = None,
        depth_column: str | None = None,
        *,
        max_per_query: int = DEFAULT_MAX_PER_QUERY,
        max_level: int = MAX_LEVEL,
    ) -> None:
        self.table = TreeColumns.validate_identifier(table)
        overrides = {
            "id": id_column,
            "parent": parent_column,
            "level": level_column,
            "depth": depth_column,
        }
        self.columns = TreeColumns(**{k: v for k, v in overrides.items() if v})
        self._store = RowStore(db, max_per_query=max_per_query)
        self._walker = AncestorWalker(self._store, self.table, self.columns, max_level)
        self._finder = DescendantFinder(self._store, self.table, self.columns)
        self._depths = DepthRefresher(self._store, self.table, self.columns, self._walker)
        self._levels = LevelRefresher(
            self._store, self.table, self.columns, self._walker, self._depths
        )
        self._orphans = OrphanCollector(self._store, self.table, self.columns, self._finder)

    # -- Reads --

    async def get_node(self, node_id: NodeId) -> dict[str, Any]:
        row = await self._store.fetchone(self.table, {self.columns.id: node_id})
        if row is None:
            raise NodeNotFoundError(node_id)
        return row

    async def ancestors(self, node_id: NodeId) -> list[NodeId]:
        """Ancestor ids, nearest parent first."""
        return await self._walker.ancestors(node_id)

    async def descendants(self, node_id: NodeId) -> list[NodeId]:
        return await self._finder.descendants(node_id)

    async def get_level(self, node_id: NodeId) -> int:
        """Level computed from the parent chain, ignoring the cached column."""
        return await self._walker.level_of(node_id)

    async def get_root(self, node_id: NodeId) -> NodeId:
        return await self._walker.root_of(node_id)

    async def flat_tree(
        self, node_id: NodeId | None = None, order_by: str | None = None
    ) -> list[dict[str, Any]]:
        """Load a branch (or the whole forest) as a pre-ordered flat listing.

        Parents come before their children and siblings are sorted by
        ``order_by`` then id. Nodes unreachable from a root (orphans) are
        left out.
        """
        c = self.columns
        if node_id is None:
            rows = [row async for row in self._store.query(self.table, {})]
            tops = [row for row in rows if row[c.parent] is None]
        else:
            top = await self.get_node(node_id)
            ids = await self._finder.descendants(node_id)
            rows = [top]
            for start in range(0, len(ids), self._store.max_per_query):
                chunk = ids[start:start + self._store.max_per_query]
                rows.extend([row async for row in self._store.query(self.table, {c.id: chunk})])
            tops = [top]

        def sort_key(row: Mapping[str, Any]) -> tuple:
            primary = row.get(order_by) if order_by else None
            return (primary is None, primary if primary is not None else 0, row[c.id])

        children: dict[NodeId, list[dict[str, Any]]] = defaultdict(list)
        for row in rows:
            if row[c.parent] is not None:
                children[row[c.parent]].append(row)

        listing: list[dict[str, Any]] = []
        seen: set[NodeId] = set()
        stack = sorted(tops, key=sort_key, reverse=True)
        while stack:
            row = stack.pop()
            if row[c.id] in seen:
                raise DataCorruptionError(row[c.id], "recursive dependency")
            seen.add(row[c.id])
            listing.append(row)
            stack.extend(sorted(children.get(row[c.id], []), key=sort_key, reverse=True))
        return listing

    async def check_parent(self, node_id: NodeId, parent_id: NodeId | None) -> bool:
        """Whether ``parent_id`` may become the parent of ``node_id``."""
        if parent_id is None:
            return True
        if parent_id == node_id:
            return False
        return parent_id not in await self._finder.descendants(node_id, empty_on_missing=True)

    # -- Mutations --

    async def create(self, data: Mapping[str, Any], refresh: bool = True) -> NodeId:
        """Insert a node and return its id."""
        c = self.columns
        self._reject_reserved(data, c.derived)
        row = {c.parent: None, **data, c.level: 0, c.depth: 0}
        parent_id = row[c.parent]
        if parent_id is not None and not await self._exists(parent_id):
            raise NodeNotFoundError(parent_id)

        node_id = await self._store.insert(self.table, row)
        if refresh and parent_id is not None:
            await self._levels.refresh(node_id)
        return node_id

    async def update(
        self,
        node_id: NodeId,
        old_parent: NodeId | None,
        changeset: Mapping[str, Any],
        refresh: bool = True,
    ) -> None:
        """Apply ``changeset`` to a node, validating any parent change.

        ``old_parent`` is the node's parent before this update; the caller
        already holds it, and it scopes the depth refresh of the old branch.
        """
        c = self.columns
        self._reject_reserved(changeset, c.derived | {c.id})

        has_new_parent = c.parent in changeset
        new_parent = changeset.get(c.parent)
        if has_new_parent:
            if not await self.check_parent(node_id, new_parent):
                raise StructuralError(node_id, new_parent)
            if new_parent is not None and not await self._exists(new_parent):
                raise NodeNotFoundError(new_parent)

        await self._store.update(self.table, {c.id: node_id}, changeset)

        if refresh and has_new_parent:
            await self.refresh_on_parent_update(node_id, new_parent, old_parent)

    async def refresh_on_parent_update(
        self,
        node_id: NodeId,
        new_parent: NodeId | None,
        old_parent: NodeId | None,
    ) -> None:
        """Refresh both branches touched by a move. No-op if the parent is unchanged."""
        if new_parent == old_parent:
            return
        await self._levels.refresh(node_id)
        # The old parent may be gone, or may sit in an orphaned branch.
        if old_parent is None or not await self._exists(old_parent):
            return
        old_root = await self._walker.root_of(old_parent, stop_at_missing=True)
        await self._depths.refresh(old_root, is_root=True)

    async def delete(self, node_id: NodeId, orphan_removal: bool = True) -> None:
        """Delete a node, and its whole branch when ``orphan_removal`` is set.

        Without ``orphan_removal`` the children keep pointing at the deleted
        id until ``purge_orphaned`` runs.
        """
        c = self.columns
        # An orphan is deletable; its branch is refreshed from the last
        # ancestor that still exists.
        root_id = await self._walker.root_of(node_id, stop_at_missing=True)
        if orphan_removal:
            await self._store.delete_set(
                self.table, c.id, await self._finder.descendants(node_id)
            )
        await self._store.delete(self.table, {c.id: node_id})
        if root_id != node_id:
            await self._depths.refresh(root_id, is_root=True)

    async def purge(self, node_id: NodeId) -> None:
        """Delete every descendant of a node but keep the node itself."""
        await self._store.delete_set(
            self.table, self.columns.id, await self._finder.descendants(node_id)
        )
        # The whole branch, so ancestors shrink along with the node.
        await self._depths.refresh(node_id)

    async def refresh(self, node_id: NodeId | None = None) -> None:
        """Recompute level and depth below ``node_id``, or everywhere if None."""
        await self._levels.refresh(node_id)

    async def purge_orphaned(self, refresh: bool = True) -> int:
        """Delete nodes with unresolvable parents, with their branches.

        Returns the number of rows removed.
        """
        removed = await self._orphans.collect()
        if refresh:
            await self._levels.refresh(None)
        return removed

    async def propagate(
        self,
        flat_tree: Iterable[Mapping[str, Any]],
        context: Any,
        propagator: Propagator,
        context_updater: ContextUpdater,
        return_map: bool = False,
    ) -> dict[NodeId, dict[str, Any]] | None:
        """Cascade ``context`` down ``flat_tree``; see ``propagate_changes``.

        With ``return_map`` the id -> changeset map is returned; otherwise it
        is written in one batched multi-row update.
        """
        changesets = propagate_changes(
            flat_tree,
            context,
            propagator,
            context_updater,
            id_column=self.columns.id,
            level_column=self.columns.level,
        )
        if return_map:
            return changesets
        for changeset in changesets.values():
            self._reject_reserved(changeset, self.columns.structural)
        await self._store.update_set_multi(self.table, self.columns.id, changesets)
        return None

    # -- Helpers --

    async def _exists(self, node_id: NodeId) -> bool:
        row = await self._store.fetchone(
            self.table, {self.columns.id: node_id}, [self.columns.id]
        )
        return row is not None

    @staticmethod
    def _reject_reserved(data: Mapping[str, Any], reserved: Iterable[str]) -> None:
        clashes = set(data) & set(reserved)
        if clashes:
            raise ConfigurationError(clashes)
