"""Level refresh: breadth-first recomputation of cached levels in a branch."""

import logging
from collections import defaultdict

from arborist.db.rows import RowStore
from arborist.models import NodeId, TreeColumns
from arborist.tree.depths import DepthRefresher
from arborist.tree.errors import DataCorruptionError
from arborist.tree.walker import AncestorWalker, iter_children

logger = logging.getLogger(__name__)


class LevelRefresher:
    """Recomputes the level of every node below a starting point.

    After writing levels it hands the top-most node of the branch to the
    depth refresher, so one call leaves both cached columns consistent.
    """

    def __init__(
        self,
        store: RowStore,
        table: str,
        columns: TreeColumns,
        walker: AncestorWalker,
        depths: DepthRefresher,
    ) -> None:
        self._store = store
        self._table = table
        self._columns = columns
        self._walker = walker
        self._depths = depths

    async def refresh(self, node_id: NodeId | None) -> None:
        """Refresh the branch rooted at ``node_id``, or every tree if None."""
        c = self._columns
        chain = await self._walker.ancestors(node_id)

        # target level -> ids whose stored level is wrong
        staged: dict[int, set[NodeId]] = defaultdict(set)
        visited: set[NodeId] = set()
        parents: list[NodeId] | None = None
        child_level = 0
        if node_id is not None:
            staged[len(chain)].add(node_id)
            visited.add(node_id)
            parents = [node_id]
            child_level = len(chain) + 1

        # Every descendant is visited, stale or not: a correct level does not
        # imply a correct subtree.
        while parents is None or parents:
            next_parents: list[NodeId] = []
            async for child in iter_children(
                self._store, self._table, c, parents, [c.id, c.level]
            ):
                child_id = child[c.id]
                if child_id in visited or child_id in staged[child_level]:
                    logger.warning("Node %r reached twice during level refresh", child_id)
                    raise DataCorruptionError(child_id, "recursive dependency")
                visited.add(child_id)
                if child[c.level] != child_level:
                    staged[child_level].add(child_id)
                next_parents.append(child_id)
            parents = next_parents
            child_level += 1

        for level, ids in sorted(staged.items()):
            if ids:
                await self._store.update_set(self._table, c.id, ids, {c.level: level})
        logger.debug(
            "Level refresh from %r: %d nodes visited, %d rewritten",
            node_id,
            len(visited),
            sum(len(ids) for ids in staged.values()),
        )

        top = chain[-1] if chain else node_id
        await self._depths.refresh(top, is_root=True)
