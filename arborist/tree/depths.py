"""Depth refresh: recompute subtree heights along every path of a branch."""

import logging
from collections import defaultdict

from arborist.db.rows import RowStore
from arborist.models import NodeId, TreeColumns
from arborist.tree.errors import DataCorruptionError
from arborist.tree.walker import AncestorWalker, iter_children

logger = logging.getLogger(__name__)


class DepthRefresher:
    """Recomputes the cached depth of every node in a root's tree."""

    def __init__(
        self,
        store: RowStore,
        table: str,
        columns: TreeColumns,
        walker: AncestorWalker,
    ) -> None:
        self._store = store
        self._table = table
        self._columns = columns
        self._walker = walker

    async def refresh(self, node_id: NodeId | None, is_root: bool = False) -> None:
        """Refresh the whole tree containing ``node_id``.

        The true root is resolved first unless ``is_root`` is set. ``None``
        refreshes every tree in the table.
        """
        c = self._columns
        root_id = node_id
        if node_id is not None and not is_root:
            root_id = await self._walker.root_of(node_id)

        computed: dict[NodeId, int] = {}
        stored: dict[NodeId, int] = {}

        # (id, ancestors nearest-first) pairs of the current BFS layer
        layer: list[tuple[NodeId, list[NodeId]]] = []
        if root_id is None:
            async for row in iter_children(self._store, self._table, c, None, [c.id, c.depth]):
                stored[row[c.id]] = row[c.depth]
                layer.append((row[c.id], []))
        else:
            row = await self._store.fetchone(self._table, {c.id: root_id}, [c.id, c.depth])
            if row is None:
                # Nothing left to refresh, e.g. the branch was deleted.
                return
            stored[root_id] = row[c.depth]
            layer.append((root_id, []))

        while layer:
            children: dict[NodeId, list[NodeId]] = defaultdict(list)
            async for row in iter_children(
                self._store, self._table, c, [node for node, _ in layer], [c.id, c.parent, c.depth]
            ):
                child_id = row[c.id]
                if child_id in stored:
                    logger.warning("Node %r reached twice during depth refresh", child_id)
                    raise DataCorruptionError(child_id, "recursive dependency")
                stored[child_id] = row[c.depth]
                children[row[c.parent]].append(child_id)

            next_layer: list[tuple[NodeId, list[NodeId]]] = []
            for node, chain in layer:
                computed.setdefault(node, 0)
                kids = children.get(node)
                if not kids:
                    for distance, ancestor in enumerate(chain, start=1):
                        if computed.get(ancestor, 0) < distance:
                            computed[ancestor] = distance
                    continue
                child_chain = [node, *chain]
                next_layer.extend((kid, child_chain) for kid in kids)
            layer = next_layer

        depthsets: dict[int, list[NodeId]] = defaultdict(list)
        for node, depth in computed.items():
            if stored.get(node) != depth:
                depthsets[depth].append(node)
        for depth, ids in sorted(depthsets.items()):
            await self._store.update_set(self._table, c.id, ids, {c.depth: depth})
        logger.debug(
            "Depth refresh from %r: %d nodes visited, %d rewritten",
            root_id,
            len(computed),
            sum(len(ids) for ids in depthsets.values()),
        )
