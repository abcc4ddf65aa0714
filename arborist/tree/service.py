"""Node service: maps API requests onto TreeManager operations."""

from typing import Any

from arborist.tree.manager import TreeManager
from arborist.tree.schemas import (
    CreateNodeRequest,
    DescendantsResponse,
    NodeResponse,
    PatchNodeRequest,
    PurgeOrphanedResponse,
)
from arborist.utils.json import parse_json_field


class NodeService:
    """Node CRUD over a table created from the bundled schema."""

    def __init__(self, manager: TreeManager) -> None:
        self._manager = manager
        self._columns = manager.columns

    async def create_node(self, request: CreateNodeRequest) -> NodeResponse:
        node_id = await self._manager.create({
            self._columns.parent: request.parent_id,
            "title": request.title,
            "position": request.position,
            "data": request.data,
        })
        return await self.get_node(node_id)

    async def get_node(self, node_id: int) -> NodeResponse:
        row = await self._manager.get_node(node_id)
        return self._node_from_row(row)

    async def list_nodes(self, root_id: int | None = None) -> list[NodeResponse]:
        """Nodes in hierarchical order, siblings by position."""
        rows = await self._manager.flat_tree(root_id, order_by="position")
        return [self._node_from_row(row) for row in rows]

    async def get_descendants(self, node_id: int) -> DescendantsResponse:
        ids = await self._manager.descendants(node_id)
        return DescendantsResponse(node_id=node_id, descendant_ids=sorted(ids))

    async def update_node(self, node_id: int, request: PatchNodeRequest) -> NodeResponse:
        current = await self._manager.get_node(node_id)
        changeset: dict[str, Any] = {}
        for field_name in request.model_fields_set:
            value = getattr(request, field_name)
            if field_name == "parent_id":
                changeset[self._columns.parent] = value
            elif field_name == "data":
                changeset["data"] = value or {}
            elif value is not None or field_name == "title":
                # position is NOT NULL; an explicit null leaves it alone
                changeset[field_name] = value

        if changeset:
            await self._manager.update(node_id, current[self._columns.parent], changeset)
        return await self.get_node(node_id)

    async def delete_node(self, node_id: int, orphan_removal: bool = True) -> None:
        await self._manager.delete(node_id, orphan_removal=orphan_removal)

    async def purge_node(self, node_id: int) -> NodeResponse:
        await self._manager.purge(node_id)
        return await self.get_node(node_id)

    async def refresh(self, node_id: int | None = None) -> None:
        await self._manager.refresh(node_id)

    async def purge_orphaned(self) -> PurgeOrphanedResponse:
        removed = await self._manager.purge_orphaned()
        return PurgeOrphanedResponse(removed=removed)

    def _node_from_row(self, row: dict) -> NodeResponse:
        c = self._columns
        return NodeResponse(
            node_id=row[c.id],
            parent_id=row[c.parent],
            level=row[c.level],
            depth=row[c.depth],
            title=row.get("title"),
            position=row.get("position") or 0,
            data=parse_json_field(row.get("data")),
        )
