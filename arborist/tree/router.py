"""FastAPI routes for node CRUD and tree maintenance."""

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from arborist.tree.errors import (
    ConfigurationError,
    DataCorruptionError,
    NodeNotFoundError,
    StructuralError,
)
from arborist.tree.schemas import (
    CreateNodeRequest,
    DescendantsResponse,
    NodeResponse,
    PatchNodeRequest,
    PurgeOrphanedResponse,
)
from arborist.tree.service import NodeService

router = APIRouter(prefix="/api/nodes", tags=["nodes"])


def get_node_service() -> NodeService:
    """Dependency placeholder, replaced at app startup."""
    raise RuntimeError("NodeService not initialized")


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_node(
    request: CreateNodeRequest,
    service: NodeService = Depends(get_node_service),
) -> NodeResponse:
    try:
        return await service.create_node(request)
    except NodeNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except DataCorruptionError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.get("")
async def list_nodes(
    root_id: int | None = Query(default=None),
    service: NodeService = Depends(get_node_service),
) -> list[NodeResponse]:
    try:
        return await service.list_nodes(root_id)
    except NodeNotFoundError:
        raise HTTPException(status_code=404, detail=f"Node not found: {root_id}")
    except DataCorruptionError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.post("/refresh")
async def refresh_tree(
    node_id: int | None = Query(default=None),
    service: NodeService = Depends(get_node_service),
) -> dict:
    try:
        await service.refresh(node_id)
    except NodeNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except DataCorruptionError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return {"status": "ok"}


@router.post("/purge-orphaned")
async def purge_orphaned(
    service: NodeService = Depends(get_node_service),
) -> PurgeOrphanedResponse:
    try:
        return await service.purge_orphaned()
    except DataCorruptionError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.get("/{node_id}")
async def get_node(
    node_id: int,
    service: NodeService = Depends(get_node_service),
) -> NodeResponse:
    try:
        return await service.get_node(node_id)
    except NodeNotFoundError:
        raise HTTPException(status_code=404, detail=f"Node not found: {node_id}")


@router.get("/{node_id}/descendants")
async def get_descendants(
    node_id: int,
    service: NodeService = Depends(get_node_service),
) -> DescendantsResponse:
    try:
        return await service.get_descendants(node_id)
    except NodeNotFoundError:
        raise HTTPException(status_code=404, detail=f"Node not found: {node_id}")


@router.patch("/{node_id}")
async def update_node(
    node_id: int,
    request: PatchNodeRequest,
    service: NodeService = Depends(get_node_service),
) -> NodeResponse:
    try:
        return await service.update_node(node_id, request)
    except NodeNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except (StructuralError, ConfigurationError) as e:
        raise HTTPException(status_code=400, detail=str(e))
    except DataCorruptionError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.delete("/{node_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_node(
    node_id: int,
    orphan_removal: bool = Query(default=True),
    service: NodeService = Depends(get_node_service),
) -> Response:
    try:
        await service.delete_node(node_id, orphan_removal=orphan_removal)
    except NodeNotFoundError:
        raise HTTPException(status_code=404, detail=f"Node not found: {node_id}")
    except DataCorruptionError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{node_id}/purge")
async def purge_node(
    node_id: int,
    service: NodeService = Depends(get_node_service),
) -> NodeResponse:
    try:
        return await service.purge_node(node_id)
    except NodeNotFoundError:
        raise HTTPException(status_code=404, detail=f"Node not found: {node_id}")
    except DataCorruptionError as e:
        raise HTTPException(status_code=409, detail=str(e))
