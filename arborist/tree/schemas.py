"""Request and response schemas for node endpoints."""

from pydantic import BaseModel, Field

# -- Requests --


class CreateNodeRequest(BaseModel):
    parent_id: int | None = None
    title: str | None = None
    position: int = 0
    data: dict = Field(default_factory=dict)


class PatchNodeRequest(BaseModel):
    """Fields to update on a node. Only fields present in the request body are changed."""

    parent_id: int | None = None
    title: str | None = None
    position: int | None = None
    data: dict | None = None


# -- Responses --


class NodeResponse(BaseModel):
    node_id: int
    parent_id: int | None = None
    level: int = 0
    depth: int = 0
    title: str | None = None
    position: int = 0
    data: dict = Field(default_factory=dict)


class DescendantsResponse(BaseModel):
    node_id: int
    descendant_ids: list[int]


class PurgeOrphanedResponse(BaseModel):
    removed: int
