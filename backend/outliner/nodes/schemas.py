"""Request and response schemas for node endpoints."""

from pydantic import BaseModel, ConfigDict, Field

# -- Requests --


class CreateNodeRequest(BaseModel):
    content: str = ""
    content_zh: str = ""
    parent_id: str | None = None
    position: int | None = Field(default=None, ge=0)
    expand_parent: bool = False


class UpdateNodeRequest(BaseModel):
    """Fields to update on a node. Only fields present in the request body are changed.

    ``parent_id`` and ``position`` are applied through the reorder path, so the
    sibling-uniqueness and no-cycle rules hold for PUT as well.
    """

    content: str | None = None
    content_zh: str | None = None
    is_expanded: bool | None = None
    node_size: int | None = Field(default=None, ge=1)
    parent_id: str | None = None
    position: int | None = Field(default=None, ge=0)


class ReorderRequest(BaseModel):
    """Body for POST /api/nodes/reorder. Omitting newPosition appends to the end."""

    model_config = ConfigDict(populate_by_name=True)

    node_id: str = Field(alias="nodeId")
    new_parent_id: str | None = Field(default=None, alias="newParentId")
    new_position: int | None = Field(default=None, ge=0, alias="newPosition")
    expand_parent: bool = Field(default=False, alias="expandParent")


class ShiftPositionsRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    parent_id: str | None = Field(default=None, alias="parentId")
    position: int = Field(ge=0)
    shift: int


class NormalizePositionsRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    parent_id: str | None = Field(default=None, alias="parentId")


# -- Responses --


class NodeResponse(BaseModel):
    id: str
    content: str = ""
    content_zh: str = ""
    parent_id: str | None = None
    position: int
    is_expanded: bool = True
    has_markdown: bool = False
    node_size: int = 20
    child_count: int = 0
    created_at: int
    updated_at: int


class BulkUpdateResponse(BaseModel):
    """Acknowledgement for operations that touch many rows."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    nodes_updated: int = Field(default=0, alias="nodesUpdated")
