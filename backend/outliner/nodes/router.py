"""FastAPI routes for node CRUD and tree restructuring."""

from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from outliner.nodes.schemas import (
    BulkUpdateResponse,
    CreateNodeRequest,
    NodeResponse,
    NormalizePositionsRequest,
    ReorderRequest,
    ShiftPositionsRequest,
    UpdateNodeRequest,
)
from outliner.nodes.service import (
    CyclicReparentError,
    InvalidMoveError,
    InvalidParentError,
    NodeNotFoundError,
    NodeService,
)

router = APIRouter(prefix="/api/nodes", tags=["nodes"])

Lang = Literal["en", "zh"]


def get_node_service() -> NodeService:
    """Dependency placeholder, replaced at app startup."""
    raise RuntimeError("NodeService not initialized")


@router.get("")
async def list_root_nodes(
    lang: Lang = Query("en"),
    service: NodeService = Depends(get_node_service),
) -> list[NodeResponse]:
    # lang only selects which content field the client displays
    return await service.list_roots()


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_node(
    request: CreateNodeRequest,
    service: NodeService = Depends(get_node_service),
) -> NodeResponse:
    try:
        return await service.create_node(request)
    except InvalidParentError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/reorder")
async def reorder_node(
    request: ReorderRequest,
    service: NodeService = Depends(get_node_service),
) -> NodeResponse:
    try:
        return await service.reorder_node(request)
    except NodeNotFoundError:
        raise HTTPException(status_code=404, detail=f"Node not found: {request.node_id}")
    except (InvalidParentError, CyclicReparentError) as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/reorder/shift")
async def shift_positions(
    request: ShiftPositionsRequest,
    service: NodeService = Depends(get_node_service),
) -> BulkUpdateResponse:
    try:
        updated = await service.shift_positions(
            request.parent_id, request.position, request.shift
        )
    except (InvalidParentError, InvalidMoveError) as e:
        raise HTTPException(status_code=400, detail=str(e))
    return BulkUpdateResponse(nodes_updated=updated)


@router.post("/normalize")
async def normalize_positions(
    request: NormalizePositionsRequest,
    service: NodeService = Depends(get_node_service),
) -> BulkUpdateResponse:
    try:
        updated = await service.normalize_positions(request.parent_id)
    except InvalidParentError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return BulkUpdateResponse(nodes_updated=updated)


@router.post("/expand-all")
async def expand_all(
    service: NodeService = Depends(get_node_service),
) -> BulkUpdateResponse:
    return BulkUpdateResponse(nodes_updated=await service.set_all_expanded(True))


@router.post("/collapse-all")
async def collapse_all(
    service: NodeService = Depends(get_node_service),
) -> BulkUpdateResponse:
    return BulkUpdateResponse(nodes_updated=await service.set_all_expanded(False))


@router.get("/{node_id}")
async def get_node(
    node_id: str,
    service: NodeService = Depends(get_node_service),
) -> NodeResponse:
    node = await service.get_node(node_id)
    if node is None:
        raise HTTPException(status_code=404, detail=f"Node not found: {node_id}")
    return node


@router.put("/{node_id}")
async def update_node(
    node_id: str,
    request: UpdateNodeRequest,
    service: NodeService = Depends(get_node_service),
) -> NodeResponse:
    try:
        return await service.update_node(node_id, request)
    except NodeNotFoundError:
        raise HTTPException(status_code=404, detail=f"Node not found: {node_id}")
    except (InvalidParentError, CyclicReparentError) as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.delete("/{node_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_node(
    node_id: str,
    service: NodeService = Depends(get_node_service),
) -> Response:
    await service.delete_node(node_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{node_id}/children")
async def get_child_nodes(
    node_id: str,
    lang: Lang = Query("en"),
    service: NodeService = Depends(get_node_service),
) -> list[NodeResponse]:
    try:
        return await service.get_children(node_id)
    except NodeNotFoundError:
        raise HTTPException(status_code=404, detail=f"Node not found: {node_id}")


@router.get("/{node_id}/path")
async def get_node_path(
    node_id: str,
    service: NodeService = Depends(get_node_service),
) -> list[NodeResponse]:
    try:
        return await service.get_path(node_id)
    except NodeNotFoundError:
        raise HTTPException(status_code=404, detail=f"Node not found: {node_id}")


@router.get("/{node_id}/above")
async def get_node_above(
    node_id: str,
    service: NodeService = Depends(get_node_service),
) -> NodeResponse:
    try:
        above = await service.get_node_above(node_id)
    except NodeNotFoundError:
        raise HTTPException(status_code=404, detail=f"Node not found: {node_id}")
    if above is None:
        raise HTTPException(status_code=404, detail="No node above")
    return above


@router.post("/{node_id}/toggle")
async def toggle_node(
    node_id: str,
    service: NodeService = Depends(get_node_service),
) -> NodeResponse:
    try:
        return await service.toggle_node(node_id)
    except NodeNotFoundError:
        raise HTTPException(status_code=404, detail=f"Node not found: {node_id}")


@router.post("/{node_id}/indent")
async def indent_node(
    node_id: str,
    service: NodeService = Depends(get_node_service),
) -> NodeResponse:
    try:
        return await service.indent_node(node_id)
    except NodeNotFoundError:
        raise HTTPException(status_code=404, detail=f"Node not found: {node_id}")
    except InvalidMoveError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/{node_id}/outdent")
async def outdent_node(
    node_id: str,
    service: NodeService = Depends(get_node_service),
) -> NodeResponse:
    try:
        return await service.outdent_node(node_id)
    except NodeNotFoundError:
        raise HTTPException(status_code=404, detail=f"Node not found: {node_id}")
    except InvalidMoveError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/{node_id}/move-up")
async def move_node_up(
    node_id: str,
    service: NodeService = Depends(get_node_service),
) -> NodeResponse:
    try:
        return await service.move_node_up(node_id)
    except NodeNotFoundError:
        raise HTTPException(status_code=404, detail=f"Node not found: {node_id}")
    except InvalidMoveError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/{node_id}/move-down")
async def move_node_down(
    node_id: str,
    service: NodeService = Depends(get_node_service),
) -> NodeResponse:
    try:
        return await service.move_node_down(node_id)
    except NodeNotFoundError:
        raise HTTPException(status_code=404, detail=f"Node not found: {node_id}")
    except InvalidMoveError as e:
        raise HTTPException(status_code=400, detail=str(e))
