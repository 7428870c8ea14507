"""
Layer Routes
=============

API routes for a session's drawing layers: listing, creation and deletion,
renaming and styling, visibility, locking, opacity, stacking order and
component membership.
"""

from fastapi import APIRouter, HTTPException
from typing import Optional, List
from pydantic import BaseModel, Field

from ..models.layer_models import Layer, LayerCategory, LayerSummary, LineType

router = APIRouter(prefix="/api/layers", tags=["layers"])

# Injected by server
state_manager = None


class CreateLayerRequest(BaseModel):
    name: str = Field(min_length=1)
    id: Optional[str] = None
    category: LayerCategory = LayerCategory.CUSTOM
    description: str = ""
    color: Optional[str] = None
    stroke_width: Optional[float] = Field(default=None, gt=0)
    line_type: Optional[LineType] = None
    opacity: Optional[float] = Field(default=None, ge=0.0, le=1.0)


class UpdateLayerRequest(BaseModel):
    """Name and style changes; omitted fields are left as they are."""
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    color: Optional[str] = None
    stroke_width: Optional[float] = Field(default=None, gt=0)
    line_type: Optional[LineType] = None
    printable: Optional[bool] = None


class VisibilityRequest(BaseModel):
    visible: bool


class LockRequest(BaseModel):
    locked: bool


class OpacityRequest(BaseModel):
    opacity: float


class ReorderRequest(BaseModel):
    from_index: int
    to_index: int


class AssignRequest(BaseModel):
    component_id: str


def _get_session(session_id: str):
    if not state_manager:
        raise HTTPException(status_code=500, detail="State manager not initialized")

    session = state_manager.get_session(session_id)
    if not session:
        raise HTTPException(status_code=404, detail="Session not found")
    return session


@router.get("/{session_id}")
async def list_layers(session_id: str, include_members: bool = False) -> List[LayerSummary]:
    """Layers bottom to top."""
    return _get_session(session_id).layers.summaries(include_members=include_members)


@router.get("/{session_id}/{layer_id}")
async def get_layer(session_id: str, layer_id: str) -> Layer:
    return _get_session(session_id).layers.get_layer(layer_id)


@router.post("/{session_id}")
async def create_layer(session_id: str, request: CreateLayerRequest) -> Layer:
    """Create a layer on top of the stack."""
    session = _get_session(session_id)
    attributes = request.model_dump(
        exclude={"name", "id", "category"},
        exclude_none=True
    )
    return session.layers.create_layer(
        request.name,
        category=request.category,
        layer_id=request.id,
        **attributes
    )


@router.delete("/{session_id}/{layer_id}")
async def delete_layer(session_id: str, layer_id: str, force: bool = False):
    """Delete a layer; ``force`` moves its components to the default layer."""
    session = _get_session(session_id)
    moved = session.layers.delete_layer(layer_id, force=force)
    return {"message": "Layer deleted", "layer_id": layer_id, "moved_component_ids": moved}


@router.put("/{session_id}/{layer_id}")
async def update_layer(session_id: str, layer_id: str, request: UpdateLayerRequest) -> Layer:
    """Rename a layer or change its color, stroke width or line type."""
    session = _get_session(session_id)
    return session.layers.update_layer(layer_id, **request.model_dump(exclude_none=True))


@router.put("/{session_id}/{layer_id}/visibility")
async def set_visibility(session_id: str, layer_id: str, request: VisibilityRequest) -> Layer:
    return _get_session(session_id).layers.set_visibility(layer_id, request.visible)


@router.put("/{session_id}/{layer_id}/lock")
async def set_locked(session_id: str, layer_id: str, request: LockRequest) -> Layer:
    return _get_session(session_id).layers.set_locked(layer_id, request.locked)


@router.put("/{session_id}/{layer_id}/opacity")
async def set_opacity(session_id: str, layer_id: str, request: OpacityRequest) -> Layer:
    """Set opacity; values outside [0, 1] are clamped."""
    return _get_session(session_id).layers.set_opacity(layer_id, request.opacity)


@router.put("/{session_id}/{layer_id}/active")
async def set_active_layer(session_id: str, layer_id: str) -> Layer:
    return _get_session(session_id).layers.set_active_layer(layer_id)


@router.post("/{session_id}/reorder")
async def reorder_layers(session_id: str, request: ReorderRequest) -> List[LayerSummary]:
    session = _get_session(session_id)
    session.layers.reorder(request.from_index, request.to_index)
    return session.layers.summaries()


@router.post("/{session_id}/{layer_id}/components")
async def assign_component(session_id: str, layer_id: str, request: AssignRequest) -> Layer:
    """Move a component onto this layer."""
    session = _get_session(session_id)
    if request.component_id not in session.diagram.components:
        raise HTTPException(status_code=404, detail="Component not found")
    return session.layers.assign_component(request.component_id, layer_id)
