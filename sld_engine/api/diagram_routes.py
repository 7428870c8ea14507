"""
Diagram Routes
===============

API routes for editing the diagram: components, connections, arrangement and
undo/redo. Every edit runs as a command through the session's history.
"""

import uuid
import logging
from fastapi import APIRouter, HTTPException
from typing import Optional, Dict, Any, List
from pydantic import BaseModel, Field

from ..canvas.arrange import Alignment, Direction
from ..models.diagram_models import Component, Connection, Diagram, Position, Size

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/diagram", tags=["diagram"])

# Injected by server
state_manager = None
catalog_client = None
calculation_client = None


class AddComponentRequest(BaseModel):
    """Request to place a component."""
    id: Optional[str] = None
    type: str
    position: Position = Field(default_factory=Position)
    size: Size
    properties: Dict[str, Any] = Field(default_factory=dict)
    layer_id: Optional[str] = None
    author: Optional[str] = None


class PlaceTemplateRequest(BaseModel):
    """Request to place a component from a catalog template."""
    template_id: str
    id: Optional[str] = None
    position: Position = Field(default_factory=Position)
    properties: Dict[str, Any] = Field(default_factory=dict)
    layer_id: Optional[str] = None
    calculate_loads: bool = False
    author: Optional[str] = None


class MoveRequest(BaseModel):
    x: float
    y: float
    author: Optional[str] = None


class ResizeRequest(BaseModel):
    width: float = Field(ge=0)
    height: float = Field(ge=0)
    author: Optional[str] = None


class PropertyRequest(BaseModel):
    value: Any = None
    author: Optional[str] = None


class AddConnectionRequest(BaseModel):
    id: Optional[str] = None
    from_component_id: str
    to_component_id: str
    kind: str = "power"
    author: Optional[str] = None


class AlignRequest(BaseModel):
    component_ids: List[str]
    alignment: Alignment


class DistributeRequest(BaseModel):
    component_ids: List[str]
    direction: Direction


class HistoryResponse(BaseModel):
    """Undo/redo availability after a history operation."""
    changed: bool = False
    can_undo: bool
    can_redo: bool
    undo: List[str] = Field(default_factory=list)
    redo: List[str] = Field(default_factory=list)


class ComponentResponse(BaseModel):
    """Response for component placement."""
    component: Component
    layer_id: Optional[str] = None
    message: str


def _get_session(session_id: str):
    if not state_manager:
        raise HTTPException(status_code=500, detail="State manager not initialized")

    session = state_manager.get_session(session_id)
    if not session:
        raise HTTPException(status_code=404, detail="Session not found")
    return session


def _history(session, changed: bool = False) -> HistoryResponse:
    return HistoryResponse(
        changed=changed,
        can_undo=session.history.can_undo(),
        can_redo=session.history.can_redo(),
        undo=session.history.undo_descriptions(),
        redo=session.history.redo_descriptions(),
    )


@router.get("/{session_id}")
async def get_diagram(session_id: str) -> Diagram:
    """Get the committed diagram."""
    return _get_session(session_id).diagram


# =============================================================================
# COMPONENTS
# =============================================================================

@router.post("/{session_id}/components")
async def add_component(session_id: str, request: AddComponentRequest) -> ComponentResponse:
    """Place a component."""
    session = _get_session(session_id)

    component = Component(
        id=request.id or str(uuid.uuid4()),
        type=request.type,
        position=request.position,
        size=request.size,
        properties=request.properties,
    )
    session.add_component(component, layer_id=request.layer_id, author=request.author)

    return ComponentResponse(
        component=component,
        layer_id=session.layers.layer_id_of(component.id),
        message="Component added"
    )


@router.post("/{session_id}/components/from-template")
async def place_template(session_id: str, request: PlaceTemplateRequest) -> ComponentResponse:
    """
    Place a component from a catalog template.

    With ``calculate_loads`` set, values from the load-calculation service are
    merged into the new component's properties. A failed calculation does not
    block placement.
    """
    session = _get_session(session_id)
    if not catalog_client:
        raise HTTPException(status_code=500, detail="Catalog client not initialized")

    catalog = await catalog_client.get_template(request.template_id)
    if not catalog.success:
        raise HTTPException(status_code=404, detail=catalog.error or "Template not found")
    template = catalog.template

    properties = {**template.properties, **request.properties}
    if request.calculate_loads and calculation_client:
        calculation = await calculation_client.calculate(template.type, properties)
        if calculation.success:
            properties.update(calculation.values)
        else:
            logger.warning(f"[DIAGRAM-ROUTES] Load calculation skipped: {calculation.error}")

    component = Component(
        id=request.id or str(uuid.uuid4()),
        type=template.type,
        position=request.position,
        size=template.default_size,
        properties=properties,
    )
    session.add_component(component, layer_id=request.layer_id, author=request.author)

    return ComponentResponse(
        component=component,
        layer_id=session.layers.layer_id_of(component.id),
        message=f"Placed template {template.template_id}"
    )


@router.delete("/{session_id}/components/{component_id}")
async def remove_component(session_id: str, component_id: str, author: Optional[str] = None):
    """Remove a component and every connection touching it."""
    session = _get_session(session_id)
    session.remove_component(component_id, author=author)
    return {"message": "Component removed", "component_id": component_id}


@router.put("/{session_id}/components/{component_id}/position")
async def move_component(session_id: str, component_id: str, request: MoveRequest) -> Component:
    session = _get_session(session_id)
    session.move_component(component_id, Position(x=request.x, y=request.y), author=request.author)
    return session.diagram.components[component_id]


@router.put("/{session_id}/components/{component_id}/size")
async def resize_component(session_id: str, component_id: str, request: ResizeRequest) -> Component:
    session = _get_session(session_id)
    session.resize_component(
        component_id,
        Size(width=request.width, height=request.height),
        author=request.author
    )
    return session.diagram.components[component_id]


@router.put("/{session_id}/components/{component_id}/properties/{name}")
async def update_property(session_id: str, component_id: str, name: str, request: PropertyRequest) -> Component:
    session = _get_session(session_id)
    session.update_component_property(component_id, name, request.value, author=request.author)
    return session.diagram.components[component_id]


# =============================================================================
# CONNECTIONS
# =============================================================================

@router.post("/{session_id}/connections")
async def add_connection(session_id: str, request: AddConnectionRequest) -> Connection:
    session = _get_session(session_id)
    connection = Connection(
        id=request.id or str(uuid.uuid4()),
        from_component_id=request.from_component_id,
        to_component_id=request.to_component_id,
        kind=request.kind,
    )
    return session.add_connection(connection, author=request.author)


@router.delete("/{session_id}/connections/{connection_id}")
async def remove_connection(session_id: str, connection_id: str, author: Optional[str] = None):
    session = _get_session(session_id)
    session.remove_connection(connection_id, author=author)
    return {"message": "Connection removed", "connection_id": connection_id}


# =============================================================================
# ARRANGE
# =============================================================================

@router.post("/{session_id}/align")
async def align(session_id: str, request: AlignRequest):
    session = _get_session(session_id)
    changed = session.align(request.component_ids, request.alignment)
    return {"changed": changed, "alignment": request.alignment.value}


@router.post("/{session_id}/distribute")
async def distribute(session_id: str, request: DistributeRequest):
    session = _get_session(session_id)
    changed = session.distribute(request.component_ids, request.direction)
    return {"changed": changed, "direction": request.direction.value}


# =============================================================================
# HISTORY
# =============================================================================

@router.post("/{session_id}/undo")
async def undo(session_id: str) -> HistoryResponse:
    session = _get_session(session_id)
    return _history(session, session.undo())


@router.post("/{session_id}/redo")
async def redo(session_id: str) -> HistoryResponse:
    session = _get_session(session_id)
    return _history(session, session.redo())


@router.get("/{session_id}/history")
async def get_history(session_id: str) -> HistoryResponse:
    return _history(_get_session(session_id))
