"""
Canvas Routes
==============

API routes for editing sessions, render frames, export snapshots and the
canvas view (zoom, pan, grid).
"""

from enum import Enum
from fastapi import APIRouter, HTTPException
from typing import Optional, List
from pydantic import BaseModel, Field

from ..models.canvas_models import ExportSnapshot, Participant, RenderFrame, SessionInfo
from ..models.diagram_models import Position
from ..models.view_models import CanvasViewState

router = APIRouter(prefix="/api/canvas", tags=["canvas"])

# Injected by server
state_manager = None


class CreateSessionRequest(BaseModel):
    """Request to create a session, optionally with a chosen id."""
    session_id: Optional[str] = None


class ZoomAction(str, Enum):
    IN = "in"
    OUT = "out"
    SET = "set"


class ZoomRequest(BaseModel):
    """Zoom in/out around a screen point, or set an absolute zoom."""
    action: ZoomAction = ZoomAction.IN
    zoom: Optional[float] = None
    screen_point: Optional[Position] = None


class PanRequest(BaseModel):
    """Pan by a screen-space delta in pixels."""
    dx: float
    dy: float


class FitRequest(BaseModel):
    viewport_width: float = Field(gt=0)
    viewport_height: float = Field(gt=0)
    padding: float = Field(default=50.0, ge=0)


class GridRequest(BaseModel):
    grid_size: Optional[int] = None
    grid_enabled: Optional[bool] = None
    snap_to_grid: Optional[bool] = None


class ParticipantRequest(BaseModel):
    name: str = Field(min_length=1)


def _get_session(session_id: str):
    if not state_manager:
        raise HTTPException(status_code=500, detail="State manager not initialized")

    session = state_manager.get_session(session_id)
    if not session:
        raise HTTPException(status_code=404, detail="Session not found")
    return session


# =============================================================================
# SESSIONS
# =============================================================================

@router.post("/session")
async def create_session(request: Optional[CreateSessionRequest] = None):
    """Create a new editing session."""
    if not state_manager:
        raise HTTPException(status_code=500, detail="State manager not initialized")

    session_id = state_manager.create_session(request.session_id if request else None)
    return {"session_id": session_id, "message": "Session created"}


@router.get("/sessions")
async def list_sessions() -> List[str]:
    """List known session ids."""
    if not state_manager:
        raise HTTPException(status_code=500, detail="State manager not initialized")
    return state_manager.list_sessions()


@router.get("/session/{session_id}")
async def get_session_info(session_id: str) -> SessionInfo:
    """Get a summary of a session."""
    return _get_session(session_id).info()


@router.delete("/session/{session_id}")
async def delete_session(session_id: str):
    """Delete a session and its persisted diagram."""
    if not state_manager:
        raise HTTPException(status_code=500, detail="State manager not initialized")

    if not state_manager.delete_session(session_id):
        raise HTTPException(status_code=404, detail="Session not found")

    return {"message": "Session deleted", "session_id": session_id}


@router.post("/session/{session_id}/save")
async def save_session(session_id: str):
    """Explicitly persist the session's diagram."""
    _get_session(session_id)
    state_manager.save_session(session_id)
    return {"message": "Session saved", "session_id": session_id}


# =============================================================================
# RENDER & EXPORT
# =============================================================================

@router.get("/frame/{session_id}")
async def get_frame(
    session_id: str,
    viewport_width: Optional[float] = None,
    viewport_height: Optional[float] = None
) -> RenderFrame:
    """Everything needed to paint the canvas; culled when a viewport is given."""
    return _get_session(session_id).render_frame(viewport_width, viewport_height)


@router.get("/export/{session_id}")
async def export_snapshot(session_id: str) -> ExportSnapshot:
    """Diagram and view state for an external rasterizer."""
    return _get_session(session_id).export_snapshot()


# =============================================================================
# VIEW
# =============================================================================

@router.get("/view/{session_id}")
async def get_view(session_id: str) -> CanvasViewState:
    return _get_session(session_id).view


@router.post("/view/{session_id}/zoom")
async def zoom(session_id: str, request: ZoomRequest) -> CanvasViewState:
    """Zoom around a screen point (in/out) or to an absolute level (set)."""
    session = _get_session(session_id)
    view = session.view

    if request.action == ZoomAction.SET:
        if request.zoom is None:
            raise HTTPException(status_code=422, detail="zoom is required for action 'set'")
        view.set_zoom(request.zoom)
    elif request.action == ZoomAction.IN:
        view.zoom_in(request.screen_point)
    else:
        view.zoom_out(request.screen_point)
    return view


@router.post("/view/{session_id}/pan")
async def pan(session_id: str, request: PanRequest) -> CanvasViewState:
    session = _get_session(session_id)
    session.view.pan_by(request.dx, request.dy)
    return session.view


@router.post("/view/{session_id}/fit")
async def zoom_to_fit(session_id: str, request: FitRequest) -> CanvasViewState:
    """Frame all components inside the given viewport."""
    session = _get_session(session_id)
    return session.fit_view(request.viewport_width, request.viewport_height, request.padding)


@router.post("/view/{session_id}/reset")
async def reset_view(session_id: str) -> CanvasViewState:
    session = _get_session(session_id)
    session.view.reset()
    return session.view


@router.put("/view/{session_id}/grid")
async def update_grid(session_id: str, request: GridRequest) -> CanvasViewState:
    session = _get_session(session_id)
    view = session.view
    if request.grid_size is not None:
        view.set_grid_size(request.grid_size)
    if request.grid_enabled is not None:
        view.grid_enabled = request.grid_enabled
    if request.snap_to_grid is not None:
        view.snap_to_grid = request.snap_to_grid
    return view


# =============================================================================
# PARTICIPANTS
# =============================================================================

@router.post("/participants/{session_id}")
async def join_session(session_id: str, request: ParticipantRequest) -> Participant:
    return _get_session(session_id).join(request.name)


@router.delete("/participants/{session_id}/{name}")
async def leave_session(session_id: str, name: str):
    session = _get_session(session_id)
    if not session.leave(name):
        raise HTTPException(status_code=404, detail="Participant not found")
    return {"message": "Participant left", "name": name}
