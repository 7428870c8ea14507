"""
Interaction Routes
===================

API routes that feed pointer and keyboard input into a session's
interaction controller. Pointer coordinates are in screen space.
"""

from fastapi import APIRouter, HTTPException
from typing import Optional, List
from pydantic import BaseModel, Field

from ..canvas.interaction import PointerEvent, Tool

router = APIRouter(prefix="/api/interaction", tags=["interaction"])

# Injected by server
state_manager = None


class ToolRequest(BaseModel):
    tool: Tool


class NudgeRequest(BaseModel):
    dx: float = 0.0
    dy: float = 0.0


class InteractionResponse(BaseModel):
    """Controller state after handling an input."""
    state: str
    tool: str
    selection: List[str] = Field(default_factory=list)
    committed: Optional[str] = None  # description of the command produced, if any


def _get_session(session_id: str):
    if not state_manager:
        raise HTTPException(status_code=500, detail="State manager not initialized")

    session = state_manager.get_session(session_id)
    if not session:
        raise HTTPException(status_code=404, detail="Session not found")
    return session


def _response(session, command=None) -> InteractionResponse:
    controller = session.controller
    return InteractionResponse(
        state=controller.state.value,
        tool=controller.tool.value,
        selection=list(session.selection.ids),
        committed=command.description if command is not None else None,
    )


@router.post("/{session_id}/pointer/down")
async def pointer_down(session_id: str, event: PointerEvent) -> InteractionResponse:
    session = _get_session(session_id)
    session.controller.pointer_down(event)
    return _response(session)


@router.post("/{session_id}/pointer/move")
async def pointer_move(session_id: str, event: PointerEvent) -> InteractionResponse:
    session = _get_session(session_id)
    session.controller.pointer_move(event)
    return _response(session)


@router.post("/{session_id}/pointer/up")
async def pointer_up(session_id: str, event: PointerEvent) -> InteractionResponse:
    session = _get_session(session_id)
    command = session.controller.pointer_up(event)
    return _response(session, command)


@router.put("/{session_id}/tool")
async def set_tool(session_id: str, request: ToolRequest) -> InteractionResponse:
    """Switch tools; a gesture in progress is cancelled."""
    session = _get_session(session_id)
    session.controller.set_tool(request.tool)
    return _response(session)


@router.post("/{session_id}/cancel")
async def cancel(session_id: str) -> InteractionResponse:
    session = _get_session(session_id)
    session.controller.cancel()
    return _response(session)


@router.post("/{session_id}/select-all")
async def select_all(session_id: str) -> InteractionResponse:
    session = _get_session(session_id)
    session.controller.select_all()
    return _response(session)


@router.post("/{session_id}/deselect")
async def deselect_all(session_id: str) -> InteractionResponse:
    session = _get_session(session_id)
    session.controller.deselect_all()
    return _response(session)


@router.post("/{session_id}/delete-selection")
async def delete_selection(session_id: str) -> InteractionResponse:
    session = _get_session(session_id)
    command = session.controller.delete_selection()
    return _response(session, command)


@router.post("/{session_id}/nudge")
async def nudge(session_id: str, request: NudgeRequest) -> InteractionResponse:
    session = _get_session(session_id)
    command = session.controller.nudge(request.dx, request.dy)
    return _response(session, command)
