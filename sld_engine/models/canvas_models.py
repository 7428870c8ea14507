"""
Canvas Models for the SLD Engine
================================

Snapshots handed to collaborators outside the engine: the per-frame render
state, export snapshots, and editing session summaries.
"""

from typing import Dict, List, Optional
from pydantic import BaseModel, Field
from datetime import datetime

from .diagram_models import Diagram
from .layer_models import LayerStyle, LayerSummary
from .view_models import CanvasViewState


class Participant(BaseModel):
    """A named user attached to an editing session."""
    name: str
    joined_at: datetime = Field(default_factory=datetime.now)


class RenderFrame(BaseModel):
    """Everything a render surface needs to paint one frame."""
    session_id: str
    diagram: Diagram
    selection: List[str] = Field(default_factory=list)
    view: CanvasViewState
    layers: List[LayerSummary] = Field(default_factory=list)
    styles: Dict[str, LayerStyle] = Field(default_factory=dict)
    interaction_state: str = "idle"
    tool: str = "select"
    rubberband: Optional[Dict[str, float]] = None
    selection_bounds: Optional[Dict[str, float]] = None
    handles: List[str] = Field(default_factory=list)
    visible_component_ids: Optional[List[str]] = None


class ExportSnapshot(BaseModel):
    """Diagram plus view state, handed to an external rasterizer."""
    session_id: str
    diagram: Diagram
    view: CanvasViewState
    hidden_layer_ids: List[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=datetime.now)


class SessionInfo(BaseModel):
    """Summary of an editing session."""
    session_id: str
    created_at: datetime
    updated_at: Optional[datetime] = None
    component_count: int = 0
    connection_count: int = 0
    participants: List[str] = Field(default_factory=list)
    can_undo: bool = False
    can_redo: bool = False
