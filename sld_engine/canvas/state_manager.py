"""
Editor State Manager
====================

Manages editing sessions with JSON persistence of their diagrams.

Each session owns one command manager (the only writer of its diagram), a
layer manager, the canvas view state, the selection and the interaction
controller. Only the diagram is persisted; view and selection state live as
long as the session does.
"""

import json
import logging
from pathlib import Path
from typing import Optional, Dict, Any, List, Callable, Iterable
from datetime import datetime
import uuid

from ..config import EngineConfig
from ..models.canvas_models import ExportSnapshot, Participant, RenderFrame, SessionInfo
from ..models.diagram_models import Component, Connection, Diagram, Position, Size
from ..models.view_models import CanvasViewState, SelectionState
from .arrange import Alignment, Direction, align_command, distribute_command
from .commands import (
    AddComponentCommand, AddConnectionCommand, Command, MoveComponentsCommand,
    RemoveComponentCommand, RemoveConnectionCommand, ResizeComponentCommand,
    UpdateComponentPropertyCommand
)
from .diagram_ops import validate_diagram
from .errors import DiagramError, LayerLocked
from .geometry import Rect, bounding_rect, rect_intersects
from .history import CommandManager
from .interaction import InteractionController
from .layer_manager import LayerManager

logger = logging.getLogger(__name__)


class EditorSession:
    """One open diagram with its editing state."""

    def __init__(
        self,
        session_id: str,
        config: EngineConfig,
        diagram: Optional[Diagram] = None,
        created_at: Optional[datetime] = None,
        on_change: Optional[Callable[["EditorSession"], None]] = None
    ):
        self.id = session_id
        self.created_at = created_at or datetime.now()
        self.updated_at: Optional[datetime] = None
        self.participants: Dict[str, Participant] = {}
        self._on_change = on_change

        self.history = CommandManager(diagram, max_depth=config.history_depth)
        self.layers = LayerManager()
        self.view = CanvasViewState(
            grid_size=config.grid_size,
            grid_enabled=config.grid_enabled,
            snap_to_grid=config.snap_to_grid,
            min_zoom=config.min_zoom,
            max_zoom=config.max_zoom,
            zoom_step=config.zoom_step,
        )
        self.selection = SelectionState()
        self.controller = InteractionController(self.history, self.layers, self.view, self.selection)

        self.layers.sync(self.history.diagram)
        self.history.subscribe(self._diagram_changed)

    @property
    def diagram(self) -> Diagram:
        return self.history.diagram

    def _diagram_changed(self, diagram: Diagram) -> None:
        self.layers.sync(diagram)
        self.layers.forget_detached(self.history.restorable_component_ids())
        self.selection.prune(diagram.components)
        self.updated_at = datetime.now()
        if self._on_change:
            self._on_change(self)

    # =========================================================================
    # COMMANDS
    # =========================================================================

    def execute(self, command: Command, author: Optional[str] = None) -> Diagram:
        """Run a command through the session's single command manager."""
        if author:
            logger.info(f"[SESSION {self.id}] {author}: {command.description}")
        return self.history.execute(command)

    def add_component(
        self,
        component: Component,
        layer_id: Optional[str] = None,
        author: Optional[str] = None
    ) -> Component:
        """
        Add ``component`` on ``layer_id``, or on the standard layer for its
        type. The target layer is checked before the diagram changes.
        """
        if layer_id is None:
            layer_id = self.layers.default_layer_for(component.type)
        if self.layers.get_layer(layer_id).locked:
            raise LayerLocked(layer_id)

        previous = self.layers.reserve(component.id, layer_id)
        try:
            self.execute(AddComponentCommand(component), author)
        except DiagramError:
            self.layers.release(component.id, previous)
            raise
        return component

    def remove_component(self, component_id: str, author: Optional[str] = None) -> None:
        self.layers.ensure_unlocked([component_id])
        self.execute(RemoveComponentCommand(component_id), author)

    def move_component(self, component_id: str, position: Position, author: Optional[str] = None) -> None:
        self.layers.ensure_unlocked([component_id])
        self.execute(MoveComponentsCommand({component_id: position}), author)

    def resize_component(self, component_id: str, size: Size, author: Optional[str] = None) -> None:
        self.layers.ensure_unlocked([component_id])
        self.execute(ResizeComponentCommand(component_id, size), author)

    def update_component_property(
        self,
        component_id: str,
        name: str,
        value: Any,
        author: Optional[str] = None
    ) -> None:
        self.layers.ensure_unlocked([component_id])
        self.execute(UpdateComponentPropertyCommand(component_id, name, value), author)

    def add_connection(self, connection: Connection, author: Optional[str] = None) -> Connection:
        self.execute(AddConnectionCommand(connection), author)
        return connection

    def remove_connection(self, connection_id: str, author: Optional[str] = None) -> None:
        self.execute(RemoveConnectionCommand(connection_id), author)

    def align(self, component_ids: List[str], alignment: Alignment, author: Optional[str] = None) -> bool:
        self.layers.ensure_unlocked(component_ids)
        command = align_command(self.diagram, component_ids, alignment)
        if command is None:
            return False
        self.execute(command, author)
        return True

    def distribute(self, component_ids: List[str], direction: Direction, author: Optional[str] = None) -> bool:
        self.layers.ensure_unlocked(component_ids)
        command = distribute_command(self.diagram, component_ids, direction)
        if command is None:
            return False
        self.execute(command, author)
        return True

    def undo(self) -> bool:
        self.controller.cancel()
        return self.history.undo()

    def redo(self) -> bool:
        self.controller.cancel()
        return self.history.redo()

    def load_diagram(self, diagram: Diagram) -> None:
        """Replace the diagram (e.g. from storage); clears history and transient state."""
        validate_diagram(diagram)
        self.controller.deselect_all()
        self.history.replace_diagram(diagram)

    # =========================================================================
    # COLLABORATION
    # =========================================================================

    def join(self, name: str) -> Participant:
        participant = self.participants.get(name)
        if participant is None:
            participant = Participant(name=name)
            self.participants[name] = participant
            logger.info(f"[SESSION {self.id}] {name} joined ({len(self.participants)} participant(s))")
        return participant

    def leave(self, name: str) -> bool:
        if self.participants.pop(name, None) is None:
            return False
        logger.info(f"[SESSION {self.id}] {name} left")
        return True

    # =========================================================================
    # OUTBOUND SNAPSHOTS
    # =========================================================================

    def fit_view(self, viewport_width: float, viewport_height: float, padding: float = 50.0) -> CanvasViewState:
        self.view.zoom_to_fit(
            bounding_rect(self.diagram.components.values()),
            viewport_width,
            viewport_height,
            padding,
        )
        return self.view

    def render_frame(
        self,
        viewport_width: Optional[float] = None,
        viewport_height: Optional[float] = None
    ) -> RenderFrame:
        diagram = self.controller.preview_diagram()
        styles = {}
        for component_id in diagram.components:
            style = self.layers.component_style(component_id)
            if style is not None:
                styles[component_id] = style

        visible_ids = None
        if viewport_width and viewport_height:
            window = self.view.visible_world_rect(viewport_width, viewport_height)
            visible_ids = [
                c.id for c in diagram.components.values()
                if self.layers.is_component_visible(c.id)
                and rect_intersects(Rect.from_component(c), window)
            ]

        rubberband = self.controller.rubberband_rect()
        bounds = self.controller.selection_bounds()
        return RenderFrame(
            session_id=self.id,
            diagram=diagram,
            selection=list(self.selection.ids),
            view=self.view.model_copy(),
            layers=self.layers.summaries(),
            styles=styles,
            interaction_state=self.controller.state.value,
            tool=self.controller.tool.value,
            rubberband=rubberband.model_dump() if rubberband else None,
            selection_bounds=bounds.model_dump() if bounds else None,
            handles=[handle.value for handle in self.controller.handles()],
            visible_component_ids=visible_ids,
        )

    def export_snapshot(self) -> ExportSnapshot:
        return ExportSnapshot(
            session_id=self.id,
            diagram=self.diagram,
            view=self.view.model_copy(),
            hidden_layer_ids=[layer.id for layer in self.layers.layers() if not layer.visible],
        )

    def info(self) -> SessionInfo:
        return SessionInfo(
            session_id=self.id,
            created_at=self.created_at,
            updated_at=self.updated_at,
            component_count=len(self.diagram.components),
            connection_count=len(self.diagram.connections),
            participants=list(self.participants),
            can_undo=self.history.can_undo(),
            can_redo=self.history.can_redo(),
        )


class StateManager:
    """Manages editing sessions and persists their diagrams."""

    def __init__(self, sessions_dir: Optional[Path] = None, config: Optional[EngineConfig] = None):
        self.config = config or EngineConfig()
        self.sessions_dir = Path(sessions_dir or self.config.sessions_dir)
        self.sessions_dir.mkdir(parents=True, exist_ok=True)
        self._cache: Dict[str, EditorSession] = {}
        logger.info(f"[STATE-MANAGER] Initialized with sessions_dir={self.sessions_dir}")

    def _session_path(self, session_id: str) -> Path:
        return self.sessions_dir / f"{session_id}.json"

    def _new_session(
        self,
        session_id: str,
        diagram: Optional[Diagram] = None,
        created_at: Optional[datetime] = None
    ) -> EditorSession:
        session = EditorSession(
            session_id,
            self.config,
            diagram=diagram,
            created_at=created_at,
            on_change=lambda s: self._save_session(s.id),
        )
        self._cache[session_id] = session
        return session

    def create_session(self, session_id: Optional[str] = None) -> str:
        """Create a new session with optional ID."""
        if session_id is None:
            session_id = str(uuid.uuid4())

        if session_id not in self._cache and not self._session_path(session_id).exists():
            self._new_session(session_id)
            self._save_session(session_id)
            logger.info(f"[STATE-MANAGER] Created session {session_id}")
        return session_id

    def get_session(self, session_id: str) -> Optional[EditorSession]:
        """Get a session, loading its diagram from disk on a cache miss."""
        if session_id in self._cache:
            return self._cache[session_id]

        session_path = self._session_path(session_id)
        if not session_path.exists():
            return None

        with open(session_path) as f:
            data = json.load(f)
        diagram = validate_diagram(Diagram.model_validate(data.get("diagram", {})))
        created_at = datetime.fromisoformat(data["created_at"]) if data.get("created_at") else None
        session = self._new_session(session_id, diagram=diagram, created_at=created_at)
        logger.info(
            f"[STATE-MANAGER] Loaded session {session_id} "
            f"({len(diagram.components)} components, {len(diagram.connections)} connections)"
        )
        return session

    def list_sessions(self) -> List[str]:
        on_disk = {path.stem for path in self.sessions_dir.glob("*.json")}
        return sorted(on_disk | set(self._cache))

    def delete_session(self, session_id: str) -> bool:
        found = self._cache.pop(session_id, None) is not None
        session_path = self._session_path(session_id)
        if session_path.exists():
            session_path.unlink()
            found = True
        if found:
            logger.info(f"[STATE-MANAGER] Deleted session {session_id}")
        return found

    def _save_session(self, session_id: str):
        """Save the session's diagram to disk."""
        session = self._cache.get(session_id)
        if session is None:
            return
        record = {
            "id": session_id,
            "created_at": session.created_at.isoformat(),
            "updated_at": session.updated_at.isoformat() if session.updated_at else None,
            "diagram": session.diagram.model_dump(mode="json"),
        }
        with open(self._session_path(session_id), "w") as f:
            json.dump(record, f, indent=2)

    def save_session(self, session_id: str) -> bool:
        """Explicitly save session to disk."""
        if session_id in self._cache:
            self._save_session(session_id)
            return True
        return False

    def sessions(self) -> Iterable[EditorSession]:
        return list(self._cache.values())
