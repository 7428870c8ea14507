"""
Interaction Controller
======================

Pointer-driven state machine behind the diagram canvas:

    IDLE -> HIT_TESTING -> DRAGGING | RESIZING | RUBBERBAND -> IDLE
    IDLE -> PANNING -> IDLE                          (pan tool)

Each gesture keeps its transient data in a dedicated session object and the
controller holds at most one of them, so states such as "dragging with no
selection" cannot be represented. Only a finished gesture touches the diagram,
and it does so through the command manager as a single command.
"""

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple, Union

from pydantic import BaseModel

from ..models.diagram_models import Diagram, Position, Size
from ..models.view_models import CanvasViewState, SelectionState
from . import diagram_ops as ops
from .commands import (
    Command, CompositeCommand, MoveComponentsCommand, RemoveComponentCommand, ResizeComponentCommand
)
from .geometry import (
    Rect, bounding_rect, rect_contains_point, rect_intersects, screen_to_world, snap_to_grid
)
from .history import CommandManager
from .layer_manager import LayerManager

logger = logging.getLogger(__name__)

PRIMARY_BUTTON = 0

# Selection handles, in screen pixels
HANDLE_SIZE = 8.0
HANDLE_HIT_TOLERANCE = 4.0

# Smallest width/height a resize gesture can shrink the selection to
MIN_RESIZE_SIZE = 10.0


class Tool(str, Enum):
    """Active canvas tool."""
    SELECT = "select"
    PAN = "pan"


class InteractionState(str, Enum):
    IDLE = "idle"
    HIT_TESTING = "hit_testing"
    DRAGGING = "dragging"
    RESIZING = "resizing"
    RUBBERBAND = "rubberband"
    PANNING = "panning"


class PointerEvent(BaseModel):
    """Pointer event in screen coordinates."""
    x: float
    y: float
    button: int = PRIMARY_BUTTON
    multi: bool = False  # multi-select modifier (shift/ctrl) held

    @property
    def position(self) -> Position:
        return Position(x=self.x, y=self.y)


@dataclass
class DragSession:
    anchor_id: str
    start: Position
    origins: Dict[str, Position]
    offsets: Dict[str, Position]
    positions: Dict[str, Position] = field(default_factory=dict)


class ResizeHandle(str, Enum):
    """Handles on the selection bounds, named by compass direction."""
    NW = "nw"
    NE = "ne"
    SW = "sw"
    SE = "se"
    N = "n"
    S = "s"
    W = "w"
    E = "e"


CORNER_HANDLES = (ResizeHandle.NW, ResizeHandle.NE, ResizeHandle.SW, ResizeHandle.SE)
EDGE_HANDLES = (ResizeHandle.N, ResizeHandle.S, ResizeHandle.W, ResizeHandle.E)


@dataclass
class ResizeSession:
    handle: ResizeHandle
    start: Position
    bounds: Rect
    origins: Dict[str, Tuple[Position, Size]]
    current: Rect


@dataclass
class RubberbandSession:
    start: Position
    current: Position


@dataclass
class PanSession:
    last_screen: Position


Session = Union[DragSession, ResizeSession, RubberbandSession, PanSession]


def handle_point(bounds: Rect, handle: ResizeHandle) -> Position:
    """World position of a handle on ``bounds``."""
    name = handle.value
    if "w" in name:
        x = bounds.left
    elif "e" in name:
        x = bounds.right
    else:
        x = (bounds.left + bounds.right) / 2
    if "n" in name:
        y = bounds.top
    elif "s" in name:
        y = bounds.bottom
    else:
        y = (bounds.top + bounds.bottom) / 2
    return Position(x=x, y=y)


def resized_bounds(bounds: Rect, handle: ResizeHandle, dx: float, dy: float) -> Rect:
    """
    Move the edges a handle controls by (dx, dy). The opposite edges stay put
    and neither side shrinks below ``MIN_RESIZE_SIZE`` (or its starting size,
    if that is already smaller).
    """
    min_width = min(MIN_RESIZE_SIZE, bounds.width)
    min_height = min(MIN_RESIZE_SIZE, bounds.height)
    left, top, right, bottom = bounds.left, bounds.top, bounds.right, bounds.bottom
    name = handle.value
    if "w" in name:
        left = min(left + dx, right - min_width)
    if "e" in name:
        right = max(right + dx, left + min_width)
    if "n" in name:
        top = min(top + dy, bottom - min_height)
    if "s" in name:
        bottom = max(bottom + dy, top + min_height)
    return Rect(left=left, top=top, right=right, bottom=bottom)


def scale_into(old: Rect, new: Rect, position: Position, size: Size) -> Tuple[Position, Size]:
    """Map a component's box from ``old`` bounds to ``new`` bounds proportionally."""
    scale_x = new.width / old.width
    scale_y = new.height / old.height
    return (
        Position(
            x=new.left + (position.x - old.left) * scale_x,
            y=new.top + (position.y - old.top) * scale_y,
        ),
        Size(width=size.width * scale_x, height=size.height * scale_y),
    )


def clamped_delta(origins: Dict[str, Position], dx: float, dy: float) -> Position:
    """
    Limit a group translation so it does not push the group further into
    negative canvas space. One delta for the whole group keeps relative
    layout intact.
    """
    min_x = min(p.x for p in origins.values())
    min_y = min(p.y for p in origins.values())
    return Position(x=max(dx, min(0.0, -min_x)), y=max(dy, min(0.0, -min_y)))


class InteractionController:
    """Turns pointer events into selection changes and diagram commands."""

    def __init__(
        self,
        history: CommandManager,
        layers: LayerManager,
        view: CanvasViewState,
        selection: SelectionState
    ):
        self.history = history
        self.layers = layers
        self.view = view
        self.selection = selection
        self.tool = Tool.SELECT
        self._session: Optional[Session] = None
        self._hit_testing = False

    # =========================================================================
    # STATE
    # =========================================================================

    @property
    def state(self) -> InteractionState:
        if self._hit_testing:
            return InteractionState.HIT_TESTING
        if isinstance(self._session, DragSession):
            return InteractionState.DRAGGING
        if isinstance(self._session, ResizeSession):
            return InteractionState.RESIZING
        if isinstance(self._session, RubberbandSession):
            return InteractionState.RUBBERBAND
        if isinstance(self._session, PanSession):
            return InteractionState.PANNING
        return InteractionState.IDLE

    @property
    def session(self) -> Optional[Session]:
        return self._session

    def set_tool(self, tool: Tool) -> None:
        """Switch tools; any gesture in progress is abandoned."""
        tool = Tool(tool)
        if tool != self.tool:
            self.cancel()
            logger.info(f"[INTERACTION] Tool {self.tool.value} -> {tool.value}")
        self.tool = tool

    def cancel(self) -> None:
        """Discard transient gesture state without producing a command."""
        if self._session is not None:
            logger.debug(f"[INTERACTION] Cancelled {self.state.value}")
        self._session = None
        self._hit_testing = False

    def deselect_all(self) -> None:
        self.cancel()
        self.selection.clear()

    # =========================================================================
    # HIT TESTING
    # =========================================================================

    def _interactive_components(self, diagram: Diagram):
        """Visible, unlocked components with their paint rank (higher is on top)."""
        stack_rank = {layer.id: rank for rank, layer in enumerate(self.layers.layers())}
        for index, component in enumerate(diagram.components.values()):
            if not self.layers.is_interactive(component.id):
                continue
            layer_id = self.layers.layer_id_of(component.id)
            yield (stack_rank.get(layer_id, -1), index), component

    def hit_test(self, world_point: Position) -> Optional[str]:
        """Topmost visible, unlocked component containing ``world_point``."""
        best_rank = None
        best_id = None
        for rank, component in self._interactive_components(self.history.diagram):
            if not rect_contains_point(Rect.from_component(component), world_point):
                continue
            if best_rank is None or rank > best_rank:
                best_rank, best_id = rank, component.id
        return best_id

    def components_in_rect(self, rect: Rect) -> List[str]:
        """Visible, unlocked components whose bounds intersect ``rect``."""
        return [
            component.id
            for _, component in self._interactive_components(self.history.diagram)
            if rect_intersects(Rect.from_component(component), rect)
        ]

    def selection_bounds(self) -> Optional[Rect]:
        """Bounds of the selected components that can be edited."""
        diagram = self.history.diagram
        return bounding_rect(diagram.components[cid] for cid in self._editable_selection())

    def handles(self) -> List[ResizeHandle]:
        """Corner handles always; edge handles only for a single selection."""
        count = len(self._editable_selection())
        if count == 0:
            return []
        if count == 1:
            return list(CORNER_HANDLES + EDGE_HANDLES)
        return list(CORNER_HANDLES)

    def hit_test_handle(self, world_point: Position) -> Optional[ResizeHandle]:
        bounds = self.selection_bounds()
        if bounds is None:
            return None
        reach = (HANDLE_SIZE / 2 + HANDLE_HIT_TOLERANCE) / self.view.zoom
        for handle in self.handles():
            point = handle_point(bounds, handle)
            if math.hypot(world_point.x - point.x, world_point.y - point.y) <= reach:
                return handle
        return None

    # =========================================================================
    # POINTER EVENTS
    # =========================================================================

    def _world(self, event: PointerEvent) -> Position:
        return screen_to_world(event.position, self.view)

    def pointer_down(self, event: PointerEvent) -> InteractionState:
        if event.button != PRIMARY_BUTTON:
            return self.state
        if self._session is not None:
            logger.warning(f"[INTERACTION] pointer-down during {self.state.value}; discarding gesture")
            self.cancel()

        if self.tool == Tool.PAN:
            self._session = PanSession(last_screen=event.position)
            return self.state

        world = self._world(event)
        self._hit_testing = True
        try:
            handle = None if event.multi else self.hit_test_handle(world)
            hit_id = None if handle is not None else self.hit_test(world)
        finally:
            self._hit_testing = False

        if handle is not None:
            self._begin_resize(handle, world)
            return self.state

        if hit_id is None:
            if not event.multi:
                self.selection.clear()
            self._session = RubberbandSession(start=world, current=world)
            return self.state

        if event.multi:
            self.selection.toggle(hit_id)
        else:
            self.selection.replace([hit_id])
        self._begin_drag(hit_id, world)
        return self.state

    def _begin_drag(self, anchor_id: str, world: Position) -> None:
        diagram = self.history.diagram
        dragged = [
            cid for cid in self.selection.ids
            if cid in diagram.components and self.layers.is_interactive(cid)
        ]
        if not dragged:
            # The click toggled the last selected component off.
            return

        origins = {cid: diagram.components[cid].position for cid in dragged}
        offsets = {
            cid: Position(x=world.x - pos.x, y=world.y - pos.y)
            for cid, pos in origins.items()
        }
        if anchor_id not in origins:
            anchor_id = dragged[0]
        self._session = DragSession(
            anchor_id=anchor_id,
            start=world,
            origins=origins,
            offsets=offsets,
            positions=dict(origins),
        )
        logger.debug(f"[INTERACTION] Drag start anchor={anchor_id} ids={dragged}")

    def _begin_resize(self, handle: ResizeHandle, world: Position) -> None:
        diagram = self.history.diagram
        origins = {
            cid: (diagram.components[cid].position, diagram.components[cid].size)
            for cid in self._editable_selection()
        }
        bounds = self.selection_bounds()
        self._session = ResizeSession(
            handle=handle,
            start=world,
            bounds=bounds,
            origins=origins,
            current=bounds,
        )
        logger.debug(f"[INTERACTION] Resize start handle={handle.value} ids={list(origins)}")

    def pointer_move(self, event: PointerEvent) -> InteractionState:
        session = self._session
        if isinstance(session, DragSession):
            self._update_drag(session, self._world(event))
        elif isinstance(session, ResizeSession):
            self._update_resize(session, self._world(event))
        elif isinstance(session, RubberbandSession):
            session.current = self._world(event)
        elif isinstance(session, PanSession):
            current = event.position
            self.view.pan_by(current.x - session.last_screen.x, current.y - session.last_screen.y)
            session.last_screen = current
        return self.state

    def _update_drag(self, session: DragSession, world: Position) -> None:
        anchor_offset = session.offsets[session.anchor_id]
        anchor_origin = session.origins[session.anchor_id]
        target = Position(x=world.x - anchor_offset.x, y=world.y - anchor_offset.y)
        if self.view.snap_to_grid:
            target = snap_to_grid(target, self.view.grid_size)

        delta = clamped_delta(
            session.origins,
            target.x - anchor_origin.x,
            target.y - anchor_origin.y,
        )
        session.positions = {
            cid: origin.offset(delta.x, delta.y)
            for cid, origin in session.origins.items()
        }

    def _update_resize(self, session: ResizeSession, world: Position) -> None:
        dx = world.x - session.start.x
        dy = world.y - session.start.y
        if self.view.snap_to_grid:
            grabbed = handle_point(session.bounds, session.handle)
            target = snap_to_grid(grabbed.offset(dx, dy), self.view.grid_size)
            dx, dy = target.x - grabbed.x, target.y - grabbed.y
        session.current = resized_bounds(session.bounds, session.handle, dx, dy)

    def _resized_geometry(self, session: ResizeSession) -> Dict[str, Tuple[Position, Size]]:
        return {
            cid: scale_into(session.bounds, session.current, position, size)
            for cid, (position, size) in session.origins.items()
        }

    def pointer_up(self, event: PointerEvent) -> Optional[Command]:
        """Finish the current gesture; returns the committed command, if any."""
        session = self._session
        if session is None:
            return None
        if event.button != PRIMARY_BUTTON:
            return None

        self.pointer_move(event)
        self._session = None

        if isinstance(session, DragSession):
            return self._commit_drag(session)
        if isinstance(session, ResizeSession):
            return self._commit_resize(session)
        if isinstance(session, RubberbandSession):
            self._commit_rubberband(session)
        return None

    def _commit_drag(self, session: DragSession) -> Optional[Command]:
        diagram = self.history.diagram
        moves = {
            cid: pos for cid, pos in session.positions.items()
            if cid in diagram.components and pos != session.origins[cid]
        }
        if not moves:
            return None

        command = MoveComponentsCommand(
            moves,
            origins={cid: session.origins[cid] for cid in moves},
        )
        self.history.execute(command)
        return command

    def _commit_resize(self, session: ResizeSession) -> Optional[Command]:
        """One undo step: a move for shifted origins plus a resize per component."""
        diagram = self.history.diagram
        geometry = {
            cid: box for cid, box in self._resized_geometry(session).items()
            if cid in diagram.components
        }
        moves = {
            cid: position for cid, (position, _) in geometry.items()
            if position != session.origins[cid][0]
        }
        commands: List[Command] = []
        if moves:
            commands.append(MoveComponentsCommand(
                moves,
                origins={cid: session.origins[cid][0] for cid in moves},
            ))
        commands.extend(
            ResizeComponentCommand(cid, size)
            for cid, (_, size) in geometry.items()
            if size != session.origins[cid][1]
        )
        if not commands:
            return None

        if len(commands) == 1:
            command = commands[0]
        else:
            label = next(iter(geometry)) if len(geometry) == 1 else f"{len(geometry)} components"
            command = CompositeCommand(commands, description=f"Resize {label}")
        self.history.execute(command)
        return command

    def _commit_rubberband(self, session: RubberbandSession) -> None:
        rect = Rect.from_corners(session.start, session.current)
        if rect.is_point:
            return
        selected = self.components_in_rect(rect)
        self.selection.replace(selected)
        logger.debug(f"[INTERACTION] Rubberband selected {len(selected)} component(s)")

    # =========================================================================
    # KEYBOARD-STYLE ACTIONS
    # =========================================================================

    def select_all(self) -> List[str]:
        self.cancel()
        ids = [c.id for _, c in self._interactive_components(self.history.diagram)]
        self.selection.replace(ids)
        return ids

    def _editable_selection(self) -> List[str]:
        diagram = self.history.diagram
        return [
            cid for cid in self.selection.ids
            if cid in diagram.components and self.layers.is_interactive(cid)
        ]

    def delete_selection(self) -> Optional[Command]:
        """Remove the selected, unlocked components as one undo step."""
        self.cancel()
        ids = self._editable_selection()
        if not ids:
            return None
        command = CompositeCommand(
            [RemoveComponentCommand(cid) for cid in ids],
            description=f"Delete {len(ids)} component(s)",
        )
        self.history.execute(command)
        self.selection.prune(self.history.diagram.components)
        return command

    def nudge(self, dx: float, dy: float) -> Optional[Command]:
        """Move the selection by a fixed world offset (arrow keys)."""
        self.cancel()
        ids = self._editable_selection()
        if not ids:
            return None
        diagram = self.history.diagram
        origins = {cid: diagram.components[cid].position for cid in ids}
        delta = clamped_delta(origins, dx, dy)
        if delta.x == 0 and delta.y == 0:
            return None
        command = MoveComponentsCommand(
            {cid: pos.offset(delta.x, delta.y) for cid, pos in origins.items()},
            origins=origins,
        )
        self.history.execute(command)
        return command

    # =========================================================================
    # RENDER SUPPORT
    # =========================================================================

    def preview_diagram(self) -> Diagram:
        """The diagram with in-flight drag or resize geometry applied."""
        diagram = self.history.diagram
        session = self._session
        if isinstance(session, ResizeSession):
            for cid, (position, size) in self._resized_geometry(session).items():
                if cid in diagram.components:
                    diagram = ops.move_component(diagram, cid, position)
                    diagram = ops.resize_component(diagram, cid, size)
            return diagram
        if not isinstance(session, DragSession):
            return diagram
        positions = {
            cid: pos for cid, pos in session.positions.items() if cid in diagram.components
        }
        return ops.move_components(diagram, positions) if positions else diagram

    def rubberband_rect(self) -> Optional[Rect]:
        if isinstance(self._session, RubberbandSession):
            return Rect.from_corners(self._session.start, self._session.current)
        return None
