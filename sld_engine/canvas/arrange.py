"""
Align & Distribute
==================

Group arrangement helpers. Each builds a single ``MoveComponentsCommand`` so
an alignment is one undo step.
"""

from enum import Enum
from typing import Dict, Optional, Sequence

from ..models.diagram_models import Diagram, Position
from .commands import MoveComponentsCommand
from .errors import NotFound
from .geometry import bounding_rect


class Alignment(str, Enum):
    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"
    TOP = "top"
    MIDDLE = "middle"
    BOTTOM = "bottom"


class Direction(str, Enum):
    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"


def _components(diagram: Diagram, component_ids: Sequence[str]):
    components = []
    for component_id in component_ids:
        component = diagram.get_component(component_id)
        if component is None:
            raise NotFound("Component", component_id)
        components.append(component)
    return components


def _command(diagram: Diagram, positions: Dict[str, Position]) -> Optional[MoveComponentsCommand]:
    changed = {
        cid: pos for cid, pos in positions.items()
        if diagram.components[cid].position != pos
    }
    if not changed:
        return None
    return MoveComponentsCommand(changed)


def align_command(
    diagram: Diagram,
    component_ids: Sequence[str],
    alignment: Alignment
) -> Optional[MoveComponentsCommand]:
    """Align components to an edge or center line of their joint bounds."""
    components = _components(diagram, component_ids)
    if len(components) < 2:
        return None
    alignment = Alignment(alignment)
    bounds = bounding_rect(components)

    positions = {}
    for c in components:
        x, y = c.position.x, c.position.y
        if alignment == Alignment.LEFT:
            x = bounds.left
        elif alignment == Alignment.CENTER:
            x = bounds.left + bounds.width / 2 - c.size.width / 2
        elif alignment == Alignment.RIGHT:
            x = bounds.right - c.size.width
        elif alignment == Alignment.TOP:
            y = bounds.top
        elif alignment == Alignment.MIDDLE:
            y = bounds.top + bounds.height / 2 - c.size.height / 2
        elif alignment == Alignment.BOTTOM:
            y = bounds.bottom - c.size.height
        positions[c.id] = Position(x=x, y=y)
    return _command(diagram, positions)


def distribute_command(
    diagram: Diagram,
    component_ids: Sequence[str],
    direction: Direction
) -> Optional[MoveComponentsCommand]:
    """
    Space components evenly along one axis. The first and last components
    (by position) stay where they are.
    """
    components = _components(diagram, component_ids)
    if len(components) < 3:
        return None
    horizontal = Direction(direction) == Direction.HORIZONTAL

    def start(c):
        return c.position.x if horizontal else c.position.y

    def extent(c):
        return c.size.width if horizontal else c.size.height

    ordered = sorted(components, key=start)
    first, last = ordered[0], ordered[-1]
    total_space = start(last) + extent(last) - start(first)
    spacing = (total_space - sum(extent(c) for c in ordered)) / (len(ordered) - 1)

    positions = {}
    cursor = start(first) + extent(first)
    for c in ordered[1:-1]:
        offset = cursor + spacing
        if horizontal:
            positions[c.id] = Position(x=offset, y=c.position.y)
        else:
            positions[c.id] = Position(x=c.position.x, y=offset)
        cursor = offset + extent(c)
    return _command(diagram, positions)
