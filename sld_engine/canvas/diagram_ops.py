"""
Diagram Operations
==================

Pure mutation operations over ``Diagram`` values. Every operation returns a
new diagram and leaves its input untouched, so the history manager can keep
prior snapshots cheaply. Rejected operations raise a ``DiagramError``.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from ..models.diagram_models import Component, Connection, Diagram, Position, Size
from .errors import DanglingReference, DuplicateId, InvalidGeometry, NotFound

logger = logging.getLogger(__name__)


def new_diagram() -> Diagram:
    """Create an empty diagram."""
    return Diagram()


def _touch(diagram: Diagram, **updates) -> Diagram:
    """Return a copy with ``updates`` applied and ``metadata.modified`` bumped."""
    metadata = diagram.metadata.model_copy(update={"modified": datetime.now()})
    return diagram.model_copy(update={**updates, "metadata": metadata})


def _insert(mapping: Dict[str, Any], key: str, value: Any, index: Optional[int]) -> Dict[str, Any]:
    """Copy ``mapping`` with ``key`` inserted at ``index`` (appended when None)."""
    items = list(mapping.items())
    if index is None or index >= len(items):
        items.append((key, value))
    else:
        items.insert(max(index, 0), (key, value))
    return dict(items)


def _check_size(size: Size, component_id: str) -> None:
    if size.width <= 0 or size.height <= 0:
        raise InvalidGeometry(
            f"Component '{component_id}' size must be positive, got {size.width}x{size.height}"
        )


def _require_component(diagram: Diagram, component_id: str) -> Component:
    component = diagram.components.get(component_id)
    if component is None:
        raise NotFound("Component", component_id)
    return component


# =============================================================================
# COMPONENTS
# =============================================================================


def add_component(diagram: Diagram, component: Component, index: Optional[int] = None) -> Diagram:
    """Add ``component``; ``index`` re-inserts it at a position in paint order."""
    if component.id in diagram.components:
        raise DuplicateId("Component", component.id)
    _check_size(component.size, component.id)

    components = _insert(diagram.components, component.id, component, index)
    return _touch(diagram, components=components)


def remove_component(diagram: Diagram, component_id: str) -> Diagram:
    """Remove a component and, in the same step, every connection touching it."""
    _require_component(diagram, component_id)

    components = {k: v for k, v in diagram.components.items() if k != component_id}
    connections = {
        k: v for k, v in diagram.connections.items() if not v.touches(component_id)
    }
    dropped = len(diagram.connections) - len(connections)
    if dropped:
        logger.debug(f"[DIAGRAM] Cascade removed {dropped} connection(s) of {component_id}")
    return _touch(diagram, components=components, connections=connections)


def _replace_component(diagram: Diagram, component: Component) -> Diagram:
    components = dict(diagram.components)
    components[component.id] = component
    return _touch(diagram, components=components)


def move_component(diagram: Diagram, component_id: str, position: Position) -> Diagram:
    component = _require_component(diagram, component_id)
    return _replace_component(diagram, component.model_copy(update={"position": position}))


def move_components(diagram: Diagram, positions: Dict[str, Position]) -> Diagram:
    """Move several components in one transition."""
    components = dict(diagram.components)
    for component_id, position in positions.items():
        component = _require_component(diagram, component_id)
        components[component_id] = component.model_copy(update={"position": position})
    return _touch(diagram, components=components)


def resize_component(diagram: Diagram, component_id: str, size: Size) -> Diagram:
    component = _require_component(diagram, component_id)
    _check_size(size, component_id)
    return _replace_component(diagram, component.model_copy(update={"size": size}))


def update_component_property(diagram: Diagram, component_id: str, name: str, value: Any) -> Diagram:
    component = _require_component(diagram, component_id)
    properties = dict(component.properties)
    properties[name] = value
    return _replace_component(diagram, component.model_copy(update={"properties": properties}))


def remove_component_property(diagram: Diagram, component_id: str, name: str) -> Diagram:
    component = _require_component(diagram, component_id)
    properties = {k: v for k, v in component.properties.items() if k != name}
    return _replace_component(diagram, component.model_copy(update={"properties": properties}))


# =============================================================================
# CONNECTIONS
# =============================================================================


def add_connection(diagram: Diagram, connection: Connection, index: Optional[int] = None) -> Diagram:
    """Add ``connection``; both endpoints must already exist."""
    if connection.id in diagram.connections:
        raise DuplicateId("Connection", connection.id)
    missing = [
        cid for cid in (connection.from_component_id, connection.to_component_id)
        if cid not in diagram.components
    ]
    if missing:
        raise DanglingReference(connection.id, missing)

    connections = _insert(diagram.connections, connection.id, connection, index)
    return _touch(diagram, connections=connections)


def remove_connection(diagram: Diagram, connection_id: str) -> Diagram:
    if connection_id not in diagram.connections:
        raise NotFound("Connection", connection_id)
    connections = {k: v for k, v in diagram.connections.items() if k != connection_id}
    return _touch(diagram, connections=connections)


# =============================================================================
# QUERIES
# =============================================================================


def component_index(diagram: Diagram, component_id: str) -> int:
    return list(diagram.components).index(component_id)


def connections_touching(diagram: Diagram, component_id: str) -> List[Tuple[int, Connection]]:
    """Connections with an endpoint on ``component_id`` and their insertion index."""
    return [
        (index, connection)
        for index, connection in enumerate(diagram.connections.values())
        if connection.touches(component_id)
    ]


def validate_diagram(diagram: Diagram) -> Diagram:
    """Raise if the diagram violates an invariant (used on load)."""
    for component in diagram.components.values():
        _check_size(component.size, component.id)
    for connection in diagram.connections.values():
        missing = [
            cid for cid in (connection.from_component_id, connection.to_component_id)
            if cid not in diagram.components
        ]
        if missing:
            raise DanglingReference(connection.id, missing)
    return diagram
