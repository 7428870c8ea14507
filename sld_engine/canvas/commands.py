"""
Diagram Commands
================

Reversible units of diagram mutation. A command's ``do`` applies the change to
a diagram value and returns the new value; ``undo`` reverses it.

Commands keep plain data (ids and prior field values captured on first
application), never references to live components, so undo stays correct
however the diagram changed in between.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple

from ..models.diagram_models import Component, Connection, Diagram, Position, Size
from . import diagram_ops as ops
from .errors import NotFound


class Command(ABC):
    """Base class for reversible diagram edits."""

    @abstractmethod
    def do(self, diagram: Diagram) -> Diagram:
        """Apply the change and return the new diagram."""

    @abstractmethod
    def undo(self, diagram: Diagram) -> Diagram:
        """Reverse the change and return the new diagram."""

    def restorable_component_ids(self) -> Set[str]:
        """Components that undoing or redoing this command can bring back."""
        return set()

    @property
    def description(self) -> str:
        return self.__class__.__name__.replace("Command", "")

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}: {self.description}>"


class AddComponentCommand(Command):

    def __init__(self, component: Component):
        self.component = component

    def do(self, diagram: Diagram) -> Diagram:
        return ops.add_component(diagram, self.component)

    def undo(self, diagram: Diagram) -> Diagram:
        return ops.remove_component(diagram, self.component.id)

    def restorable_component_ids(self) -> Set[str]:
        return {self.component.id}

    @property
    def description(self) -> str:
        return f"Add {self.component.type} {self.component.id}"


class RemoveComponentCommand(Command):
    """Remove a component together with every connection that touches it."""

    def __init__(self, component_id: str):
        self.component_id = component_id
        self._component: Optional[Component] = None
        self._index: Optional[int] = None
        self._connections: List[Tuple[int, Connection]] = []

    def do(self, diagram: Diagram) -> Diagram:
        if self._component is None:
            component = diagram.get_component(self.component_id)
            if component is None:
                raise NotFound("Component", self.component_id)
            self._component = component
            self._index = ops.component_index(diagram, self.component_id)
            self._connections = ops.connections_touching(diagram, self.component_id)
        return ops.remove_component(diagram, self.component_id)

    def undo(self, diagram: Diagram) -> Diagram:
        diagram = ops.add_component(diagram, self._component, index=self._index)
        # Ascending order keeps each captured index valid as we re-insert.
        for index, connection in self._connections:
            diagram = ops.add_connection(diagram, connection, index=index)
        return diagram

    def restorable_component_ids(self) -> Set[str]:
        return {self.component_id}

    @property
    def description(self) -> str:
        return f"Remove component {self.component_id}"


class MoveComponentsCommand(Command):
    """Move one or more components; a whole drag is a single command."""

    def __init__(
        self,
        positions: Dict[str, Position],
        origins: Optional[Dict[str, Position]] = None
    ):
        self.positions = dict(positions)
        self._origins: Optional[Dict[str, Position]] = dict(origins) if origins else None

    def do(self, diagram: Diagram) -> Diagram:
        if self._origins is None:
            origins = {}
            for component_id in self.positions:
                component = diagram.get_component(component_id)
                if component is None:
                    raise NotFound("Component", component_id)
                origins[component_id] = component.position
            self._origins = origins
        return ops.move_components(diagram, self.positions)

    def undo(self, diagram: Diagram) -> Diagram:
        return ops.move_components(diagram, self._origins)

    @property
    def description(self) -> str:
        if len(self.positions) == 1:
            component_id, pos = next(iter(self.positions.items()))
            return f"Move {component_id} to ({pos.x:g}, {pos.y:g})"
        return f"Move {len(self.positions)} components"


class ResizeComponentCommand(Command):

    def __init__(self, component_id: str, size: Size):
        self.component_id = component_id
        self.size = size
        self._previous: Optional[Size] = None

    def do(self, diagram: Diagram) -> Diagram:
        if self._previous is None:
            component = diagram.get_component(self.component_id)
            if component is None:
                raise NotFound("Component", self.component_id)
            self._previous = component.size
        return ops.resize_component(diagram, self.component_id, self.size)

    def undo(self, diagram: Diagram) -> Diagram:
        return ops.resize_component(diagram, self.component_id, self._previous)

    @property
    def description(self) -> str:
        return f"Resize {self.component_id} to {self.size.width:g}x{self.size.height:g}"


class UpdateComponentPropertyCommand(Command):

    _MISSING = object()

    def __init__(self, component_id: str, name: str, value: Any):
        self.component_id = component_id
        self.name = name
        self.value = value
        self._previous: Any = None
        self._captured = False

    def do(self, diagram: Diagram) -> Diagram:
        if not self._captured:
            component = diagram.get_component(self.component_id)
            if component is None:
                raise NotFound("Component", self.component_id)
            self._previous = component.properties.get(self.name, self._MISSING)
            self._captured = True
        return ops.update_component_property(diagram, self.component_id, self.name, self.value)

    def undo(self, diagram: Diagram) -> Diagram:
        if self._previous is self._MISSING:
            return ops.remove_component_property(diagram, self.component_id, self.name)
        return ops.update_component_property(diagram, self.component_id, self.name, self._previous)

    @property
    def description(self) -> str:
        return f"Update {self.component_id}.{self.name}"


class AddConnectionCommand(Command):

    def __init__(self, connection: Connection):
        self.connection = connection

    def do(self, diagram: Diagram) -> Diagram:
        return ops.add_connection(diagram, self.connection)

    def undo(self, diagram: Diagram) -> Diagram:
        return ops.remove_connection(diagram, self.connection.id)

    @property
    def description(self) -> str:
        c = self.connection
        return f"Connect {c.from_component_id} -> {c.to_component_id} ({c.kind})"


class RemoveConnectionCommand(Command):

    def __init__(self, connection_id: str):
        self.connection_id = connection_id
        self._connection: Optional[Connection] = None
        self._index: Optional[int] = None

    def do(self, diagram: Diagram) -> Diagram:
        if self._connection is None:
            connection = diagram.connections.get(self.connection_id)
            if connection is None:
                raise NotFound("Connection", self.connection_id)
            self._connection = connection
            self._index = list(diagram.connections).index(self.connection_id)
        return ops.remove_connection(diagram, self.connection_id)

    def undo(self, diagram: Diagram) -> Diagram:
        return ops.add_connection(diagram, self._connection, index=self._index)

    @property
    def description(self) -> str:
        return f"Remove connection {self.connection_id}"


class CompositeCommand(Command):
    """
    Several commands applied as one undo step.

    Children run against an intermediate diagram value; if one fails the
    error propagates and the caller's diagram is never replaced.
    """

    def __init__(self, commands: Sequence[Command], description: Optional[str] = None):
        self.commands = list(commands)
        self._description = description

    def do(self, diagram: Diagram) -> Diagram:
        for command in self.commands:
            diagram = command.do(diagram)
        return diagram

    def undo(self, diagram: Diagram) -> Diagram:
        for command in reversed(self.commands):
            diagram = command.undo(diagram)
        return diagram

    def restorable_component_ids(self) -> Set[str]:
        ids = set()
        for command in self.commands:
            ids |= command.restorable_component_ids()
        return ids

    @property
    def description(self) -> str:
        if self._description:
            return self._description
        return f"{len(self.commands)} edits"
