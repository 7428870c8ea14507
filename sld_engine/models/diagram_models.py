"""
Diagram Models for the SLD Engine
=================================

Models for placed components, their connections, and the diagram aggregate.
All diagram values are frozen; mutations produce new values.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime

DIAGRAM_FORMAT_VERSION = "1.0"


class Position(BaseModel):
    """Point in world (diagram) coordinates."""
    model_config = ConfigDict(frozen=True)

    x: float = 0.0
    y: float = 0.0

    def offset(self, dx: float, dy: float) -> "Position":
        return Position(x=self.x + dx, y=self.y + dy)


class Size(BaseModel):
    """Width and height of a component's bounding box."""
    model_config = ConfigDict(frozen=True)

    width: float = Field(ge=0)
    height: float = Field(ge=0)


class Component(BaseModel):
    """A component placed on the diagram (breaker, panel, meter, ...)."""
    model_config = ConfigDict(frozen=True)

    id: str
    type: str
    position: Position = Field(default_factory=Position)
    size: Size
    properties: Dict[str, Any] = Field(default_factory=dict)


class Connection(BaseModel):
    """An edge between two components."""
    model_config = ConfigDict(frozen=True)

    id: str
    from_component_id: str
    to_component_id: str
    kind: str = "power"

    def touches(self, component_id: str) -> bool:
        return component_id in (self.from_component_id, self.to_component_id)


class DiagramMetadata(BaseModel):
    """Timestamps and format version of a diagram."""
    model_config = ConfigDict(frozen=True)

    created: datetime = Field(default_factory=datetime.now)
    modified: datetime = Field(default_factory=datetime.now)
    version: str = DIAGRAM_FORMAT_VERSION


class Diagram(BaseModel):
    """
    Aggregate root of a single-line diagram.

    Dict insertion order is meaningful: later components paint above earlier
    ones within the same layer.
    """
    model_config = ConfigDict(frozen=True)

    components: Dict[str, Component] = Field(default_factory=dict)
    connections: Dict[str, Connection] = Field(default_factory=dict)
    metadata: DiagramMetadata = Field(default_factory=DiagramMetadata)

    def get_component(self, component_id: str) -> Optional[Component]:
        return self.components.get(component_id)

    def content_equals(self, other: "Diagram") -> bool:
        """Compare components and connections, ignoring timestamps."""
        return (
            list(self.components.items()) == list(other.components.items())
            and list(self.connections.items()) == list(other.connections.items())
        )
