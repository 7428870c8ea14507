"""
Geometry & Transform
====================

Pure helpers for mapping between world and screen coordinates and for
axis-aligned rectangle tests used by hit-testing and rubberband selection.

    screen = (world - pan) * zoom
    world  = screen / zoom + pan
"""

import math
from typing import Iterable, Optional
from pydantic import BaseModel, ConfigDict

from ..models.diagram_models import Component, Position


class Rect(BaseModel):
    """Axis-aligned rectangle in world coordinates."""
    model_config = ConfigDict(frozen=True)

    left: float
    top: float
    right: float
    bottom: float

    @classmethod
    def from_corners(cls, a: Position, b: Position) -> "Rect":
        """Build a rectangle from two opposite corners in any order."""
        return cls(
            left=min(a.x, b.x),
            top=min(a.y, b.y),
            right=max(a.x, b.x),
            bottom=max(a.y, b.y),
        )

    @classmethod
    def from_point(cls, point: Position) -> "Rect":
        return cls(left=point.x, top=point.y, right=point.x, bottom=point.y)

    @classmethod
    def from_component(cls, component: Component) -> "Rect":
        pos, size = component.position, component.size
        return cls(
            left=pos.x,
            top=pos.y,
            right=pos.x + size.width,
            bottom=pos.y + size.height,
        )

    @property
    def width(self) -> float:
        return self.right - self.left

    @property
    def height(self) -> float:
        return self.bottom - self.top

    @property
    def is_point(self) -> bool:
        """Both corners coincide. A zero-width or zero-height line is not a point."""
        return self.width == 0 and self.height == 0


def world_to_screen(point: Position, view) -> Position:
    """Map a world point to screen space for the given view state."""
    return Position(
        x=(point.x - view.pan.x) * view.zoom,
        y=(point.y - view.pan.y) * view.zoom,
    )


def screen_to_world(point: Position, view) -> Position:
    """Inverse of ``world_to_screen``."""
    return Position(
        x=point.x / view.zoom + view.pan.x,
        y=point.y / view.zoom + view.pan.y,
    )


def rect_intersects(a: Rect, b: Rect) -> bool:
    """Inclusive AABB overlap test; touching edges count as overlap."""
    return (
        a.left <= b.right
        and a.right >= b.left
        and a.top <= b.bottom
        and a.bottom >= b.top
    )


def rect_contains_point(rect: Rect, point: Position) -> bool:
    return rect_intersects(rect, Rect.from_point(point))


def _round_half_away(value: float) -> float:
    return math.copysign(math.floor(abs(value) + 0.5), value)


def snap_to_grid(point: Position, grid_size: float) -> Position:
    """Round each axis to the nearest multiple of ``grid_size``."""
    return Position(
        x=_round_half_away(point.x / grid_size) * grid_size,
        y=_round_half_away(point.y / grid_size) * grid_size,
    )


def bounding_rect(components: Iterable[Component]) -> Optional[Rect]:
    """Union of the bounding boxes of ``components``, or None if empty."""
    rects = [Rect.from_component(c) for c in components]
    if not rects:
        return None
    return Rect(
        left=min(r.left for r in rects),
        top=min(r.top for r in rects),
        right=max(r.right for r in rects),
        bottom=max(r.bottom for r in rects),
    )
