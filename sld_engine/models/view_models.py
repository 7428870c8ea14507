"""
View Models for the SLD Engine
==============================

Session-scoped canvas view state (zoom, pan, grid) and the current selection.
Neither is part of the persisted diagram.
"""

from typing import Iterable, List, Optional
from pydantic import BaseModel, Field

from .diagram_models import Position
from ..canvas.errors import InvalidGeometry
from ..canvas.geometry import Rect, screen_to_world


class CanvasViewState(BaseModel):
    """Zoom, pan offset, and grid settings of a canvas."""
    zoom: float = Field(default=1.0, gt=0)
    pan: Position = Field(default_factory=Position)
    grid_size: int = Field(default=20, gt=0)
    grid_enabled: bool = True
    snap_to_grid: bool = True
    min_zoom: float = Field(default=0.1, gt=0)
    max_zoom: float = Field(default=10.0, gt=0)
    zoom_step: float = Field(default=1.2, gt=1.0)

    def clamp_zoom(self, zoom: float) -> float:
        return max(self.min_zoom, min(self.max_zoom, zoom))

    def set_zoom(self, zoom: float) -> float:
        """Set the zoom level, clamped to [min_zoom, max_zoom]."""
        if zoom <= 0:
            raise InvalidGeometry(f"Zoom must be positive, got {zoom}")
        self.zoom = self.clamp_zoom(zoom)
        return self.zoom

    def zoom_at(self, screen_point: Position, factor: float) -> float:
        """Zoom by ``factor`` keeping the world point under ``screen_point`` fixed."""
        if factor <= 0:
            raise InvalidGeometry(f"Zoom factor must be positive, got {factor}")
        anchor = screen_to_world(screen_point, self)
        self.zoom = self.clamp_zoom(self.zoom * factor)
        self.pan = Position(
            x=anchor.x - screen_point.x / self.zoom,
            y=anchor.y - screen_point.y / self.zoom,
        )
        return self.zoom

    def zoom_in(self, screen_point: Optional[Position] = None) -> float:
        return self.zoom_at(screen_point or Position(), self.zoom_step)

    def zoom_out(self, screen_point: Optional[Position] = None) -> float:
        return self.zoom_at(screen_point or Position(), 1.0 / self.zoom_step)

    def pan_by(self, screen_dx: float, screen_dy: float) -> Position:
        """Scroll the view so content follows a pointer moved by (dx, dy) pixels."""
        self.pan = self.pan.offset(-screen_dx / self.zoom, -screen_dy / self.zoom)
        return self.pan

    def zoom_to_fit(
        self,
        bounds: Optional[Rect],
        viewport_width: float,
        viewport_height: float,
        padding: float = 50.0
    ) -> None:
        """Frame ``bounds`` inside a viewport of the given pixel size."""
        if viewport_width <= 0 or viewport_height <= 0:
            raise InvalidGeometry(
                f"Viewport must be positive, got {viewport_width}x{viewport_height}"
            )
        if bounds is None:
            self.reset()
            return

        scale_x = viewport_width / (bounds.width + padding * 2)
        scale_y = viewport_height / (bounds.height + padding * 2)
        self.zoom = self.clamp_zoom(min(scale_x, scale_y))

        center_x = bounds.left + bounds.width / 2
        center_y = bounds.top + bounds.height / 2
        self.pan = Position(
            x=center_x - viewport_width / (2 * self.zoom),
            y=center_y - viewport_height / (2 * self.zoom),
        )

    def reset(self) -> None:
        self.zoom = self.clamp_zoom(1.0)
        self.pan = Position()

    def set_grid_size(self, grid_size: int) -> None:
        if grid_size <= 0:
            raise InvalidGeometry(f"Grid size must be positive, got {grid_size}")
        self.grid_size = grid_size

    def visible_world_rect(self, viewport_width: float, viewport_height: float) -> Rect:
        """World-space rectangle currently shown in the viewport."""
        return Rect(
            left=self.pan.x,
            top=self.pan.y,
            right=self.pan.x + viewport_width / self.zoom,
            bottom=self.pan.y + viewport_height / self.zoom,
        )


class SelectionState(BaseModel):
    """Ordered set of selected component ids."""
    ids: List[str] = Field(default_factory=list)

    def contains(self, component_id: str) -> bool:
        return component_id in self.ids

    def replace(self, component_ids: Iterable[str]) -> None:
        self.ids = list(dict.fromkeys(component_ids))

    def add(self, component_id: str) -> None:
        if component_id not in self.ids:
            self.ids.append(component_id)

    def discard(self, component_id: str) -> None:
        if component_id in self.ids:
            self.ids.remove(component_id)

    def toggle(self, component_id: str) -> bool:
        """Flip membership; returns True if the id is now selected."""
        if component_id in self.ids:
            self.ids.remove(component_id)
            return False
        self.ids.append(component_id)
        return True

    def clear(self) -> None:
        self.ids = []

    def prune(self, existing_ids: Iterable[str]) -> None:
        """Drop ids that no longer exist in the diagram."""
        existing = set(existing_ids)
        self.ids = [i for i in self.ids if i in existing]
