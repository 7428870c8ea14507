"""
Layer Manager
=============

Maintains the ordered set of drawing layers and which layer owns each
component. Ownership is exclusive: a forward index (layer -> component ids)
and a reverse index (component id -> layer id) are kept in step so every
check and reassignment is O(1).
"""

import logging
import uuid
from typing import Dict, Iterable, List, Optional

from ..models.diagram_models import Diagram
from ..models.layer_models import (
    COMPONENT_LAYER_MAP, DEFAULT_LAYER_ID, STANDARD_LAYERS,
    Layer, LayerCategory, LayerStyle, LayerSummary, LineType
)
from .errors import (
    DefaultLayerRequired, DuplicateId, InvalidGeometry, LayerLocked, LayerNotEmpty, NotFound
)

logger = logging.getLogger(__name__)


class LayerManager:
    """Ordered layers with visibility, lock, opacity and component ownership."""

    def __init__(self, seed_standard_layers: bool = True, default_layer_id: str = DEFAULT_LAYER_ID):
        self._layers: Dict[str, Layer] = {}
        self._stack: List[str] = []        # bottom -> top
        self._owner: Dict[str, str] = {}   # component id -> layer id
        self._detached: Dict[str, str] = {}
        self.default_layer_id = default_layer_id

        if seed_standard_layers:
            for attrs in sorted(STANDARD_LAYERS, key=lambda s: s["order"]):
                self._add_layer(Layer(**attrs))
        if default_layer_id not in self._layers:
            self._add_layer(Layer(id=default_layer_id, name="Default"))
        self._renumber()
        self.active_layer_id = default_layer_id

        logger.info(f"[LAYERS] Initialized with {len(self._layers)} layers")

    # =========================================================================
    # LAYER LIFECYCLE
    # =========================================================================

    def _next_order(self) -> int:
        if not self._layers:
            return 0
        return max(layer.order for layer in self._layers.values()) + 1

    def _add_layer(self, layer: Layer) -> Layer:
        self._layers[layer.id] = layer
        self._stack.append(layer.id)
        return layer

    def _renumber(self) -> None:
        """Set every layer's ``order`` to its stack position (unique, dense)."""
        for position, layer_id in enumerate(self._stack):
            self._layers[layer_id].order = position

    def get_layer(self, layer_id: str) -> Layer:
        layer = self._layers.get(layer_id)
        if layer is None:
            raise NotFound("Layer", layer_id)
        return layer

    def has_layer(self, layer_id: str) -> bool:
        return layer_id in self._layers

    def create_layer(
        self,
        name: str,
        category: LayerCategory = LayerCategory.CUSTOM,
        layer_id: Optional[str] = None,
        **attributes
    ) -> Layer:
        """Create a layer on top of the stack."""
        layer_id = layer_id or f"custom_{uuid.uuid4().hex[:8]}"
        if layer_id in self._layers:
            raise DuplicateId("Layer", layer_id)

        layer = Layer(
            id=layer_id,
            name=name,
            category=category,
            order=self._next_order(),
            **attributes
        )
        self._add_layer(layer)
        logger.info(f"[LAYERS] Created layer {layer_id} '{name}' (order={layer.order})")
        return layer

    def delete_layer(self, layer_id: str, force: bool = False) -> List[str]:
        """
        Delete a layer.

        A layer that still owns components is only deleted when ``force`` is
        set; its members then move to the default layer. Returns the ids of
        moved components.
        """
        layer = self.get_layer(layer_id)
        if layer_id == self.default_layer_id:
            raise DefaultLayerRequired(layer_id)
        if layer.component_ids and not force:
            raise LayerNotEmpty(layer_id, len(layer.component_ids))

        moved = sorted(layer.component_ids)
        for component_id in moved:
            self._assign(component_id, self.default_layer_id)

        del self._layers[layer_id]
        self._stack.remove(layer_id)
        self._renumber()
        for component_id, detached_layer in list(self._detached.items()):
            if detached_layer == layer_id:
                del self._detached[component_id]
        if self.active_layer_id == layer_id:
            self.active_layer_id = self.default_layer_id

        logger.info(f"[LAYERS] Deleted layer {layer_id} (moved {len(moved)} component(s))")
        return moved

    # =========================================================================
    # LAYER ATTRIBUTES
    # =========================================================================

    def set_visibility(self, layer_id: str, visible: bool) -> Layer:
        layer = self.get_layer(layer_id)
        layer.visible = visible
        return layer

    def toggle_visibility(self, layer_id: str) -> bool:
        layer = self.get_layer(layer_id)
        layer.visible = not layer.visible
        return layer.visible

    def set_locked(self, layer_id: str, locked: bool) -> Layer:
        layer = self.get_layer(layer_id)
        layer.locked = locked
        logger.info(f"[LAYERS] Layer {layer_id} {'locked' if locked else 'unlocked'}")
        return layer

    def toggle_locked(self, layer_id: str) -> bool:
        layer = self.get_layer(layer_id)
        layer.locked = not layer.locked
        return layer.locked

    def set_opacity(self, layer_id: str, opacity: float) -> Layer:
        layer = self.get_layer(layer_id)
        layer.opacity = max(0.0, min(1.0, opacity))
        return layer

    def update_layer(
        self,
        layer_id: str,
        name: Optional[str] = None,
        description: Optional[str] = None,
        color: Optional[str] = None,
        stroke_width: Optional[float] = None,
        line_type: Optional[LineType] = None,
        printable: Optional[bool] = None
    ) -> Layer:
        """
        Change a layer's name or style. Arguments left as None are unchanged.
        Stacking, visibility, lock and opacity have their own setters.
        """
        layer = self.get_layer(layer_id)
        if stroke_width is not None and stroke_width <= 0:
            raise InvalidGeometry(f"Stroke width must be positive, got {stroke_width}")
        if name is not None and not name.strip():
            raise InvalidGeometry("Layer name must not be empty")

        changes = {
            "name": name,
            "description": description,
            "color": color,
            "stroke_width": stroke_width,
            "line_type": LineType(line_type) if line_type is not None else None,
            "printable": printable,
        }
        changes = {key: value for key, value in changes.items() if value is not None}
        for key, value in changes.items():
            setattr(layer, key, value)

        if changes:
            logger.info(f"[LAYERS] Updated layer {layer_id}: {', '.join(sorted(changes))}")
        return layer

    def set_active_layer(self, layer_id: str) -> Layer:
        layer = self.get_layer(layer_id)
        self.active_layer_id = layer_id
        return layer

    @property
    def active_layer(self) -> Layer:
        return self._layers[self.active_layer_id]

    # =========================================================================
    # ORDERING
    # =========================================================================

    def layers(self) -> List[Layer]:
        """All layers, bottom to top."""
        return [self._layers[layer_id] for layer_id in self._stack]

    def layers_top_down(self) -> List[Layer]:
        """All layers in hit-test precedence (highest order first)."""
        return [self._layers[layer_id] for layer_id in reversed(self._stack)]

    def layers_by_category(self, category: LayerCategory) -> List[Layer]:
        return [layer for layer in self.layers() if layer.category == category]

    def visible_layers(self) -> List[Layer]:
        return [layer for layer in self.layers() if layer.visible]

    def reorder(self, from_index: int, to_index: int) -> List[Layer]:
        """
        Move the layer at ``from_index`` to ``to_index`` in the bottom-to-top
        stack. The other layers keep their relative order and every layer's
        ``order`` is renumbered to its stack position.
        """
        count = len(self._stack)
        for index in (from_index, to_index):
            if not 0 <= index < count:
                raise NotFound("Layer index", str(index))

        layer_id = self._stack.pop(from_index)
        self._stack.insert(to_index, layer_id)
        self._renumber()

        logger.info(f"[LAYERS] Reordered {layer_id}: {from_index} -> {to_index}")
        return self.layers()

    # =========================================================================
    # COMPONENT OWNERSHIP
    # =========================================================================

    def _assign(self, component_id: str, layer_id: str) -> None:
        current = self._owner.get(component_id)
        if current is not None:
            self._layers[current].component_ids.discard(component_id)
        self._layers[layer_id].component_ids.add(component_id)
        self._owner[component_id] = layer_id
        self._detached.pop(component_id, None)

    def assign_component(self, component_id: str, layer_id: str) -> Layer:
        """Move a component to ``layer_id``, removing it from its previous layer."""
        target = self.get_layer(layer_id)
        if target.locked:
            raise LayerLocked(layer_id)

        current = self._owner.get(component_id)
        if current == layer_id:
            return target
        if current is not None and self._layers[current].locked:
            raise LayerLocked(current, component_id)

        self._assign(component_id, layer_id)
        logger.debug(f"[LAYERS] {component_id}: {current} -> {layer_id}")
        return target

    def default_layer_for(self, component_type: str) -> str:
        """The standard layer for a component type, else the active layer."""
        layer_id = COMPONENT_LAYER_MAP.get(component_type)
        if layer_id is None or layer_id not in self._layers:
            layer_id = self.active_layer_id
        return layer_id

    def auto_assign(self, component_id: str, component_type: str) -> str:
        """Assign a component to the standard layer for its type, else the active layer."""
        layer_id = self.default_layer_for(component_type)
        self._assign(component_id, layer_id)
        return layer_id

    def reserve(self, component_id: str, layer_id: str) -> Optional[str]:
        """
        Claim ``layer_id`` for a component that is about to be added; the next
        ``sync`` that sees the component places it there. Returns the layer
        previously remembered for the id, for ``release`` if the add fails.
        """
        self.get_layer(layer_id)
        previous = self._detached.get(component_id)
        self._detached[component_id] = layer_id
        return previous

    def release(self, component_id: str, previous: Optional[str]) -> None:
        """Undo a ``reserve`` whose add never happened."""
        if previous is None:
            self._detached.pop(component_id, None)
        else:
            self._detached[component_id] = previous

    def forget_detached(self, keep: Iterable[str]) -> None:
        """Drop the remembered layer of every removed component not in ``keep``."""
        keep = set(keep)
        for component_id in [cid for cid in self._detached if cid not in keep]:
            del self._detached[component_id]

    @property
    def detached_count(self) -> int:
        return len(self._detached)

    def unassign(self, component_id: str) -> Optional[str]:
        layer_id = self._owner.pop(component_id, None)
        if layer_id is not None:
            self._layers[layer_id].component_ids.discard(component_id)
        return layer_id

    def layer_id_of(self, component_id: str) -> Optional[str]:
        return self._owner.get(component_id)

    def layer_of(self, component_id: str) -> Optional[Layer]:
        layer_id = self._owner.get(component_id)
        return self._layers[layer_id] if layer_id is not None else None

    def is_component_locked(self, component_id: str) -> bool:
        layer = self.layer_of(component_id)
        return layer is not None and layer.locked

    def is_component_visible(self, component_id: str) -> bool:
        layer = self.layer_of(component_id)
        return layer is None or layer.visible

    def is_interactive(self, component_id: str) -> bool:
        """Visible and unlocked, i.e. eligible for hit-testing."""
        return self.is_component_visible(component_id) and not self.is_component_locked(component_id)

    def ensure_unlocked(self, component_ids: Iterable[str]) -> None:
        for component_id in component_ids:
            layer = self.layer_of(component_id)
            if layer is not None and layer.locked:
                raise LayerLocked(layer.id, component_id)

    def component_style(self, component_id: str) -> Optional[LayerStyle]:
        layer = self.layer_of(component_id)
        if layer is None:
            return None
        return LayerStyle(
            layer_id=layer.id,
            color=layer.color,
            stroke_width=layer.stroke_width,
            opacity=layer.opacity,
            line_type=layer.line_type,
            visible=layer.visible,
        )

    def sync(self, diagram: Diagram) -> None:
        """
        Reconcile ownership with a new diagram snapshot.

        Components that disappeared are released, remembering their layer;
        new components go back to a remembered layer or are auto-assigned.
        """
        present = diagram.components
        for component_id in [cid for cid in self._owner if cid not in present]:
            self._detached[component_id] = self.unassign(component_id)

        for component_id, component in present.items():
            if component_id in self._owner:
                continue
            remembered = self._detached.get(component_id)
            if remembered is not None and remembered in self._layers:
                self._assign(component_id, remembered)
            else:
                self.auto_assign(component_id, component.type)

    def summaries(self, include_members: bool = False) -> List[LayerSummary]:
        return [
            LayerSummary(
                id=layer.id,
                name=layer.name,
                category=layer.category,
                order=layer.order,
                visible=layer.visible,
                locked=layer.locked,
                opacity=layer.opacity,
                color=layer.color,
                component_count=len(layer.component_ids),
                component_ids=sorted(layer.component_ids) if include_members else [],
            )
            for layer in self.layers()
        ]
