"""
Engine Errors
=============

Recoverable errors raised by diagram, layer, and view operations.
A rejected operation leaves the diagram and history untouched.
"""


class DiagramError(Exception):
    """Base class for all editing engine errors."""


class DuplicateId(DiagramError):
    """An element with the same id already exists."""

    def __init__(self, kind: str, element_id: str):
        self.kind = kind
        self.element_id = element_id
        super().__init__(f"{kind} '{element_id}' already exists")


class NotFound(DiagramError):
    """The referenced element does not exist."""

    def __init__(self, kind: str, element_id: str):
        self.kind = kind
        self.element_id = element_id
        super().__init__(f"{kind} '{element_id}' not found")


class DanglingReference(DiagramError):
    """A connection endpoint references a missing component."""

    def __init__(self, connection_id: str, missing_ids):
        self.connection_id = connection_id
        self.missing_ids = list(missing_ids)
        super().__init__(
            f"Connection '{connection_id}' references missing component(s): "
            f"{', '.join(self.missing_ids)}"
        )


class LayerLocked(DiagramError):
    """The operation targets a member of a locked layer."""

    def __init__(self, layer_id: str, component_id: str = None):
        self.layer_id = layer_id
        self.component_id = component_id
        if component_id:
            super().__init__(f"Component '{component_id}' is on locked layer '{layer_id}'")
        else:
            super().__init__(f"Layer '{layer_id}' is locked")


class LayerNotEmpty(DiagramError):
    """A layer still owns components and the delete was not forced."""

    def __init__(self, layer_id: str, count: int):
        self.layer_id = layer_id
        self.count = count
        super().__init__(f"Layer '{layer_id}' still owns {count} component(s)")


class DefaultLayerRequired(DiagramError):
    """The default layer cannot be deleted."""

    def __init__(self, layer_id: str):
        self.layer_id = layer_id
        super().__init__(f"Cannot delete the default layer '{layer_id}'")


class InvalidGeometry(DiagramError):
    """A size, grid spacing, or zoom value is not positive."""
