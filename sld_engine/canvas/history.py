"""
Command History Manager
=======================

Owns the canonical diagram and the bounded undo/redo stacks. All diagram
mutation goes through ``execute``, ``undo`` and ``redo``.
"""

import logging
from collections import deque
from itertools import chain
from typing import Callable, Deque, List, Optional, Set

from ..models.diagram_models import Diagram
from .commands import Command
from .diagram_ops import new_diagram

logger = logging.getLogger(__name__)

DiagramListener = Callable[[Diagram], None]


class CommandManager:
    """
    Executes commands against the diagram and keeps their history.

    A command whose ``do`` raises is never recorded, so every state reachable
    through undo/redo has been valid at some point.
    """

    def __init__(self, diagram: Optional[Diagram] = None, max_depth: int = 50):
        if max_depth < 1:
            raise ValueError(f"max_depth must be at least 1, got {max_depth}")
        self.max_depth = max_depth
        self._diagram = diagram if diagram is not None else new_diagram()
        self._undo_stack: Deque[Command] = deque(maxlen=max_depth)
        self._redo_stack: Deque[Command] = deque(maxlen=max_depth)
        self._listeners: List[DiagramListener] = []

    @property
    def diagram(self) -> Diagram:
        return self._diagram

    def subscribe(self, listener: DiagramListener) -> None:
        """Register a callback invoked with the new diagram after each transition."""
        self._listeners.append(listener)

    def _commit(self, diagram: Diagram) -> None:
        # Listeners see the stacks already updated for this transition.
        self._diagram = diagram
        for listener in self._listeners:
            listener(diagram)

    def execute(self, command: Command) -> Diagram:
        """Apply ``command``, record it, and drop the redo future."""
        new_value = command.do(self._diagram)

        if len(self._undo_stack) == self.max_depth:
            logger.debug(f"[HISTORY] Evicting oldest entry: {self._undo_stack[0].description}")
        self._undo_stack.append(command)
        self._redo_stack.clear()
        self._commit(new_value)

        logger.info(
            f"[HISTORY] execute '{command.description}' "
            f"(undo={len(self._undo_stack)}, redo=0)"
        )
        return self._diagram

    def undo(self) -> bool:
        if not self._undo_stack:
            return False
        command = self._undo_stack.pop()
        new_value = command.undo(self._diagram)
        self._redo_stack.append(command)
        self._commit(new_value)
        logger.info(
            f"[HISTORY] undo '{command.description}' "
            f"(undo={len(self._undo_stack)}, redo={len(self._redo_stack)})"
        )
        return True

    def redo(self) -> bool:
        if not self._redo_stack:
            return False
        command = self._redo_stack.pop()
        new_value = command.do(self._diagram)
        self._undo_stack.append(command)
        self._commit(new_value)
        logger.info(
            f"[HISTORY] redo '{command.description}' "
            f"(undo={len(self._undo_stack)}, redo={len(self._redo_stack)})"
        )
        return True

    def can_undo(self) -> bool:
        return bool(self._undo_stack)

    def can_redo(self) -> bool:
        return bool(self._redo_stack)

    @property
    def undo_depth(self) -> int:
        return len(self._undo_stack)

    @property
    def redo_depth(self) -> int:
        return len(self._redo_stack)

    def undo_descriptions(self) -> List[str]:
        """Descriptions of undoable commands, most recent first."""
        return [c.description for c in reversed(self._undo_stack)]

    def redo_descriptions(self) -> List[str]:
        return [c.description for c in reversed(self._redo_stack)]

    def restorable_component_ids(self) -> Set[str]:
        """Every component id that some undo or redo step could re-add."""
        ids = set()
        for command in chain(self._undo_stack, self._redo_stack):
            ids |= command.restorable_component_ids()
        return ids

    def clear(self) -> None:
        self._undo_stack.clear()
        self._redo_stack.clear()

    def replace_diagram(self, diagram: Diagram) -> None:
        """Swap in a loaded diagram; history does not apply to it."""
        self.clear()
        self._commit(diagram)
        logger.info(f"[HISTORY] Diagram replaced ({len(diagram.components)} components)")
