"""
Undo/Redo History Manager

Bounded history of schedule assignment snapshots for one editing session.
The caller creates one manager per session and decides what a restored
snapshot means for its schedule.
"""

import copy
import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from .data_manager import InvalidReferenceError

logger = logging.getLogger(__name__)

DEFAULT_MAX_HISTORY_SIZE = 50


@dataclass
class UndoState:
    """Snapshot of a schedule's assignments"""
    schedule_id: str
    assignments: Dict[str, Any]
    description: str = ""
    timestamp: datetime = field(default_factory=datetime.now)


class UndoRedoManager:
    """Undo and redo stacks of UndoState snapshots, newest on top"""

    def __init__(self, max_history_size: int = DEFAULT_MAX_HISTORY_SIZE):
        if max_history_size < 1:
            raise ValueError(f"max_history_size must be at least 1, got {max_history_size}")
        self.max_history_size = max_history_size
        # Oldest entries fall off the left end once the stack is full
        self._undo_stack: deque = deque(maxlen=max_history_size)
        self._redo_stack: deque = deque(maxlen=max_history_size)
        self._current: Optional[UndoState] = None

    def save_state(self, schedule_id: str, assignments: Dict[str, Any], description: str = "") -> UndoState:
        """Record a snapshot; any redo history is discarded"""
        if not schedule_id:
            raise InvalidReferenceError("Cannot save undo state without a schedule id")
        state = UndoState(
            schedule_id=schedule_id,
            assignments=copy.deepcopy(assignments),
            description=description,
        )
        self._undo_stack.append(state)
        self._redo_stack.clear()
        self._current = state
        logger.debug(f"Saved undo state for {schedule_id}: {description}")
        return copy.deepcopy(state)

    def undo(self) -> Optional[UndoState]:
        if not self._undo_stack:
            return None
        state = self._undo_stack.pop()
        if self._current is not None:
            self._redo_stack.append(self._current)
        self._current = state
        return copy.deepcopy(state)

    def redo(self) -> Optional[UndoState]:
        if not self._redo_stack:
            return None
        state = self._redo_stack.pop()
        self._undo_stack.append(self._current if self._current is not None else state)
        self._current = state
        return copy.deepcopy(state)

    def clear_history(self):
        self._undo_stack.clear()
        self._redo_stack.clear()
        self._current = None

    @property
    def can_undo(self) -> bool:
        return bool(self._undo_stack)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo_stack)

    @property
    def last_change_description(self) -> Optional[str]:
        if not self._undo_stack:
            return None
        return self._undo_stack[-1].description or None

    @property
    def undo_depth(self) -> int:
        return len(self._undo_stack)

    @property
    def redo_depth(self) -> int:
        return len(self._redo_stack)

    @property
    def current(self) -> Optional[UndoState]:
        return copy.deepcopy(self._current)
