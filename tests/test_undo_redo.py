"""
Test Suite for the Undo/Redo History Manager
"""

import pytest
import sys
from pathlib import Path

# Setup import path for src
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from shift_hours.data_manager import InvalidReferenceError
from shift_hours.undo_redo import UndoRedoManager


@pytest.fixture
def manager():
    """Fresh history for each test."""
    return UndoRedoManager()


@pytest.fixture
def assignments():
    return {
        "2025-01-06": {"e1": [{"type": "shift", "shiftId": "m"}]},
        "2025-01-07": {"e1": [{"type": "franco"}]},
    }


def test_empty_history(manager):
    assert manager.undo() is None
    assert manager.redo() is None
    assert not manager.can_undo
    assert not manager.can_redo
    assert manager.last_change_description is None


def test_save_undo_redo_round_trip(manager, assignments):
    """
    Why this is important: redo after undo must bring back exactly what was
    saved, otherwise the user silently loses edits.
    """
    manager.save_state("owner_2025-01-06", assignments, "Assign morning shift")

    undone = manager.undo()
    assert undone.assignments == assignments
    assert manager.can_redo

    redone = manager.redo()
    assert redone.schedule_id == "owner_2025-01-06"
    assert redone.assignments == assignments
    assert redone.description == "Assign morning shift"


def test_saved_state_is_a_deep_copy(manager, assignments):
    manager.save_state("s1", assignments, "edit")
    assignments["2025-01-06"]["e1"].append({"type": "nota", "texto": "late"})

    state = manager.undo()
    assert len(state.assignments["2025-01-06"]["e1"]) == 1


def test_returned_state_cannot_corrupt_history(manager, assignments):
    manager.save_state("s1", assignments, "edit")
    state = manager.undo()
    state.assignments.clear()

    assert manager.redo().assignments == assignments


def test_states_come_back_newest_first(manager):
    manager.save_state("s1", {"a": 1}, "first")
    manager.save_state("s1", {"a": 2}, "second")

    assert manager.last_change_description == "second"
    assert manager.undo().description == "second"
    assert manager.undo().description == "first"
    assert manager.undo() is None


def test_save_clears_redo(manager):
    manager.save_state("s1", {"a": 1}, "first")
    manager.undo()
    assert manager.can_redo

    manager.save_state("s1", {"a": 2}, "second")
    assert not manager.can_redo
    assert manager.redo() is None


def test_history_is_bounded():
    manager = UndoRedoManager(max_history_size=3)
    for i in range(5):
        manager.save_state("s1", {"step": i}, f"step {i}")

    assert manager.undo_depth == 3
    assert manager.undo().assignments == {"step": 4}
    assert manager.undo().assignments == {"step": 3}
    assert manager.undo().assignments == {"step": 2}
    assert manager.undo() is None


def test_clear_history(manager):
    manager.save_state("s1", {"a": 1}, "first")
    manager.undo()
    manager.clear_history()

    assert manager.undo_depth == 0
    assert manager.redo_depth == 0
    assert manager.current is None


def test_invalid_arguments(manager):
    with pytest.raises(ValueError):
        UndoRedoManager(max_history_size=0)
    with pytest.raises(InvalidReferenceError):
        manager.save_state("", {}, "no schedule")
