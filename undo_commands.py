"""
undo_commands.py

Snapshot-based undo/redo for the layout.

Every undoable edit calls ``record_history()`` *before* mutating the
layout.  That pushes a ``LayoutSnapshotCommand`` holding the state as it
was; the state after the edit is captured lazily on the first undo.
"""

from __future__ import annotations

import copy
from typing import Any, Callable, Dict, Optional

from PyQt6.QtGui import QUndoCommand, QUndoStack

from debug_trace import trace
from settings import get_settings

Snapshot = Dict[str, Any]


class LayoutSnapshotCommand(QUndoCommand):
    """Command restoring a whole-layout snapshot."""

    def __init__(self, before: Snapshot, capture: Callable[[], Snapshot],
                 restore: Callable[[Snapshot], None], text: str = "Edit layout", parent=None):
        super().__init__(parent)
        self.before = copy.deepcopy(before)
        self.after: Optional[Snapshot] = None
        self._capture = capture
        self._restore = restore
        self.setText(text)
        self._first_redo = True

    def undo(self):
        self.after = copy.deepcopy(self._capture())
        self._restore(copy.deepcopy(self.before))

    def redo(self):
        if self._first_redo:
            self._first_redo = False
            return
        if self.after is not None:
            self._restore(copy.deepcopy(self.after))


class LayoutHistory:
    """Undo/redo stack of layout snapshots.

    Args:
        capture: Returns the current layout snapshot.
        restore: Replaces the current layout with a snapshot.
        parent: Optional QObject owning the underlying QUndoStack.
    """

    def __init__(self, capture: Callable[[], Snapshot], restore: Callable[[Snapshot], None],
                 parent=None):
        self._capture = capture
        self._restore = restore
        self.undo_stack = QUndoStack(parent)
        self.undo_stack.setUndoLimit(get_settings().settings.editor.history.undo_limit)

    def record_history(self, text: str = "Edit layout") -> None:
        """Remember the current state as an undo point."""
        cmd = LayoutSnapshotCommand(self._capture(), self._capture, self._restore, text)
        self.undo_stack.push(cmd)
        trace(f"record: {text} (depth {self.undo_stack.count()})", "HISTORY")

    def undo(self) -> bool:
        if not self.undo_stack.canUndo():
            return False
        trace(f"undo: {self.undo_stack.undoText()}", "HISTORY")
        self.undo_stack.undo()
        return True

    def redo(self) -> bool:
        if not self.undo_stack.canRedo():
            return False
        trace(f"redo: {self.undo_stack.redoText()}", "HISTORY")
        self.undo_stack.redo()
        return True

    def can_undo(self) -> bool:
        return self.undo_stack.canUndo()

    def can_redo(self) -> bool:
        return self.undo_stack.canRedo()

    def clear(self) -> None:
        self.undo_stack.clear()
