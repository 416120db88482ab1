"""Tests for snapshot undo/redo (undo_commands.py)."""
from __future__ import annotations

import pytest

from undo_commands import LayoutHistory


class Document:
    """Minimal capture/restore target."""

    def __init__(self):
        self.state = {"nodes": []}
        self.restores = 0

    def capture(self):
        return self.state

    def restore(self, snapshot):
        self.restores += 1
        self.state = snapshot


@pytest.fixture
def doc(qapp):
    return Document()


class TestLayoutHistory:
    def test_record_does_not_restore(self, doc):
        history = LayoutHistory(doc.capture, doc.restore)
        history.record_history("Add")
        assert doc.restores == 0
        assert history.can_undo()

    def test_undo_and_redo(self, doc):
        history = LayoutHistory(doc.capture, doc.restore)
        history.record_history("Add")
        doc.state["nodes"].append("k1")

        assert history.undo()
        assert doc.state == {"nodes": []}
        assert history.can_redo()

        assert history.redo()
        assert doc.state == {"nodes": ["k1"]}

    def test_snapshot_is_a_copy(self, doc):
        history = LayoutHistory(doc.capture, doc.restore)
        history.record_history()
        # Mutating the live state in place must not leak into the snapshot
        doc.state["nodes"].append("k1")
        history.undo()
        assert doc.state == {"nodes": []}

    def test_several_steps(self, doc):
        history = LayoutHistory(doc.capture, doc.restore)
        for name in ("a", "b", "c"):
            history.record_history()
            doc.state = {"nodes": doc.state["nodes"] + [name]}
        history.undo()
        history.undo()
        assert doc.state == {"nodes": ["a"]}
        history.redo()
        assert doc.state == {"nodes": ["a", "b"]}

    def test_new_edit_drops_redo(self, doc):
        history = LayoutHistory(doc.capture, doc.restore)
        history.record_history()
        doc.state = {"nodes": ["a"]}
        history.undo()
        history.record_history()
        doc.state = {"nodes": ["z"]}
        assert not history.can_redo()

    def test_empty_stack(self, doc):
        history = LayoutHistory(doc.capture, doc.restore)
        assert not history.undo()
        assert not history.redo()

    def test_undo_limit_from_settings(self, doc, isolated_settings):
        isolated_settings.settings.editor.history.undo_limit = 2
        history = LayoutHistory(doc.capture, doc.restore)
        for i in range(5):
            history.record_history()
            doc.state = {"nodes": [i]}
        assert history.undo_stack.count() == 2

    def test_clear(self, doc):
        history = LayoutHistory(doc.capture, doc.restore)
        history.record_history()
        history.clear()
        assert not history.can_undo()

    def test_command_text(self, doc):
        history = LayoutHistory(doc.capture, doc.restore)
        history.record_history("Rotate")
        assert history.undo_stack.undoText() == "Rotate"
