"""Tests for the group rotation handle graphics item."""
from __future__ import annotations

import pytest
from PyQt6.QtCore import QEvent, Qt
from PyQt6.QtGui import QFocusEvent, QKeyEvent
from PyQt6.QtWidgets import QGraphicsScene, QGraphicsView

from canvas import RotationState, handle_anchor
from canvas.rotation_handle import RotationHandleItem
from models import Key
from session import EditorSession


@pytest.fixture
def rig(qapp):
    session = EditorSession()
    session.set_nodes([Key(id="a", x=0, y=0), Key(id="b", x=120, y=0)])
    session.select(["a", "b"])
    scene = QGraphicsScene()
    view = QGraphicsView(scene)
    handle = RotationHandleItem(session.rotation, session.selected_keys)
    scene.addItem(handle)
    yield session, scene, view, handle
    session.saver.cancel()
    if handle.scene() is not None:
        scene.removeItem(handle)


def _rotate_quarter(handle):
    assert handle.begin(handle.screen_position())
    pivot = handle.controller.pivot_screen
    return handle.drag_to((pivot.x + 100, pivot.y + 100))


class TestPlacement:
    def test_shown_for_two_keys(self, rig):
        session, _, _, handle = rig
        assert handle.isVisible()
        anchor = handle_anchor(session.selected_keys())
        assert handle.pos().x() == pytest.approx(anchor.x)
        assert handle.pos().y() == pytest.approx(anchor.y)

    def test_hidden_for_single_key(self, rig):
        session, _, _, handle = rig
        session.select(["a"])
        handle.sync()
        assert not handle.isVisible()

    def test_no_screen_position_outside_view(self, qapp):
        session = EditorSession()
        handle = RotationHandleItem(session.rotation, session.selected_keys)
        assert handle.screen_position() is None
        assert not handle.begin((0, 0))


class TestGesture:
    def test_drag_and_release(self, rig):
        session, _, _, handle = rig
        assert _rotate_quarter(handle) == pytest.approx(90)
        handle.finish()
        assert handle.controller.state is RotationState.IDLE
        assert [k.rotation for k in session.get_nodes()] == [90, 90]
        assert session.saver.is_pending()

    def test_handle_follows_rotation(self, rig):
        _, _, _, handle = rig
        _rotate_quarter(handle)
        expected = handle.controller.handle_position()
        assert handle.pos().x() == pytest.approx(expected.x)
        assert handle.pos().y() == pytest.approx(expected.y)

    def test_escape_reverts(self, rig):
        session, _, _, handle = rig
        _rotate_quarter(handle)
        handle.keyPressEvent(QKeyEvent(QEvent.Type.KeyPress, Qt.Key.Key_Escape,
                                       Qt.KeyboardModifier.NoModifier))
        assert not handle.controller.is_active
        assert [(k.x, k.y, k.rotation) for k in session.get_nodes()] == [(0, 0, None), (120, 0, None)]

    def test_focus_loss_commits(self, rig):
        session, _, _, handle = rig
        _rotate_quarter(handle)
        handle.focusOutEvent(QFocusEvent(QEvent.Type.FocusOut))
        assert not handle.controller.is_active
        assert [k.rotation for k in session.get_nodes()] == [90, 90]

    def test_removal_commits(self, rig):
        session, scene, _, handle = rig
        _rotate_quarter(handle)
        scene.removeItem(handle)
        assert not handle.controller.is_active
        assert [k.rotation for k in session.get_nodes()] == [90, 90]

    def test_undo_after_gesture(self, rig):
        session, _, _, handle = rig
        _rotate_quarter(handle)
        handle.finish()
        session.undo()
        assert all(k.rotation is None for k in session.get_nodes())
