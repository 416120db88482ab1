"""
canvas/rotation_handle.py

Round drag handle that drives a GroupRotationController.

The handle is drawn at a fixed screen size (ignores the view transform)
and only shown while two or more keys are selected.  A gesture ends on
mouse release (commit), Escape (revert), focus loss (commit) or when the
handle is removed from its scene (commit).
"""

from __future__ import annotations

from typing import Callable, List, Optional, Tuple

from PyQt6.QtCore import Qt, QPointF
from PyQt6.QtGui import QBrush, QColor, QPen
from PyQt6.QtWidgets import QGraphicsEllipseItem, QGraphicsItem

from canvas.group_rotation import GroupRotationController, handle_anchor
from debug_trace import trace
from models import Key
from settings import get_settings

HANDLE_BORDER_COLOR = "#4f46e5"
HANDLE_Z = 1000


class RotationHandleItem(QGraphicsEllipseItem):
    """Graphics item for the group rotation handle.

    Args:
        controller: Gesture state machine to drive.
        keys_provider: Returns the currently selected keys.
    """

    def __init__(self, controller: GroupRotationController,
                 keys_provider: Callable[[], List[Key]], parent=None):
        size = get_settings().settings.editor.rotation.handle_size
        super().__init__(-size / 2, -size / 2, size, size, parent)
        self._controller = controller
        self._keys_provider = keys_provider

        self.setFlag(QGraphicsItem.GraphicsItemFlag.ItemIgnoresTransformations, True)
        self.setFlag(QGraphicsItem.GraphicsItemFlag.ItemIsFocusable, True)
        self.setFlag(QGraphicsItem.GraphicsItemFlag.ItemSendsScenePositionChanges, True)
        self.setAcceptedMouseButtons(Qt.MouseButton.LeftButton)
        self.setBrush(QBrush(QColor("white")))
        pen = QPen(QColor(HANDLE_BORDER_COLOR))
        pen.setWidthF(1.5)
        self.setPen(pen)
        self.setZValue(HANDLE_Z)
        self.setCursor(Qt.CursorShape.CrossCursor)
        self.sync()

    @property
    def controller(self) -> GroupRotationController:
        return self._controller

    # ─────────────────────────────────────────────────────────────────────
    # Placement
    # ─────────────────────────────────────────────────────────────────────

    def sync(self) -> None:
        """Show/hide and reposition for the current selection."""
        if self._controller.is_active:
            self.setPos(QPointF(*self._controller.handle_position()))
            return
        keys = self._keys_provider()
        if len(keys) < 2:
            self.hide()
            return
        self.setPos(QPointF(*handle_anchor(keys)))
        self.show()

    def _view(self):
        scene = self.scene()
        if scene is None:
            return None
        views = scene.views()
        return views[0] if views else None

    def screen_position(self) -> Optional[Tuple[float, float]]:
        """Global screen position of the handle centre, or None if not in a view."""
        view = self._view()
        if view is None:
            return None
        pt = view.viewport().mapToGlobal(view.mapFromScene(self.scenePos()))
        return float(pt.x()), float(pt.y())

    def _zoom(self) -> float:
        view = self._view()
        return view.transform().m11() if view is not None else 1.0

    # ─────────────────────────────────────────────────────────────────────
    # Gesture
    # ─────────────────────────────────────────────────────────────────────

    def begin(self, pointer: Tuple[float, float]) -> bool:
        """Arm the controller with the handle's measured screen position."""
        armed = self._controller.arm(self._keys_provider(), pointer,
                                     self.screen_position(), self._zoom())
        if armed:
            self.setFocus(Qt.FocusReason.MouseFocusReason)
        return armed

    def drag_to(self, pointer: Tuple[float, float]) -> float:
        delta = self._controller.move(pointer)
        self.sync()
        return delta

    def finish(self) -> None:
        self._controller.release()
        self.sync()

    def abort(self) -> None:
        self._controller.cancel()
        self.sync()

    # ─────────────────────────────────────────────────────────────────────
    # Qt events
    # ─────────────────────────────────────────────────────────────────────

    def mousePressEvent(self, event):
        if event.button() == Qt.MouseButton.LeftButton:
            sp = event.screenPos()
            if self.begin((sp.x(), sp.y())):
                event.accept()
                return
        event.ignore()

    def mouseMoveEvent(self, event):
        if self._controller.is_active:
            sp = event.screenPos()
            self.drag_to((sp.x(), sp.y()))
            event.accept()
            return
        super().mouseMoveEvent(event)

    def mouseReleaseEvent(self, event):
        if self._controller.is_active:
            self.finish()
            event.accept()
            return
        super().mouseReleaseEvent(event)

    def keyPressEvent(self, event):
        if event.key() == Qt.Key.Key_Escape and self._controller.is_active:
            self.abort()
            event.accept()
            return
        super().keyPressEvent(event)

    def focusOutEvent(self, event):
        if self._controller.is_active:
            trace("focus lost during rotation, committing", "ROTATE")
            self.finish()
        super().focusOutEvent(event)

    def itemChange(self, change, value):
        if change == QGraphicsItem.GraphicsItemChange.ItemSceneChange and value is None:
            self._controller.release()
        return super().itemChange(change, value)
