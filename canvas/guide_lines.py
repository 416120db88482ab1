"""
canvas/guide_lines.py

Helper-line guides drawn while a key is dragged.

One vertical and one horizontal line spanning the canvas, drawn with a
cosmetic pen in ``[alignment] guide_color``.  Connect
``EditorSession.helper_lines_changed`` to ``show_lines``.
"""

from __future__ import annotations

from PyQt6.QtCore import Qt
from PyQt6.QtGui import QColor, QPen
from PyQt6.QtWidgets import QGraphicsItemGroup, QGraphicsLineItem

from alignment.helper_lines import NO_HELPER_LINES, HelperLines
from settings import get_settings
from utils import normalize_color

DEFAULT_GUIDE_COLOR = "#0041d0"
GUIDE_EXTENT = 100_000.0   # half-length of a guide, scene pixels
GUIDE_Z = 999              # just below the rotation handle


class GuideLinesItem(QGraphicsItemGroup):
    """The pair of guide lines for the current drag frame."""

    def __init__(self, parent=None):
        super().__init__(parent)
        self._lines = NO_HELPER_LINES

        color = normalize_color(get_settings().settings.alignment.guide_color, DEFAULT_GUIDE_COLOR)
        pen = QPen(QColor(color))
        pen.setCosmetic(True)
        pen.setWidthF(1.0)

        self.vertical_item = QGraphicsLineItem()
        self.horizontal_item = QGraphicsLineItem()
        for item in (self.vertical_item, self.horizontal_item):
            item.setPen(pen)
            item.hide()
            self.addToGroup(item)

        self.setAcceptedMouseButtons(Qt.MouseButton.NoButton)
        self.setZValue(GUIDE_Z)

    @property
    def lines(self) -> HelperLines:
        return self._lines

    @property
    def color(self) -> str:
        return self.vertical_item.pen().color().name()

    def show_lines(self, lines: HelperLines) -> None:
        """Draw ``lines``; an axis without a guide is hidden."""
        self._lines = lines
        if lines.vertical is None:
            self.vertical_item.hide()
        else:
            self.vertical_item.setLine(lines.vertical, -GUIDE_EXTENT, lines.vertical, GUIDE_EXTENT)
            self.vertical_item.show()
        if lines.horizontal is None:
            self.horizontal_item.hide()
        else:
            self.horizontal_item.setLine(-GUIDE_EXTENT, lines.horizontal, GUIDE_EXTENT, lines.horizontal)
            self.horizontal_item.show()

    def clear(self) -> None:
        self.show_lines(NO_HELPER_LINES)
