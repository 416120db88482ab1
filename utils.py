"""
utils.py

Utility functions for the KeyCanvas layout engine.
"""

from __future__ import annotations

import math
from typing import Iterable, Optional, Tuple

from PyQt6.QtGui import QColor

from models import UNIT_SIZE, Key
from settings import get_settings


def round_half_up(value: float) -> float:
    """Round to the nearest integer, halves away from -inf (``floor(v + 0.5)``)."""
    return math.floor(value + 0.5)


def round_to(value: float, decimals: int = 4) -> float:
    """Round to a fixed number of decimals, normalising ``-0.0`` to ``0.0``."""
    r = round(value, decimals)
    return r + 0.0


def grid_size(fine: bool = False) -> float:
    """Grid pitch in pixels: ``UNIT_SIZE / snap_divisions`` (or the fine divisions)."""
    grid = get_settings().settings.editor.grid
    divisions = grid.fine_snap_divisions if fine else grid.snap_divisions
    return UNIT_SIZE / max(1, divisions)


def snap_to_grid(value: float, fine: bool = False) -> float:
    """Snap a pixel coordinate to the editor grid."""
    step = grid_size(fine)
    return round_half_up(value / step) * step


def normalize_color(value: Optional[str], default: str) -> str:
    """Return ``value`` as a lowercase ``#rrggbb`` string, or ``default`` if unparseable.

    Accepts anything ``QColor`` understands (``#abc``, ``#aabbcc``, SVG names).
    """
    if not value:
        return default
    color = QColor(value)
    if not color.isValid():
        return default
    return color.name()


def colors_equal(a: str, b: str) -> bool:
    """Case-insensitive colour comparison."""
    return (a or "").lower() == (b or "").lower()


def selection_bounds(keys: Iterable[Key]) -> Optional[Tuple[float, float, float, float]]:
    """Union of the keys' bounding boxes as ``(min_x, min_y, max_x, max_y)``.

    Returns None for an empty selection.
    """
    min_x = min_y = math.inf
    max_x = max_y = -math.inf
    found = False
    for k in keys:
        found = True
        bounds = k.bounding_size
        min_x = min(min_x, k.x)
        min_y = min(min_y, k.y)
        max_x = max(max_x, k.x + bounds.width)
        max_y = max(max_y, k.y + bounds.height)
    if not found:
        return None
    return min_x, min_y, max_x, max_y
