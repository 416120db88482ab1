"""
alignment/helper_lines.py

Helper-line snapping for a key being dragged.

Given the tentative position of the dragged key, every other key is
checked for edge alignment:

1. Axis-aligned bounding boxes: left/right edges produce a vertical
   guide and an x snap, top/bottom edges a horizontal guide and a y snap.
   The closest candidate under the threshold wins on each axis.
2. Keys sharing the dragged key's (non-zero) rotation: true rotated
   corners are compared pairwise (threshold x corner_multiplier), and the
   midpoints of facing edges are compared (threshold).  A rotated
   candidate overrides the axis-aligned result on its axis.

Comparisons are strict: a gap exactly equal to the threshold does not snap.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Tuple

import numpy as np

from debug_trace import trace
from geometry import Corners, Point, rotated_corners
from models import Key
from settings import get_settings


@dataclass(frozen=True)
class HelperLines:
    """Snap recommendation and guide lines for one drag frame.

    Attributes:
        horizontal: y of the horizontal guide line, or None.
        vertical: x of the vertical guide line, or None.
        snap_x: Snapped bounding-box x, or None to keep the pointer x.
        snap_y: Snapped bounding-box y, or None to keep the pointer y.
    """
    horizontal: Optional[float] = None
    vertical: Optional[float] = None
    snap_x: Optional[float] = None
    snap_y: Optional[float] = None

    @property
    def has_snap(self) -> bool:
        return self.snap_x is not None or self.snap_y is not None

    def apply(self, position: Tuple[float, float]) -> Point:
        """Return ``position`` with any snapped axis replaced."""
        x, y = position
        return Point(
            self.snap_x if self.snap_x is not None else x,
            self.snap_y if self.snap_y is not None else y,
        )


NO_HELPER_LINES = HelperLines()


class _AxisCandidate:
    """Best snap so far on one axis."""

    __slots__ = ("distance", "snap", "guide")

    def __init__(self, distance: float):
        self.distance = distance
        self.snap: Optional[float] = None
        self.guide: Optional[float] = None

    def offer(self, distance: float, snap: float, guide: float) -> None:
        if distance < self.distance:
            self.distance = distance
            self.snap = snap
            self.guide = guide


def _corners_array(corners: Corners) -> np.ndarray:
    return np.array([corners.top_left, corners.top_right,
                     corners.bottom_left, corners.bottom_right], dtype=float)


def _edge_midpoints(c: np.ndarray) -> Tuple[float, float, float, float]:
    """(top y, bottom y, left x, right x) edge midpoints of TL, TR, BL, BR corners."""
    top = float(c[0, 1] + c[1, 1]) / 2
    bottom = float(c[2, 1] + c[3, 1]) / 2
    left = float(c[0, 0] + c[2, 0]) / 2
    right = float(c[1, 0] + c[3, 0]) / 2
    return top, bottom, left, right


def get_helper_lines(key_id: str, position: Tuple[float, float], keys: Iterable[Key],
                     distance: Optional[float] = None) -> HelperLines:
    """Compute guide lines and snap position for a dragged key.

    Args:
        key_id: Id of the key being dragged.
        position: Tentative bounding-box top-left of the dragged key (pixels).
        keys: All keys on the canvas, including the dragged one.
        distance: Snap threshold in pixels; defaults to the alignment setting.

    Returns:
        HelperLines; all fields None when nothing is in range.
    """
    align = get_settings().settings.alignment
    if distance is None:
        distance = align.snap_distance
    corner_distance = distance * align.corner_multiplier

    keys = list(keys)
    dragged = next((k for k in keys if k.id == key_id), None)
    if dragged is None or position is None:
        return NO_HELPER_LINES

    px, py = position
    bounds = dragged.bounding_size
    a_left, a_top = px, py
    a_right, a_bottom = px + bounds.width, py + bounds.height

    x_axis = _AxisCandidate(distance)
    y_axis = _AxisCandidate(distance)
    # Rotated candidates accept anything under the corner threshold and
    # override the axis-aligned result on their axis
    x_rot = _AxisCandidate(max(distance, corner_distance))
    y_rot = _AxisCandidate(max(distance, corner_distance))

    corners_a: Optional[np.ndarray] = None
    if dragged.rotation is not None:
        corners_a = _corners_array(rotated_corners(
            px + bounds.width / 2, py + bounds.height / 2,
            dragged.actual_width, dragged.actual_height, dragged.rotation,
        ))

    for other in keys:
        if other.id == key_id:
            continue
        ob = other.bounding_size
        b_left, b_top = other.x, other.y
        b_right, b_bottom = other.x + ob.width, other.y + ob.height

        # Vertical guides (x axis)
        x_axis.offer(abs(a_left - b_left), b_left, b_left)
        x_axis.offer(abs(a_right - b_right), b_right - bounds.width, b_right)
        x_axis.offer(abs(a_left - b_right), b_right, b_right)
        x_axis.offer(abs(a_right - b_left), b_left - bounds.width, b_left)

        # Horizontal guides (y axis)
        y_axis.offer(abs(a_top - b_top), b_top, b_top)
        y_axis.offer(abs(a_bottom - b_top), b_top - bounds.height, b_top)
        y_axis.offer(abs(a_bottom - b_bottom), b_bottom - bounds.height, b_bottom)
        y_axis.offer(abs(a_top - b_bottom), b_bottom, b_bottom)

        if corners_a is None or other.rotation != dragged.rotation:
            continue

        center_b = other.center
        corners_b = _corners_array(rotated_corners(
            center_b.x, center_b.y, other.actual_width, other.actual_height, other.rotation,
        ))

        # 4x4 corner pairs
        offsets = corners_b[np.newaxis, :, :] - corners_a[:, np.newaxis, :]
        dists = np.hypot(offsets[..., 0], offsets[..., 1])
        for i, j in zip(*np.nonzero(dists < corner_distance)):
            dx, dy = float(offsets[i, j, 0]), float(offsets[i, j, 1])
            x_rot.offer(abs(dx), px + dx, float(corners_b[j, 0]))
            y_rot.offer(abs(dy), py + dy, float(corners_b[j, 1]))

        # Facing edge midpoints
        a_top_mid, a_bottom_mid, a_left_mid, a_right_mid = _edge_midpoints(corners_a)
        b_top_mid, b_bottom_mid, b_left_mid, b_right_mid = _edge_midpoints(corners_b)
        for a_mid, b_mid in ((a_top_mid, b_bottom_mid), (a_bottom_mid, b_top_mid)):
            d = b_mid - a_mid
            if abs(d) < distance:
                y_rot.offer(abs(d), py + d, b_mid)
        for a_mid, b_mid in ((a_left_mid, b_right_mid), (a_right_mid, b_left_mid)):
            d = b_mid - a_mid
            if abs(d) < distance:
                x_rot.offer(abs(d), px + d, b_mid)

    x_best = x_rot if x_rot.snap is not None else x_axis
    y_best = y_rot if y_rot.snap is not None else y_axis

    result = HelperLines(
        horizontal=y_best.guide,
        vertical=x_best.guide,
        snap_x=x_best.snap,
        snap_y=y_best.snap,
    )
    if result.has_snap:
        trace(f"snap {key_id[:8]}: x={result.snap_x} y={result.snap_y}", "ALIGN")
    return result

