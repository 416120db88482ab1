"""
geometry.py

Rotation math for rectangular keys.

All functions are pure. A rotation of exactly 0 degrees short-circuits to
the unrotated answer so the common case carries no floating-point noise.
Non-finite input propagates (NaN in, NaN out) instead of raising.
"""

from __future__ import annotations

import math
from typing import NamedTuple


class Point(NamedTuple):
    x: float
    y: float


class Size(NamedTuple):
    width: float
    height: float


class Offset(NamedTuple):
    dx: float
    dy: float


class Corners(NamedTuple):
    top_left: Point
    top_right: Point
    bottom_left: Point
    bottom_right: Point


def normalize_angle(angle_deg: float) -> float:
    """Map any angle into [0, 360)."""
    a = ((angle_deg % 360) + 360) % 360
    # -1e-15 % 360 lands on 360.0 after float rounding
    return 0.0 if a >= 360 else a


def _ceil(value: float) -> float:
    # math.ceil raises on NaN/inf; round first so 60.000000000000007 stays 60
    return math.ceil(round(value, 9)) if math.isfinite(value) else value


def rotated_bounding_box(width: float, height: float, angle_deg: float) -> Size:
    """Axis-aligned box enclosing a ``width`` x ``height`` rectangle rotated by ``angle_deg``.

    Rounded up to whole pixels so the box never clips the rotated rectangle.
    """
    if angle_deg == 0:
        return Size(width, height)

    rad = math.radians(angle_deg)
    cos = abs(math.cos(rad))
    sin = abs(math.sin(rad))

    return Size(
        _ceil(width * cos + height * sin),
        _ceil(width * sin + height * cos),
    )


def rotation_offset(content_width: float, content_height: float,
                    bounding_width: float, bounding_height: float) -> Offset:
    """Offset that centres unrotated content inside its bounding box."""
    return Offset(
        (bounding_width - content_width) / 2,
        (bounding_height - content_height) / 2,
    )


def rotate_point(x: float, y: float, origin_x: float, origin_y: float, angle_deg: float) -> Point:
    """Rotate ``(x, y)`` clockwise (screen coordinates) about an origin."""
    if angle_deg == 0:
        return Point(x, y)

    rad = math.radians(angle_deg)
    cos = math.cos(rad)
    sin = math.sin(rad)

    rel_x = x - origin_x
    rel_y = y - origin_y

    return Point(
        rel_x * cos - rel_y * sin + origin_x,
        rel_x * sin + rel_y * cos + origin_y,
    )


def rotated_corners(center_x: float, center_y: float, width: float, height: float,
                    angle_deg: float) -> Corners:
    """Corners of a rectangle centred on ``(center_x, center_y)`` after rotation."""
    half_w = width / 2
    half_h = height / 2

    if angle_deg == 0:
        return Corners(
            Point(center_x - half_w, center_y - half_h),
            Point(center_x + half_w, center_y - half_h),
            Point(center_x - half_w, center_y + half_h),
            Point(center_x + half_w, center_y + half_h),
        )

    rad = math.radians(angle_deg)
    cos = math.cos(rad)
    sin = math.sin(rad)

    def rotate(px: float, py: float) -> Point:
        return Point(center_x + px * cos - py * sin, center_y + px * sin + py * cos)

    return Corners(
        rotate(-half_w, -half_h),
        rotate(half_w, -half_h),
        rotate(-half_w, half_h),
        rotate(half_w, half_h),
    )


def position_adjustment_for_rotation_change(width: float, height: float,
                                            old_angle: float, new_angle: float) -> Offset:
    """Shift to add to a bounding-box position so the key centre stays put."""
    old_bounds = rotated_bounding_box(width, height, old_angle)
    new_bounds = rotated_bounding_box(width, height, new_angle)

    return Offset(
        (old_bounds.width - new_bounds.width) / 2,
        (old_bounds.height - new_bounds.height) / 2,
    )
