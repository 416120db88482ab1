"""
canvas package

Group rotation gesture, its PyQt6 graphics handle and the drag guide lines.
"""

from canvas.group_rotation import (
    GroupRotationController,
    RotationState,
    bounding_box_pivot,
    centroid_pivot,
    handle_anchor,
    rotate_key_in_place,
    rotate_selection,
)

__all__ = [
    "GroupRotationController",
    "RotationState",
    "bounding_box_pivot",
    "centroid_pivot",
    "handle_anchor",
    "rotate_key_in_place",
    "rotate_selection",
]
