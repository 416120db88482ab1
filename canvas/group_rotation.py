"""
canvas/group_rotation.py

Rotation of several keys about a shared pivot.

Two entry points share the same transform:

- The drag handle: ``GroupRotationController`` runs an
  IDLE -> ARMED -> ROTATING -> IDLE gesture.  Keys are rotated about the
  centroid of their centres, in ``step`` degree increments, always from
  the snapshot taken when the gesture was armed.
- The properties form: ``rotate_key_in_place`` (single key, about its own
  centre) and ``rotate_selection`` (about the centre of the selection's
  rotated bounding box).

The pointer angle is measured in screen space against the pivot's screen
position, derived from where the handle was actually drawn, so the angle
stays stable while the keys move under the pointer.
"""

from __future__ import annotations

import math
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum, auto
from typing import TYPE_CHECKING, Dict, Iterator, List, Optional, Sequence, Tuple

from debug_trace import trace
from geometry import Point, rotate_point, rotated_bounding_box, rotated_corners
from models import UNIT_SIZE, Key
from settings import get_settings

if TYPE_CHECKING:
    from session import EditorSession

HANDLE_ANGLE_DEG = -45.0    # up and to the right of the pivot


class RotationState(Enum):
    IDLE = auto()
    ARMED = auto()
    ROTATING = auto()


@dataclass(frozen=True)
class KeySnapshot:
    x: float
    y: float
    rotation: Optional[float]
    rotation_origin_x: Optional[float]
    rotation_origin_y: Optional[float]

    @classmethod
    def of(cls, key: Key) -> "KeySnapshot":
        return cls(key.x, key.y, key.rotation, key.rotation_origin_x, key.rotation_origin_y)

    def restore(self, key: Key) -> Key:
        restored = key.copy()
        restored.x = self.x
        restored.y = self.y
        restored.set_rotation(self.rotation, self.rotation_origin_x, self.rotation_origin_y)
        return restored


# ----------------------------
# Angle helpers
# ----------------------------

def normalize_delta(delta: float) -> float:
    """Map an angle difference into (-180, 180]."""
    d = delta % 360
    if d > 180:
        d -= 360
    return d


def snap_delta(delta: float, step: Optional[float]) -> float:
    """Snap to the nearest multiple of ``step``, halves rounding up.

    The result is re-normalised, so -180 becomes 180.
    """
    if not step:
        return normalize_delta(delta)
    snapped = math.floor(delta / step + 0.5) * step
    return normalize_delta(snapped)


# ----------------------------
# Pivot strategies
# ----------------------------

def centroid_pivot(keys: Sequence[Key]) -> Point:
    """Mean of the key centres.

    Stable under rotation: rotating every centre about the centroid keeps
    the centroid in place.
    """
    centers = [k.center for k in keys]
    n = len(centers)
    return Point(sum(c.x for c in centers) / n, sum(c.y for c in centers) / n)


def bounding_box_pivot(keys: Sequence[Key]) -> Point:
    """Centre of the box enclosing every key's rotated corners."""
    xs: List[float] = []
    ys: List[float] = []
    for k in keys:
        c = k.center
        for corner in rotated_corners(c.x, c.y, k.actual_width, k.actual_height, k.angle):
            xs.append(corner.x)
            ys.append(corner.y)
    return Point((min(xs) + max(xs)) / 2, (min(ys) + max(ys)) / 2)


def handle_anchor(keys: Sequence[Key]) -> Point:
    """Scene position of the rotation handle for a selection.

    Placed at -45 degrees from the centroid, one unit beyond the furthest
    key centre.
    """
    pivot = centroid_pivot(keys)
    reach = max(math.hypot(k.center.x - pivot.x, k.center.y - pivot.y) for k in keys)
    distance = reach + UNIT_SIZE
    rad = math.radians(HANDLE_ANGLE_DEG)
    return Point(pivot.x + distance * math.cos(rad), pivot.y + distance * math.sin(rad))


# ----------------------------
# Transforms
# ----------------------------

def rotate_about(key: Key, snapshot: KeySnapshot, pivot: Point, delta: float) -> Key:
    """Rotate a key's snapshot by ``delta`` degrees about ``pivot``.

    The rotation origin becomes the pivot (units), so a rotated group
    shares one KLE rotation cluster.  A zero delta returns the snapshot.
    """
    if delta == 0:
        return snapshot.restore(key)

    w, h = key.actual_width, key.actual_height
    old_bounds = rotated_bounding_box(w, h, snapshot.rotation or 0)
    cx = snapshot.x + old_bounds.width / 2
    cy = snapshot.y + old_bounds.height / 2

    center = rotate_point(cx, cy, pivot.x, pivot.y, delta)

    rotated = key.copy()
    rotated.set_rotation((snapshot.rotation or 0) + delta, pivot.x / UNIT_SIZE, pivot.y / UNIT_SIZE)
    rotated.move_center_to(center.x, center.y)
    return rotated


def rotate_key_in_place(key: Key, angle: float) -> Key:
    """Set a key's absolute rotation, keeping its centre fixed."""
    center = key.center
    rotated = key.copy()
    rotated.set_rotation(angle, center.x / UNIT_SIZE, center.y / UNIT_SIZE)
    rotated.move_center_to(center.x, center.y)
    return rotated


def rotate_selection(keys: Sequence[Key], angle: float) -> List[Key]:
    """Rotate a selection so the first key ends up at ``angle``.

    Every key turns by the same delta about ``bounding_box_pivot``.
    """
    if not keys:
        return []
    delta = normalize_delta(angle - keys[0].angle)
    pivot = bounding_box_pivot(keys)
    return [rotate_about(k, KeySnapshot.of(k), pivot, delta) for k in keys]


# ----------------------------
# Handle gesture
# ----------------------------

class GroupRotationController:
    """State machine behind the group rotation handle.

    Args:
        session: Editing session; provides ``record_history``,
            ``set_nodes`` and ``schedule_save``.
        step: Snap increment in degrees; defaults to the rotation setting.
    """

    def __init__(self, session: "EditorSession", step: Optional[float] = None):
        self._session = session
        self._step = step if step is not None else get_settings().settings.editor.rotation.step
        self._reset()

    def _reset(self) -> None:
        self.state = RotationState.IDLE
        self._pivot = Point(0.0, 0.0)
        self._pivot_screen = Point(0.0, 0.0)
        self._handle_offset = Point(0.0, 0.0)
        self._start_angle = 0.0
        self._delta = 0.0
        self._rotated = False
        self._snapshots: Dict[str, KeySnapshot] = {}

    # --- Properties ---

    @property
    def is_active(self) -> bool:
        return self.state is not RotationState.IDLE

    @property
    def delta(self) -> float:
        """Current snapped rotation delta in degrees."""
        return self._delta

    @property
    def pivot(self) -> Point:
        return self._pivot

    @property
    def pivot_screen(self) -> Point:
        return self._pivot_screen

    def handle_position(self) -> Point:
        """Scene position of the handle, orbiting the pivot during a gesture."""
        return rotate_point(
            self._pivot.x + self._handle_offset.x,
            self._pivot.y + self._handle_offset.y,
            self._pivot.x, self._pivot.y,
            self._delta,
        )

    # --- Gesture ---

    def _pointer_angle(self, pointer: Tuple[float, float]) -> float:
        return math.degrees(math.atan2(pointer[1] - self._pivot_screen.y,
                                       pointer[0] - self._pivot_screen.x))

    def arm(self, keys: Sequence[Key], pointer: Tuple[float, float],
            handle_screen: Optional[Tuple[float, float]], zoom: float = 1.0) -> bool:
        """Start a gesture.

        Args:
            keys: Selected keys; at least two are required.
            pointer: Pointer position in screen coordinates.
            handle_screen: Measured screen position of the handle centre.
            zoom: View scale factor.

        Returns:
            True if the gesture was armed.
        """
        keys = list(keys)
        if len(keys) < 2 or handle_screen is None:
            return False
        if self.is_active:
            self.cancel()

        self._session.record_history()

        self._pivot = centroid_pivot(keys)
        anchor = handle_anchor(keys)
        self._handle_offset = Point(anchor.x - self._pivot.x, anchor.y - self._pivot.y)
        self._pivot_screen = Point(
            handle_screen[0] - self._handle_offset.x * zoom,
            handle_screen[1] - self._handle_offset.y * zoom,
        )
        self._snapshots = {k.id: KeySnapshot.of(k) for k in keys}
        self._start_angle = self._pointer_angle(pointer)
        self._delta = 0.0
        self._rotated = False
        self.state = RotationState.ARMED

        trace(f"arm: {len(keys)} keys, pivot=({self._pivot.x:.1f}, {self._pivot.y:.1f})", "ROTATE")
        return True

    def move(self, pointer: Tuple[float, float]) -> float:
        """Track the pointer; returns the applied (snapped) delta."""
        if not self.is_active:
            return 0.0
        self.state = RotationState.ROTATING

        raw = normalize_delta(self._pointer_angle(pointer) - self._start_angle)
        delta = snap_delta(raw, self._step)
        if delta == self._delta:
            return delta

        self._delta = delta
        if delta != 0:
            self._rotated = True
        self._apply(delta)
        trace(f"move: delta={delta}", "ROTATE")
        return delta

    def _apply(self, delta: float) -> None:
        snapshots = self._snapshots
        pivot = self._pivot

        def update(nodes: List[Key]) -> List[Key]:
            return [
                rotate_about(k, snapshots[k.id], pivot, delta) if k.id in snapshots else k
                for k in nodes
            ]

        self._session.set_nodes(update)

    def release(self) -> None:
        """Commit the gesture."""
        if not self.is_active:
            return
        rotated = self._rotated
        trace(f"release: delta={self._delta}", "ROTATE")
        self._reset()
        if rotated:
            self._session.schedule_save()

    def cancel(self) -> None:
        """Abort the gesture and restore the armed snapshot."""
        if not self.is_active:
            return
        trace("cancel", "ROTATE")
        if self._delta != 0:
            self._apply(0.0)
        self._reset()

    @contextmanager
    def gesture(self, keys: Sequence[Key], pointer: Tuple[float, float],
                handle_screen: Optional[Tuple[float, float]], zoom: float = 1.0) -> Iterator[bool]:
        """Arm for the duration of a block; released on exit, cancelled on error."""
        armed = self.arm(keys, pointer, handle_screen, zoom)
        try:
            yield armed
        except BaseException:
            self.cancel()
            raise
        finally:
            self.release()
