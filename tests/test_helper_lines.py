"""Tests for helper-line snapping (alignment/helper_lines.py)."""
from __future__ import annotations

import math

import pytest

from alignment import NO_HELPER_LINES, HelperLines, get_helper_lines
from geometry import rotated_corners
from models import Key


def _key(key_id, x, y, rotation=None, **kwargs):
    return Key(id=key_id, x=x, y=y, rotation=rotation,
               rotation_origin_x=0 if rotation else None,
               rotation_origin_y=0 if rotation else None, **kwargs)


# ─────────────────────────────────────────────────────────
# Axis-aligned snapping
# ─────────────────────────────────────────────────────────


class TestAxisAligned:
    def test_just_under_threshold_snaps(self):
        keys = [_key("a", 500, 500), _key("b", 0, 0, width_u=2)]
        lines = get_helper_lines("a", (4.99, 300), keys)
        assert lines.snap_x == 0
        assert lines.vertical == 0
        assert lines.snap_y is None
        assert lines.horizontal is None

    def test_threshold_is_strict(self):
        keys = [_key("a", 500, 500), _key("b", 0, 0, width_u=2)]
        lines = get_helper_lines("a", (5.0, 300), keys)
        assert lines.snap_x is None
        assert lines == NO_HELPER_LINES

    def test_left_edge_to_right_edge(self):
        keys = [_key("a", 500, 500), _key("b", 0, 0)]
        lines = get_helper_lines("a", (62, 300), keys)
        assert lines.snap_x == 60
        assert lines.vertical == 60

    def test_right_edge_to_left_edge(self):
        keys = [_key("a", 500, 500), _key("b", 200, 0)]
        lines = get_helper_lines("a", (143, 300), keys)
        # Dragged right edge (203) meets other left edge (200)
        assert lines.snap_x == 140
        assert lines.vertical == 200

    def test_top_edge_to_bottom_edge(self):
        keys = [_key("a", 500, 500), _key("b", 0, 0)]
        lines = get_helper_lines("a", (300, 63), keys)
        assert lines.snap_y == 60
        assert lines.horizontal == 60
        assert lines.snap_x is None

    def test_bottom_edges(self):
        keys = [_key("a", 500, 500), _key("b", 0, 0, height_u=2)]
        lines = get_helper_lines("a", (300, 58), keys)
        # Dragged bottom (118) meets other bottom (120)
        assert lines.snap_y == 60
        assert lines.horizontal == 120

    def test_closest_candidate_wins(self):
        keys = [_key("a", 500, 500), _key("b", 0, 0), _key("c", 3, 200)]
        lines = get_helper_lines("a", (4, 400), keys)
        assert lines.snap_x == 3

    def test_both_axes(self):
        keys = [_key("a", 500, 500), _key("b", 0, 0)]
        lines = get_helper_lines("a", (62, 2), keys)
        assert lines.snap_x == 60
        assert lines.snap_y == 0
        assert lines.apply((62, 2)) == (60, 0)

    def test_distance_override(self):
        keys = [_key("a", 500, 500), _key("b", 0, 0)]
        assert get_helper_lines("a", (7, 300), keys).snap_x is None
        assert get_helper_lines("a", (7, 300), keys, distance=10).snap_x == 0

    def test_unknown_key(self):
        keys = [_key("b", 0, 0)]
        assert get_helper_lines("missing", (0, 0), keys) is NO_HELPER_LINES

    def test_alone_on_canvas(self):
        assert get_helper_lines("a", (10, 10), [_key("a", 0, 0)]) == NO_HELPER_LINES

    def test_inputs_not_mutated(self):
        keys = [_key("a", 500, 500), _key("b", 0, 0)]
        get_helper_lines("a", (2, 2), keys)
        assert (keys[0].x, keys[0].y) == (500, 500)
        assert (keys[1].x, keys[1].y) == (0, 0)


# ─────────────────────────────────────────────────────────
# Same-rotation snapping
# ─────────────────────────────────────────────────────────


class TestRotated:
    def test_corner_to_corner(self):
        other = _key("b", 0, 0, rotation=30)
        dragged = _key("a", 500, 500, rotation=30)
        # Put the dragged top-left corner 3px right and 2px below the other's top-right
        step_x = 60 * math.cos(math.radians(30))
        step_y = 60 * math.sin(math.radians(30))
        px, py = step_x + 3, step_y + 2

        lines = get_helper_lines("a", (px, py), [dragged, other])
        assert lines.snap_x == pytest.approx(px - 3)
        assert lines.snap_y == pytest.approx(py - 2)

        snapped = lines.apply((px, py))
        bounds = dragged.bounding_size
        a = rotated_corners(snapped.x + bounds.width / 2, snapped.y + bounds.height / 2, 60, 60, 30)
        c = other.center
        b = rotated_corners(c.x, c.y, 60, 60, 30)
        assert a.top_left.x == pytest.approx(b.top_right.x)
        assert a.top_left.y == pytest.approx(b.top_right.y)

    def test_corner_threshold_is_wider(self):
        other = _key("b", 0, 0, rotation=30)
        dragged = _key("a", 500, 500, rotation=30)
        step_x = 60 * math.cos(math.radians(30))
        step_y = 60 * math.sin(math.radians(30))
        # 8px away: outside the edge threshold, inside the corner threshold
        lines = get_helper_lines("a", (step_x + 8, step_y), [dragged, other])
        assert lines.snap_x == pytest.approx(step_x)

    def test_different_rotation_uses_boxes_only(self):
        other = _key("b", 0, 0, rotation=45)
        dragged = _key("a", 500, 500, rotation=30)
        step_x = 60 * math.cos(math.radians(30))
        step_y = 60 * math.sin(math.radians(30))
        lines = get_helper_lines("a", (step_x + 3, step_y + 2), [dragged, other])
        assert lines.snap_x is None
        assert lines.snap_y is None

    def test_rotated_candidate_returns_plain_floats(self):
        other = _key("b", 0, 0, rotation=30)
        dragged = _key("a", 500, 500, rotation=30)
        lines = get_helper_lines("a", (54, 32), [dragged, other])
        assert type(lines.snap_x) is float
        assert type(lines.vertical) is float


class TestHelperLines:
    def test_apply_without_snap(self):
        assert HelperLines().apply((1.5, 2.5)) == (1.5, 2.5)

    def test_has_snap(self):
        assert not NO_HELPER_LINES.has_snap
        assert HelperLines(snap_y=3).has_snap
