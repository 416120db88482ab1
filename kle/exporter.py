"""
kle/exporter.py

Key list -> KLE raw data.

The writer mirrors the parser's cursor: it walks the keys in row order,
keeps the position the parser *would* be at, and only emits the
properties needed to move the parser onto each key.  Decoding the output
yields the same keys (positions within 1e-3 units).

KLE position rules mirrored here:
    - after each key: x += w
    - at the end of a row: y += 1, x resets to rx (0 when unrotated)
    - rx/ry reset both x and y to the rotation origin
    - x/y are offsets from the expected position
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from debug_trace import trace
from geometry import rotate_point
from kle.properties import KLEMetadata
from models import DEFAULT_KEY_COLOR, DEFAULT_TEXT_COLOR, UNIT_SIZE, Key
from utils import colors_equal, round_to

KLEItem = Union[Dict[str, Any], str]
KLERow = List[KLEItem]

ROW_TOLERANCE = 0.4         # units; keys closer than this in y share a row
POSITION_EPSILON = 0.001    # units; smaller offsets are not written
KLE_DECIMALS = 4
CENTER_LABEL_SLOT = 4       # 3x4 legend grid, centre-centre

_IDENTIFIER_RE = re.compile(r'^[A-Za-z_][A-Za-z0-9_]*$')


@dataclass
class WriterCursor:
    """Where the parser will be when it reads the next item."""
    x: float = 0.0
    y: float = 0.0
    r: float = 0.0
    rx: float = 0.0
    ry: float = 0.0
    a: Optional[int] = None
    c: str = DEFAULT_KEY_COLOR
    t: str = DEFAULT_TEXT_COLOR

    def next_row(self) -> None:
        self.y += 1
        self.x = self.rx if self.r != 0 else 0.0


@dataclass
class _Placed:
    """A key with its position in the frame of its rotation cluster (units)."""
    key: Key
    x: float
    y: float
    cluster: Tuple[float, float, float]


def _place(key: Key) -> _Placed:
    if key.rotation is None:
        return _Placed(
            key,
            round_to(key.x / UNIT_SIZE, KLE_DECIMALS),
            round_to(key.y / UNIT_SIZE, KLE_DECIMALS),
            (0.0, 0.0, 0.0),
        )

    center = key.center
    rx = key.rotation_origin_x
    ry = key.rotation_origin_y
    if rx is None or ry is None:
        rx = center.x / UNIT_SIZE
        ry = center.y / UNIT_SIZE
    rx = round_to(rx, KLE_DECIMALS)
    ry = round_to(ry, KLE_DECIMALS)

    # Undo the rotation to get the key centre in the cluster frame
    local = rotate_point(center.x, center.y, rx * UNIT_SIZE, ry * UNIT_SIZE, -key.rotation)
    local_x = (local.x - key.actual_width / 2) / UNIT_SIZE
    local_y = (local.y - key.actual_height / 2) / UNIT_SIZE

    return _Placed(
        key,
        round_to(local_x, KLE_DECIMALS),
        round_to(local_y, KLE_DECIMALS),
        (key.rotation, rx, ry),
    )


def _group_rows(placed: List[_Placed]) -> List[List[_Placed]]:
    """Bucket keys of one cluster into rows, top to bottom, left to right."""
    rows: List[List[_Placed]] = []
    row_y = 0.0
    for p in sorted(placed, key=lambda p: (p.y, p.x)):
        if rows and abs(p.y - row_y) < ROW_TOLERANCE:
            rows[-1].append(p)
        else:
            rows.append([p])
            row_y = p.y
    for row in rows:
        row.sort(key=lambda p: p.x)
    return rows


def _clusters(keys: Iterable[Key]) -> List[List[_Placed]]:
    """Unrotated keys first, then one group per rotation cluster."""
    groups: Dict[Tuple[float, float, float], List[_Placed]] = {}
    for key in keys:
        p = _place(key)
        groups.setdefault(p.cluster, []).append(p)
    return [groups[c] for c in sorted(groups)]


def _format_label(key: Key) -> str:
    return "\n" * CENTER_LABEL_SLOT + key.label + "".join("\n" + line for line in key.legend)


def export_to_kle(keys: Iterable[Key]) -> List[KLERow]:
    """Convert keys to KLE rows of property dicts and label strings."""
    rows: List[KLERow] = []
    cursor = WriterCursor()
    first_key = True

    for group in _clusters(keys):
        cluster_start = True
        for row_keys in _group_rows(group):
            row: KLERow = []
            for p in row_keys:
                key = p.key
                props: Dict[str, Any] = {}

                if first_key:
                    props["a"] = 7
                    cursor.a = 7

                if cluster_start:
                    r, rx, ry = p.cluster
                    if r != 0 or cursor.r != 0:
                        props["r"] = r
                        props["rx"] = rx
                        props["ry"] = ry
                        cursor.r, cursor.rx, cursor.ry = r, rx, ry
                        cursor.x, cursor.y = rx, ry
                    cluster_start = False

                dy = round_to(p.y - cursor.y, KLE_DECIMALS)
                if abs(dy) > POSITION_EPSILON:
                    props["y"] = dy
                    cursor.y += dy

                dx = round_to(p.x - cursor.x, KLE_DECIMALS)
                if abs(dx) > POSITION_EPSILON:
                    props["x"] = dx
                    cursor.x += dx

                if abs(key.width_u - 1) > POSITION_EPSILON:
                    props["w"] = key.width_u
                if abs(key.height_u - 1) > POSITION_EPSILON:
                    props["h"] = key.height_u

                if not colors_equal(key.color, cursor.c):
                    props["c"] = key.color
                    cursor.c = key.color
                if not colors_equal(key.text_color, cursor.t):
                    props["t"] = key.text_color
                    cursor.t = key.text_color

                if props:
                    row.append(props)
                row.append(_format_label(key))

                cursor.x += key.width_u
                first_key = False

            rows.append(row)
            cursor.next_row()

    return rows


# ----------------------------
# Serialisation
# ----------------------------

def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        if float(value).is_integer():
            return str(int(value))
        return repr(float(value))
    if isinstance(value, dict):
        return _format_object(value)
    if isinstance(value, list):
        return "[" + ",".join(_format_value(v) for v in value) + "]"
    return json.dumps(value, ensure_ascii=False)


def _format_object(obj: Dict[str, Any]) -> str:
    parts = []
    for k, v in obj.items():
        name = k if _IDENTIFIER_RE.match(k) else json.dumps(k, ensure_ascii=False)
        parts.append(f"{name}:{_format_value(v)}")
    return "{" + ",".join(parts) + "}"


def serialize_kle(rows: List[KLERow], metadata: Optional[KLEMetadata] = None) -> str:
    """Render rows in KLE raw-data style: one row per line, unquoted keys."""
    lines = []
    if metadata is not None:
        meta = metadata.to_dict()
        if meta:
            lines.append(_format_object(meta))
    for row in rows:
        lines.append("[" + ",".join(_format_value(item) for item in row) + "]")
    return ",\n".join(lines)


def export_kle(keys: Iterable[Key], metadata: Optional[KLEMetadata] = None) -> str:
    """Encode keys as KLE raw data text."""
    keys = list(keys)
    rows = export_to_kle(keys)
    trace(f"export: {len(keys)} keys in {len(rows)} rows", "KLE")
    return serialize_kle(rows, metadata)
