"""
kle/parser.py

KLE raw data -> Key list.

KLE raw data is a sequence of rows.  Each row is a list of property
patches (objects) and key labels (strings).  Positions are implicit: a
cursor walks the rows, advancing by each key's width and dropping one
unit at the end of every row.  Rotated clusters are laid out in their
own rotated frame around ``(rx, ry)``.

Example:
    [{a:7},"Esc",{x:1},"F1","F2"],
    [{w:1.5},"Tab","Q"]
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

from debug_trace import trace
from geometry import normalize_angle, rotate_point, rotated_bounding_box
from kle.properties import KLEFormatError, KLEMetadata, KLEProperties
from models import DEFAULT_KEY_COLOR, DEFAULT_TEXT_COLOR, UNIT_SIZE, Key
from utils import normalize_color

log = logging.getLogger(__name__)

# ── Regex helpers ──

# Bare identifier keys after ``{`` or ``,``: {x:1} -> {"x":1}
_BARE_KEY_RE = re.compile(r'([{,]\s*)([A-Za-z_][A-Za-z0-9_]*)(\s*:)')
# JSON string literals, so key quoting never touches label text
_STRING_RE = re.compile(r'("(?:[^"\\]|\\.)*")', re.DOTALL)
_TRAILING_COMMA_RE = re.compile(r',\s*$')


@dataclass
class ParserCursor:
    """Running decode state threaded through every row.

    ``x``/``y`` are in units, in the frame of the current rotation.
    ``width``/``height`` apply to the next label only.
    """
    x: float = 0.0
    y: float = 0.0
    rotation: float = 0.0
    rotation_origin_x: float = 0.0
    rotation_origin_y: float = 0.0
    width: float = 1.0
    height: float = 1.0
    color: str = DEFAULT_KEY_COLOR
    text_color: str = DEFAULT_TEXT_COLOR

    def apply(self, props: KLEProperties) -> None:
        """Apply a property patch.

        ``rx``/``ry`` reset both x and y to the origin before the
        cumulative ``x``/``y`` offsets are added.
        """
        if props.r is not None:
            self.rotation = props.r

        if props.rx is not None or props.ry is not None:
            if props.rx is not None:
                self.rotation_origin_x = props.rx
            if props.ry is not None:
                self.rotation_origin_y = props.ry
            self.x = self.rotation_origin_x
            self.y = self.rotation_origin_y

        if props.x is not None:
            self.x += props.x
        if props.y is not None:
            self.y += props.y

        if props.w is not None:
            self.width = props.w
        if props.h is not None:
            self.height = props.h

        if props.c is not None:
            self.color = props.c
        if props.t is not None:
            self.text_color = props.t

    def next_key(self) -> None:
        self.x += self.width
        self.width = 1.0
        self.height = 1.0

    def next_row(self) -> None:
        self.y += 1
        self.x = self.rotation_origin_x if self.rotation != 0 else 0.0


# ----------------------------
# Raw text -> JSON
# ----------------------------

def _quote_bare_keys(text: str) -> str:
    parts = _STRING_RE.split(text)
    # Odd indices are string literals
    for i in range(0, len(parts), 2):
        parts[i] = _BARE_KEY_RE.sub(r'\1"\2"\3', parts[i])
    return "".join(parts)


def parse_kle_raw(raw: str) -> List[Any]:
    """Parse KLE raw text into a list of rows (plus an optional metadata object).

    Accepts the raw-data panel text (rows separated by commas, unquoted
    property keys) as well as a full JSON download.

    Raises:
        KLEFormatError: If the text is not valid KLE.
    """
    cleaned = (raw or "").strip()
    cleaned = _TRAILING_COMMA_RE.sub("", cleaned)

    # Raw data is a comma separated run of rows, not one JSON value
    if not cleaned.startswith("[["):
        cleaned = f"[{cleaned}]"

    cleaned = _quote_bare_keys(cleaned)

    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        log.debug("KLE decode failed: %s", e)
        raise KLEFormatError(detail=str(e)) from e

    if not isinstance(data, list):
        raise KLEFormatError(detail="top level is not an array")

    # A full JSON download ([{meta}, [row], ...]) picked up one extra level
    if len(data) == 1 and isinstance(data[0], list) and any(isinstance(item, list) for item in data[0]):
        data = data[0]

    return data


# ----------------------------
# JSON rows -> keys
# ----------------------------

def _split_label(text: str) -> Tuple[str, List[str]]:
    segments = [s for s in text.split("\n") if s.strip()]
    if not segments:
        return "", []
    return segments[0], segments[1:]


def _key_from_cursor(cursor: ParserCursor, text: str) -> Key:
    """Materialise one key at the cursor."""
    angle = normalize_angle(cursor.rotation)
    actual_w = cursor.width * UNIT_SIZE
    actual_h = cursor.height * UNIT_SIZE

    if angle != 0:
        bounds = rotated_bounding_box(actual_w, actual_h, angle)
        # Key centre in the rotated frame, then into screen space
        local_cx = cursor.x * UNIT_SIZE + actual_w / 2
        local_cy = cursor.y * UNIT_SIZE + actual_h / 2
        center = rotate_point(
            local_cx, local_cy,
            cursor.rotation_origin_x * UNIT_SIZE, cursor.rotation_origin_y * UNIT_SIZE,
            angle,
        )
        x = center.x - bounds.width / 2
        y = center.y - bounds.height / 2
    else:
        x = cursor.x * UNIT_SIZE
        y = cursor.y * UNIT_SIZE

    label, legend = _split_label(text)
    text_color = cursor.text_color.split("\n")[0]

    return Key(
        x=x,
        y=y,
        width_u=cursor.width,
        height_u=cursor.height,
        label=label,
        legend=legend,
        rotation=angle if angle != 0 else None,
        rotation_origin_x=cursor.rotation_origin_x,
        rotation_origin_y=cursor.rotation_origin_y,
        color=normalize_color(cursor.color, DEFAULT_KEY_COLOR),
        text_color=normalize_color(text_color, DEFAULT_TEXT_COLOR),
    )


def parse_kle(rows: List[Any]) -> Tuple[Optional[KLEMetadata], List[Key]]:
    """Walk decoded rows and build keys.

    Returns:
        Tuple of (metadata or None, keys in document order).

    Raises:
        KLEFormatError: On rows or row items of an unexpected type.
    """
    metadata: Optional[KLEMetadata] = None
    keys: List[Key] = []
    cursor = ParserCursor()

    for index, row in enumerate(rows):
        if isinstance(row, dict):
            if index == 0:
                metadata = KLEMetadata.from_dict(row)
            else:
                log.warning("Ignoring keyboard metadata object at row %d", index)
            continue

        if not isinstance(row, list):
            raise KLEFormatError(detail=f"row {index} is not an array")

        for item in row:
            if isinstance(item, str):
                keys.append(_key_from_cursor(cursor, item))
                cursor.next_key()
            elif isinstance(item, dict):
                cursor.apply(KLEProperties.from_dict(item))
            else:
                raise KLEFormatError(detail=f"unexpected item {item!r} in row {index}")

        cursor.next_row()

    return metadata, keys


def import_kle_document(raw: str) -> Tuple[Optional[KLEMetadata], List[Key]]:
    """Decode KLE raw text into metadata and keys."""
    metadata, keys = parse_kle(parse_kle_raw(raw))
    trace(f"import: {len(keys)} keys, metadata={'yes' if metadata else 'no'}", "KLE")
    return metadata, keys


def import_kle(raw: str) -> List[Key]:
    """Decode KLE raw text into keys.

    Raises:
        KLEFormatError: If the text is not valid KLE.
    """
    return import_kle_document(raw)[1]
