"""
models.py

Data models and constants for the KeyCanvas layout engine.
"""

from __future__ import annotations

import copy
import uuid
from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Optional

from geometry import Point, Size, normalize_angle, rotated_bounding_box


# ----------------------------
# Constants
# ----------------------------

UNIT_SIZE = 60                 # pixels per layout unit (1U)
DEFAULT_KEY_COLOR = "#cccccc"
DEFAULT_TEXT_COLOR = "#000000"
KEY_NODE_TYPE = "keyboardKey"


class LayoutError(ValueError):
    """Raised when a stored layout document fails validation."""

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        super().__init__(message)
        self.errors = errors or []


def new_key_id() -> str:
    """Generate a fresh opaque key id."""
    return str(uuid.uuid4())


# ----------------------------
# Key model
# ----------------------------

# Stored ``data`` field name -> Key attribute
_DATA_FIELDS = {
    "label": "label",
    "widthU": "width_u",
    "heightU": "height_u",
    "rotation": "rotation",
    "rotationOriginX": "rotation_origin_x",
    "rotationOriginY": "rotation_origin_y",
    "legend": "legend",
    "color": "color",
    "textColor": "text_color",
}

_NODE_FIELDS = {"id", "type", "position", "width", "height", "data"}


@dataclass
class Key:
    """A single rectangular key on the canvas.

    ``x``/``y`` are the top-left corner of the key's axis-aligned bounding
    box in canvas pixels.  For a rotated key the bounding box is larger
    than the key itself and the key sits centred inside it.

    A rotation is stored in [0, 360).  Zero is never stored: it is kept as
    ``None`` and the rotation origin is dropped with it.
    """
    id: str = field(default_factory=new_key_id)
    x: float = 0.0
    y: float = 0.0
    width_u: float = 1.0
    height_u: float = 1.0
    label: str = ""
    legend: List[str] = field(default_factory=list)
    rotation: Optional[float] = None
    rotation_origin_x: Optional[float] = None    # layout units
    rotation_origin_y: Optional[float] = None    # layout units
    color: str = DEFAULT_KEY_COLOR
    text_color: str = DEFAULT_TEXT_COLOR
    # Unknown ``data`` keys (e.g. row/column) preserved through round-trips
    extras: Dict[str, Any] = field(default_factory=dict, repr=False)
    # Unknown node-level keys (e.g. selected, dragging)
    node_extras: Dict[str, Any] = field(default_factory=dict, repr=False)

    def __post_init__(self):
        # Stored and exported lowercase, matching what the KLE decoder returns
        self.color = self.color.lower()
        self.text_color = self.text_color.lower()
        self.set_rotation(self.rotation, self.rotation_origin_x, self.rotation_origin_y)

    # --- Derived geometry ---

    @property
    def angle(self) -> float:
        """Rotation in degrees, 0 when unrotated."""
        return self.rotation or 0.0

    @property
    def actual_width(self) -> float:
        return self.width_u * UNIT_SIZE

    @property
    def actual_height(self) -> float:
        return self.height_u * UNIT_SIZE

    @property
    def bounding_size(self) -> Size:
        return rotated_bounding_box(self.actual_width, self.actual_height, self.angle)

    @property
    def bounding_width(self) -> float:
        return self.bounding_size.width

    @property
    def bounding_height(self) -> float:
        return self.bounding_size.height

    @property
    def center(self) -> Point:
        bounds = self.bounding_size
        return Point(self.x + bounds.width / 2, self.y + bounds.height / 2)

    # --- Mutation helpers ---

    def set_rotation(self, angle: Optional[float],
                     origin_x: Optional[float] = None,
                     origin_y: Optional[float] = None) -> None:
        """Store a rotation, clearing it (and the origin) when it normalises to 0."""
        if angle is None:
            self.rotation = None
        else:
            angle = normalize_angle(angle)
            self.rotation = angle if angle != 0 else None
        if self.rotation is None:
            self.rotation_origin_x = None
            self.rotation_origin_y = None
        else:
            self.rotation_origin_x = origin_x
            self.rotation_origin_y = origin_y

    def move_center_to(self, cx: float, cy: float) -> None:
        """Place the bounding box so the key is centred on ``(cx, cy)``."""
        bounds = self.bounding_size
        self.x = cx - bounds.width / 2
        self.y = cy - bounds.height / 2

    def copy(self, new_id: bool = False) -> "Key":
        """Deep copy, optionally with a freshly generated id."""
        dup = copy.deepcopy(self)
        if new_id:
            dup.id = new_key_id()
        return dup

    # --- Storage ---

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Key":
        """Create a Key from a stored node record, preserving unknown keys.

        Args:
            d: Node dict with ``id``, ``position`` and ``data``.

        Returns:
            A ``Key`` instance.
        """
        data = d.get("data") or {}
        position = d.get("position") or {}

        known: Dict[str, Any] = {}
        extras: Dict[str, Any] = {}
        for k, v in data.items():
            if k in _DATA_FIELDS:
                known[_DATA_FIELDS[k]] = v
            else:
                extras[k] = v

        node_extras = {k: v for k, v in d.items() if k not in _NODE_FIELDS}

        if known.get("legend") is None:
            known.pop("legend", None)
        for name in ("color", "text_color"):
            if known.get(name) is None:
                known.pop(name, None)

        return cls(
            id=d.get("id") or new_key_id(),
            x=float(position.get("x", 0.0)),
            y=float(position.get("y", 0.0)),
            extras=extras,
            node_extras=node_extras,
            **known,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a stored node record.

        Optional data fields are omitted when absent or equal to the default.
        """
        data: Dict[str, Any] = {
            "label": self.label,
            "widthU": self.width_u,
            "heightU": self.height_u,
        }
        if self.rotation is not None:
            data["rotation"] = self.rotation
            if self.rotation_origin_x is not None:
                data["rotationOriginX"] = self.rotation_origin_x
            if self.rotation_origin_y is not None:
                data["rotationOriginY"] = self.rotation_origin_y
        if self.legend:
            data["legend"] = list(self.legend)
        if self.color.lower() != DEFAULT_KEY_COLOR:
            data["color"] = self.color
        if self.text_color.lower() != DEFAULT_TEXT_COLOR:
            data["textColor"] = self.text_color
        data.update(self.extras)

        bounds = self.bounding_size
        d: Dict[str, Any] = {
            "id": self.id,
            "type": KEY_NODE_TYPE,
            "position": {"x": self.x, "y": self.y},
            "width": bounds.width,
            "height": bounds.height,
            "data": data,
        }
        d.update(self.node_extras)
        return d


# ----------------------------
# Layout document
# ----------------------------

@dataclass
class Edge:
    """Opaque connection record; passed through untouched."""
    id: str
    source: str
    target: str
    extras: Dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Edge":
        known_names = {f.name for f in fields(cls) if f.name != "extras"}
        known = {k: v for k, v in d.items() if k in known_names}
        extras = {k: v for k, v in d.items() if k not in known_names}
        return cls(**known, extras=extras)

    def to_dict(self) -> Dict[str, Any]:
        d = {"id": self.id, "source": self.source, "target": self.target}
        d.update(self.extras)
        return d


@dataclass
class Viewport:
    x: float = 0.0
    y: float = 0.0
    zoom: float = 1.0

    def to_dict(self) -> Dict[str, Any]:
        return {"x": self.x, "y": self.y, "zoom": self.zoom}


@dataclass
class KeyboardLayout:
    """The persisted layout document: keys, edges and the last viewport."""
    nodes: List[Key] = field(default_factory=list)
    edges: List[Edge] = field(default_factory=list)
    viewport: Optional[Viewport] = None

    @classmethod
    def from_dict(cls, d: Dict[str, Any], validate: bool = True) -> "KeyboardLayout":
        """Build a layout from a stored document.

        Raises:
            LayoutError: If ``validate`` is set and the document does not
                match the layout schema.
        """
        if validate:
            from schemas import validate_layout

            ok, errors = validate_layout(d)
            if not ok:
                raise LayoutError(f"Invalid layout document: {errors[0]}", errors)

        viewport = None
        if d.get("viewport"):
            vp = d["viewport"]
            viewport = Viewport(x=vp.get("x", 0.0), y=vp.get("y", 0.0), zoom=vp.get("zoom", 1.0))

        return cls(
            nodes=[Key.from_dict(n) for n in d.get("nodes", [])],
            edges=[Edge.from_dict(e) for e in d.get("edges", [])],
            viewport=viewport,
        )

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "nodes": [k.to_dict() for k in self.nodes],
            "edges": [e.to_dict() for e in self.edges],
        }
        if self.viewport is not None:
            d["viewport"] = self.viewport.to_dict()
        return d
