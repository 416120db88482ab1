"""
kle/properties.py

Typed views of the loosely typed objects found in KLE raw data: the
per-key property patch and the keyboard metadata header.

Reference: https://github.com/ijprest/keyboard-layout-editor/wiki/Serialized-Data-Format
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Optional

KLE_FORMAT_ERROR_MESSAGE = "Invalid KLE format. Please check your input."


class KLEFormatError(ValueError):
    """Raised when KLE raw data cannot be decoded."""

    def __init__(self, message: str = KLE_FORMAT_ERROR_MESSAGE, detail: str = ""):
        super().__init__(message)
        self.detail = detail


_NUMBER_FIELDS = {"x", "y", "w", "h", "x2", "y2", "w2", "h2", "r", "rx", "ry", "a", "f", "f2"}
_STRING_FIELDS = {"p", "c", "t", "sm", "sb", "st"}
_BOOL_FIELDS = {"g", "d", "n", "l"}


def _is_number(v: Any) -> bool:
    return isinstance(v, (int, float)) and not isinstance(v, bool)


@dataclass
class KLEProperties:
    """A KLE property patch (``{x:1, w:1.5, ...}``).

    All fields are optional; ``None`` means "not present in the patch".
    Keys this model does not know are kept in ``extras``.
    """
    # Position offsets, cumulative
    x: Optional[float] = None
    y: Optional[float] = None
    # Size of the next key only
    w: Optional[float] = None
    h: Optional[float] = None
    # Secondary rectangle (stepped / ISO keys)
    x2: Optional[float] = None
    y2: Optional[float] = None
    w2: Optional[float] = None
    h2: Optional[float] = None
    # Rotation angle and origin (units)
    r: Optional[float] = None
    rx: Optional[float] = None
    ry: Optional[float] = None
    # Legend alignment and font sizes
    a: Optional[int] = None
    f: Optional[float] = None
    f2: Optional[float] = None
    fa: Optional[List[float]] = None
    # Profile, key colour, legend colour
    p: Optional[str] = None
    c: Optional[str] = None
    t: Optional[str] = None
    # Ghost, decal, homing nub, stepped
    g: Optional[bool] = None
    d: Optional[bool] = None
    n: Optional[bool] = None
    l: Optional[bool] = None  # noqa: E741
    # Switch mount/brand/type
    sm: Optional[str] = None
    sb: Optional[str] = None
    st: Optional[str] = None
    extras: Dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "KLEProperties":
        """Build a patch from a decoded JSON object.

        Raises:
            KLEFormatError: If a known property has the wrong JSON type.
        """
        known: Dict[str, Any] = {}
        extras: Dict[str, Any] = {}
        for k, v in d.items():
            if k in _NUMBER_FIELDS:
                if not _is_number(v):
                    raise KLEFormatError(detail=f"property {k!r} must be a number, got {v!r}")
            elif k in _STRING_FIELDS:
                if not isinstance(v, str):
                    raise KLEFormatError(detail=f"property {k!r} must be a string, got {v!r}")
            elif k in _BOOL_FIELDS:
                v = bool(v)
            elif k == "fa":
                if not isinstance(v, list):
                    raise KLEFormatError(detail=f"property 'fa' must be a list, got {v!r}")
            else:
                extras[k] = v
                continue
            known[k] = v
        return cls(**known, extras=extras)

    def to_dict(self) -> Dict[str, Any]:
        """Present properties only, in declaration order, then extras."""
        d = {f.name: getattr(self, f.name) for f in fields(self)
             if f.name != "extras" and getattr(self, f.name) is not None}
        d.update(self.extras)
        return d


@dataclass
class KLEBackground:
    name: str = ""
    style: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in (("name", self.name), ("style", self.style)) if v}


@dataclass
class KLEMetadata:
    """Keyboard-level header object, the optional first element of a layout."""
    name: str = ""
    author: str = ""
    notes: str = ""
    background: Optional[KLEBackground] = None
    radii: str = ""
    backcolor: str = ""
    switchMount: str = ""  # noqa: N815
    switchBrand: str = ""  # noqa: N815
    switchType: str = ""  # noqa: N815
    extras: Dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "KLEMetadata":
        known_names = {f.name for f in fields(cls) if f.name != "extras"}
        known: Dict[str, Any] = {}
        extras: Dict[str, Any] = {}
        for k, v in d.items():
            if k == "background" and isinstance(v, dict):
                known[k] = KLEBackground(name=str(v.get("name", "")), style=str(v.get("style", "")))
            elif k in known_names and k != "background" and isinstance(v, str):
                known[k] = v
            else:
                extras[k] = v
        return cls(**known, extras=extras)

    def to_dict(self) -> Dict[str, Any]:
        """Non-empty fields only, then extras."""
        d: Dict[str, Any] = {}
        for f in fields(self):
            if f.name == "extras":
                continue
            value = getattr(self, f.name)
            if isinstance(value, KLEBackground):
                value = value.to_dict()
            if value:
                d[f.name] = value
        d.update(self.extras)
        return d
