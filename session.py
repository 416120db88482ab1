"""
session.py

EditorSession: the single owner of the key collection.

Every mutation of committed layout state goes through this object so that
undo history, selection, helper lines and autosave stay consistent.
Collaborators (group rotation, persistence, history) only talk to the
layout through ``get_nodes`` / ``set_nodes``.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple, Union

from PyQt6.QtCore import QObject, pyqtSignal

from alignment.helper_lines import NO_HELPER_LINES, HelperLines, get_helper_lines
from canvas.group_rotation import GroupRotationController, rotate_key_in_place, rotate_selection
from debug_trace import trace
from geometry import normalize_angle
from kle import KLEMetadata, export_kle, import_kle_document
from models import UNIT_SIZE, Edge, Key, KeyboardLayout, Viewport, new_key_id
from persistence import SaveCallback, SaveScheduler
from settings import get_settings
from undo_commands import LayoutHistory, Snapshot
from utils import selection_bounds, snap_to_grid

log = logging.getLogger(__name__)

NodesUpdater = Callable[[List[Key]], List[Key]]


def _translated(key: Key, dx: float, dy: float) -> Key:
    """Copy of ``key`` moved by ``(dx, dy)`` pixels, rotation origin included."""
    moved = key.copy()
    moved.x += dx
    moved.y += dy
    if moved.rotation is not None and moved.rotation_origin_x is not None:
        moved.rotation_origin_x += dx / UNIT_SIZE
        moved.rotation_origin_y += dy / UNIT_SIZE
    return moved


def palette_sizes() -> List[Tuple[float, float]]:
    """(width_u, height_u) of every palette key: wide keys, then tall keys."""
    keys_cfg = get_settings().settings.editor.keys
    sizes = [(float(w), 1.0) for w in keys_cfg.horizontal_sizes]
    sizes.extend((1.0, float(h)) for h in keys_cfg.vertical_sizes)
    return sizes


def clamp_rotation(angle: float) -> float:
    """Normalise ``angle`` and clamp it to the configured rotation range."""
    rotation_cfg = get_settings().settings.editor.rotation
    return min(max(normalize_angle(angle), rotation_cfg.min), rotation_cfg.max)


class EditorSession(QObject):
    """Headless editing session for one keyboard layout.

    Signals:
        nodes_changed(): The key collection changed.
        selection_changed(list): Selected key ids, in selection order.
        helper_lines_changed(object): ``HelperLines`` for the current drag frame.

    Args:
        save_callback: Storage backend for autosave; returns an error
            message or None.  Defaults to a no-op.
        parent: Optional QObject parent.
    """

    nodes_changed = pyqtSignal()
    selection_changed = pyqtSignal(list)
    helper_lines_changed = pyqtSignal(object)

    def __init__(self, save_callback: Optional[SaveCallback] = None, parent=None):
        super().__init__(parent)
        self._nodes: List[Key] = []
        self._edges: List[Edge] = []
        self._viewport: Optional[Viewport] = None
        self._metadata: Optional[KLEMetadata] = None
        self._selection: List[str] = []
        self._clipboard: List[Key] = []

        self.history = LayoutHistory(self._capture, self._restore, parent=self)
        self.saver = SaveScheduler(
            lambda: self.to_layout().to_dict(),
            save_callback or (lambda document: None),
            parent=self,
        )
        self.rotation = GroupRotationController(self)

    # ─────────────────────────────────────────────────────────────────────
    # Collection
    # ─────────────────────────────────────────────────────────────────────

    def get_nodes(self) -> List[Key]:
        return list(self._nodes)

    def set_nodes(self, nodes: Union[NodesUpdater, Iterable[Key]]) -> None:
        """Replace the key list, either directly or through ``updater(current)``."""
        if callable(nodes):
            nodes = nodes(list(self._nodes))
        self._nodes = list(nodes)
        self._prune_selection()
        self.nodes_changed.emit()

    def get_edges(self) -> List[Edge]:
        return list(self._edges)

    def set_edges(self, edges: Union[Callable[[List[Edge]], List[Edge]], Iterable[Edge]]) -> None:
        if callable(edges):
            edges = edges(list(self._edges))
        self._edges = list(edges)

    def get_key(self, key_id: str) -> Optional[Key]:
        return next((k for k in self._nodes if k.id == key_id), None)

    @property
    def metadata(self) -> Optional[KLEMetadata]:
        return self._metadata

    def set_viewport(self, x: float, y: float, zoom: float) -> None:
        self._viewport = Viewport(x, y, zoom)

    def to_layout(self) -> KeyboardLayout:
        return KeyboardLayout(
            nodes=[k.copy() for k in self._nodes],
            edges=list(self._edges),
            viewport=self._viewport,
        )

    def load_layout(self, layout: Union[KeyboardLayout, Dict[str, Any]]) -> None:
        """Replace the whole document; history is cleared.

        Raises:
            LayoutError: If a dict document fails schema validation.
        """
        if isinstance(layout, dict):
            layout = KeyboardLayout.from_dict(layout)
        self._edges = list(layout.edges)
        self._viewport = layout.viewport
        self.history.clear()
        self._selection = []
        self.set_nodes(layout.nodes)
        self.selection_changed.emit([])
        trace(f"loaded layout: {len(self._nodes)} keys", "SESSION")

    # ─────────────────────────────────────────────────────────────────────
    # History
    # ─────────────────────────────────────────────────────────────────────

    def _capture(self) -> Snapshot:
        return {
            "nodes": [k.to_dict() for k in self._nodes],
            "edges": [e.to_dict() for e in self._edges],
        }

    def _restore(self, snapshot: Snapshot) -> None:
        self._edges = [Edge.from_dict(e) for e in snapshot.get("edges", [])]
        self.set_nodes(Key.from_dict(n) for n in snapshot.get("nodes", []))
        self.schedule_save()

    def record_history(self, text: str = "Edit layout") -> None:
        self.history.record_history(text)

    def undo(self) -> bool:
        return self.history.undo()

    def redo(self) -> bool:
        return self.history.redo()

    # ─────────────────────────────────────────────────────────────────────
    # Persistence
    # ─────────────────────────────────────────────────────────────────────

    def schedule_save(self) -> None:
        self.saver.schedule_save()

    def save_flow(self) -> bool:
        return self.saver.save_flow()

    # ─────────────────────────────────────────────────────────────────────
    # Selection
    # ─────────────────────────────────────────────────────────────────────

    def _prune_selection(self) -> None:
        ids = {k.id for k in self._nodes}
        pruned = [i for i in self._selection if i in ids]
        if pruned != self._selection:
            self._selection = pruned
            self.selection_changed.emit(list(pruned))

    def select(self, ids: Iterable[str], additive: bool = False) -> None:
        known = {k.id for k in self._nodes}
        selection = list(self._selection) if additive else []
        for i in ids:
            if i in known and i not in selection:
                selection.append(i)
        self._selection = selection
        self.selection_changed.emit(list(selection))

    def select_all(self) -> None:
        self.select([k.id for k in self._nodes])

    def clear_selection(self) -> None:
        self.select([])

    def selected_ids(self) -> List[str]:
        return list(self._selection)

    def selected_keys(self) -> List[Key]:
        """Selected keys, in the order they were selected."""
        by_id = {k.id: k for k in self._nodes}
        return [by_id[i] for i in self._selection if i in by_id]

    # ─────────────────────────────────────────────────────────────────────
    # KLE
    # ─────────────────────────────────────────────────────────────────────

    def import_kle(self, text: str) -> int:
        """Replace the canvas with keys decoded from KLE raw data.

        Returns:
            Number of imported keys; 0 leaves the canvas untouched.

        Raises:
            KLEFormatError: If the text is not valid KLE.
        """
        metadata, keys = import_kle_document(text)
        if not keys:
            log.info("KLE import: nothing to import")
            return 0

        self.record_history("Import KLE")
        self._metadata = metadata
        self._selection = []
        self.set_nodes(keys)
        self.selection_changed.emit([])
        self.schedule_save()
        trace(f"imported {len(keys)} keys", "SESSION")
        return len(keys)

    def export_kle(self) -> str:
        return export_kle(self._nodes, self._metadata)

    # ─────────────────────────────────────────────────────────────────────
    # Palette / clipboard
    # ─────────────────────────────────────────────────────────────────────

    def add_key(self, label: str = "", width_u: Optional[float] = None,
                height_u: Optional[float] = None,
                drop_point: Tuple[float, float] = (0.0, 0.0)) -> Key:
        """Drop a new key centred on ``drop_point``, snapped to the grid.

        Raises:
            ValueError: The size is not one of ``palette_sizes()``.
        """
        keys_cfg = get_settings().settings.editor.keys
        size = (
            width_u if width_u is not None else keys_cfg.default_width_u,
            height_u if height_u is not None else keys_cfg.default_height_u,
        )
        allowed = palette_sizes()
        allowed.append((keys_cfg.default_width_u, keys_cfg.default_height_u))
        if size not in allowed:
            raise ValueError(f"{size[0]}U x {size[1]}U is not a palette key size")
        key = Key(label=label, width_u=size[0], height_u=size[1])
        key.x = snap_to_grid(drop_point[0] - key.actual_width / 2)
        key.y = snap_to_grid(drop_point[1] - key.actual_height / 2)

        self.record_history("Add key")
        self.set_nodes(self._nodes + [key])
        self.schedule_save()
        trace(f"add key {key.id[:8]} at ({key.x}, {key.y})", "SESSION")
        return key

    def copy_selection(self) -> int:
        self._clipboard = [k.copy() for k in self.selected_keys()]
        return len(self._clipboard)

    def paste(self, at: Optional[Tuple[float, float]] = None) -> List[Key]:
        """Paste the clipboard with its centre at ``at`` (grid snapped).

        Without ``at`` the copies land one unit down and right of the
        originals.  The pasted keys become the selection.
        """
        if not self._clipboard:
            return []

        min_x, min_y, max_x, max_y = selection_bounds(self._clipboard)
        if at is None:
            dx = dy = float(UNIT_SIZE)
        else:
            # One shared offset keeps rotation clusters intact
            dx = snap_to_grid(at[0] - (min_x + max_x) / 2)
            dy = snap_to_grid(at[1] - (min_y + max_y) / 2)

        pasted = []
        for k in self._clipboard:
            dup = _translated(k, dx, dy)
            dup.id = new_key_id()
            pasted.append(dup)

        self.record_history("Paste")
        self.set_nodes(self._nodes + pasted)
        self.select([k.id for k in pasted])
        self.schedule_save()
        trace(f"pasted {len(pasted)} keys", "SESSION")
        return pasted

    def duplicate_selection(self, offset: Optional[Tuple[float, float]] = None) -> List[Key]:
        """Copy the selection in place, shifted by ``offset`` pixels."""
        selected = self.selected_keys()
        if not selected:
            return []
        dx, dy = offset if offset is not None else (UNIT_SIZE, UNIT_SIZE)

        dups = [_translated(k, dx, dy) for k in selected]
        for d in dups:
            d.id = new_key_id()

        self.record_history("Duplicate")
        self.set_nodes(self._nodes + dups)
        self.select([d.id for d in dups])
        self.schedule_save()
        return dups

    def delete_selection(self) -> int:
        """Delete selected keys and any edge touching them."""
        doomed = set(self._selection)
        if not doomed:
            return 0
        self.record_history("Delete")
        self._edges = [e for e in self._edges if e.source not in doomed and e.target not in doomed]
        self.set_nodes([k for k in self._nodes if k.id not in doomed])
        self.schedule_save()
        trace(f"deleted {len(doomed)} keys", "SESSION")
        return len(doomed)

    # ─────────────────────────────────────────────────────────────────────
    # Drag
    # ─────────────────────────────────────────────────────────────────────

    def begin_drag(self, key_id: str) -> None:
        self.record_history("Move key")
        trace(f"drag start {key_id[:8]}", "SESSION")

    def drag_key(self, key_id: str, position: Tuple[float, float], fine: bool = False) -> HelperLines:
        """Move a key to a tentative pointer position.

        The position is snapped to the grid first, then to any helper line
        in range.  Guide lines are broadcast through ``helper_lines_changed``.
        """
        key = self.get_key(key_id)
        if key is None:
            return NO_HELPER_LINES

        snapped = (snap_to_grid(position[0], fine), snap_to_grid(position[1], fine))
        lines = get_helper_lines(key_id, snapped, self._nodes)
        target = lines.apply(snapped)

        dx = target.x - key.x
        dy = target.y - key.y
        self.set_nodes(lambda nodes: [_translated(k, dx, dy) if k.id == key_id else k for k in nodes])
        self.helper_lines_changed.emit(lines)
        return lines

    def end_drag(self) -> None:
        self.helper_lines_changed.emit(NO_HELPER_LINES)
        self.schedule_save()

    # ─────────────────────────────────────────────────────────────────────
    # Form edits (apply to the selection)
    # ─────────────────────────────────────────────────────────────────────

    def _update_selected(self, text: str, update: Callable[[Key], Key]) -> int:
        ids = set(self._selection)
        if not ids:
            return 0
        self.record_history(text)
        self.set_nodes(lambda nodes: [update(k) if k.id in ids else k for k in nodes])
        self.schedule_save()
        return len(ids)

    def set_label(self, label: str) -> int:
        """Set the label of selected keys.

        A blank label is stored as "".  KLE keeps legend lines only after a
        label, so blanking the label of a key with a legend is refused.

        Raises:
            ValueError: The label is blank and a selected key has a legend.
        """
        if not label.strip():
            label = ""
            if any(k.legend for k in self.selected_keys()):
                raise ValueError("A key with legend lines needs a label")

        def update(k: Key) -> Key:
            changed = k.copy()
            changed.label = label
            return changed
        return self._update_selected("Edit label", update)

    def set_size(self, width_u: Optional[float] = None, height_u: Optional[float] = None) -> int:
        """Resize selected keys (units).

        Unrotated keys keep their top-left corner; rotated keys keep their centre.
        """
        def update(k: Key) -> Key:
            changed = k.copy()
            center = changed.center
            if width_u is not None:
                changed.width_u = width_u
            if height_u is not None:
                changed.height_u = height_u
            if changed.rotation is not None:
                changed.move_center_to(center.x, center.y)
            return changed
        return self._update_selected("Resize", update)

    def set_rotation(self, angle: float) -> int:
        """Set the rotation of the selection.

        A single key turns in place; several keys turn together about the
        centre of their bounding box.  The angle is clamped to
        ``[editor.rotation] min..max``.
        """
        selected = self.selected_keys()
        if not selected:
            return 0
        angle = clamp_rotation(angle)
        if len(selected) == 1:
            rotated = {selected[0].id: rotate_key_in_place(selected[0], angle)}
        else:
            rotated = {k.id: k for k in rotate_selection(selected, angle)}

        self.record_history("Rotate")
        self.set_nodes(lambda nodes: [rotated.get(k.id, k) for k in nodes])
        self.schedule_save()
        trace(f"rotate {len(rotated)} keys to {angle}", "SESSION")
        return len(rotated)

