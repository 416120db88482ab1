"""
persistence.py

Debounced saving of the layout document.

The storage backend is not part of the engine: the scheduler is given a
``layout_provider`` (returns the document to store) and a
``save_callback`` (stores it, returning an error message or None).
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from PyQt6.QtCore import QObject, QTimer, pyqtSignal

from debug_trace import trace, trace_exception
from settings import get_settings

log = logging.getLogger(__name__)

LayoutProvider = Callable[[], Dict[str, Any]]
SaveCallback = Callable[[Dict[str, Any]], Optional[str]]


class SaveScheduler(QObject):
    """Coalesces bursts of edits into one save.

    Signals:
        saved(bool): Emitted after every save attempt with its outcome.
    """

    saved = pyqtSignal(bool)

    def __init__(self, layout_provider: LayoutProvider, save_callback: SaveCallback,
                 delay_ms: Optional[int] = None, parent=None):
        super().__init__(parent)
        self._layout_provider = layout_provider
        self._save_callback = save_callback
        if delay_ms is None:
            delay_ms = get_settings().settings.persistence.save_debounce_ms

        self._timer = QTimer(self)
        self._timer.setSingleShot(True)
        self._timer.setInterval(delay_ms)
        self._timer.timeout.connect(self.save_flow)

        self.last_error: Optional[str] = None

    def schedule_save(self) -> None:
        """Restart the debounce timer; the save runs once edits stop."""
        self._timer.start()
        trace(f"scheduled in {self._timer.interval()} ms", "SAVE")

    def is_pending(self) -> bool:
        return self._timer.isActive()

    def cancel(self) -> None:
        self._timer.stop()

    def flush(self) -> bool:
        """Run a pending save now.  Returns True when nothing was pending."""
        if not self._timer.isActive():
            return True
        self._timer.stop()
        return self.save_flow()

    def save_flow(self) -> bool:
        """Save immediately.

        Returns:
            True on success.  Failures are logged, reported through
            ``saved`` and not retried.
        """
        self._timer.stop()
        try:
            error = self._save_callback(self._layout_provider())
        except Exception as e:
            trace_exception("save failed")
            error = f"{type(e).__name__}: {e}"

        ok = error is None
        self.last_error = error
        if ok:
            trace("saved", "SAVE")
        else:
            log.warning("Layout save failed: %s", error)
        self.saved.emit(ok)
        return ok


def json_file_backend(path: Path) -> SaveCallback:
    """Save callback writing the layout document as JSON to ``path``."""
    path = Path(path)

    def save(document: Dict[str, Any]) -> Optional[str]:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "w", encoding="utf-8") as f:
                json.dump(document, f, indent=2)
        except OSError as e:
            return str(e)
        return None

    return save


def load_layout_file(path: Path) -> Dict[str, Any]:
    """Read a layout document written by ``json_file_backend``."""
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)
