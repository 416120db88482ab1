"""
debug_trace.py

Debug instrumentation for the layout engine.
Enabled through ``[debug] trace_enabled`` in settings.toml, or at runtime
with ``configure_trace(True)``.

Categories used across the code base:
    KLE      import/export of KLE raw data
    ALIGN    helper-line snapping (per drag frame, verbose only)
    ROTATE   group rotation gestures
    SESSION  editing session mutations
    SAVE     debounced persistence
    HISTORY  undo/redo snapshots
"""

import sys
import traceback
from datetime import datetime
from functools import wraps
from pathlib import Path
from typing import Optional

from settings import get_settings

# Categories emitted on every pointer move; only traced in verbose mode
VERBOSE_CATEGORIES = frozenset({"ALIGN"})

_enabled: Optional[bool] = None
_verbose: Optional[bool] = None
_log_path: Optional[Path] = None
_log_file = None


def configure_trace(enabled: bool, verbose: bool = False, log_path: Optional[Path] = None):
    """Override the settings-derived trace configuration."""
    global _enabled, _verbose, _log_path
    close_log()
    _enabled = enabled
    _verbose = verbose
    _log_path = log_path


def _load_config():
    global _enabled, _verbose
    if _enabled is None:
        debug = get_settings().settings.debug
        _enabled = debug.trace_enabled
        _verbose = debug.trace_verbose


def _get_log_file():
    global _log_file
    if _log_file is None:
        path = _log_path or get_settings().get_log_path()
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            _log_file = open(path, "a", encoding="utf-8")
        except OSError as e:
            print(f"[trace] cannot open {path}: {e}", file=sys.stderr)
            _log_file = False
    return _log_file or None


def is_enabled(category: str = "INFO") -> bool:
    """Check whether a trace line in *category* would be emitted."""
    _load_config()
    if not _enabled:
        return False
    if category in VERBOSE_CATEGORIES and not _verbose:
        return False
    return True


def trace(msg: str, category: str = "INFO"):
    """Print a trace message with timestamp."""
    if not is_enabled(category):
        return

    timestamp = datetime.now().strftime("%H:%M:%S.%f")[:-3]
    line = f"[{timestamp}] [{category}] {msg}"

    print(line, file=sys.stderr, flush=True)

    log_file = _get_log_file()
    if log_file:
        log_file.write(line + "\n")
        log_file.flush()


def trace_exception(msg: str = "Exception"):
    """Print exception info."""
    if not is_enabled("ERROR"):
        return
    trace(f"{msg}: {traceback.format_exc()}", "ERROR")


def trace_call(category: str = "CALL"):
    """Decorator to trace function calls."""
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            if not is_enabled(category):
                return func(*args, **kwargs)
            func_name = func.__qualname__
            trace(f">>> {func_name}", category)
            try:
                result = func(*args, **kwargs)
                trace(f"<<< {func_name}", category)
                return result
            except Exception as e:
                trace(f"!!! {func_name} raised {type(e).__name__}: {e}", "ERROR")
                raise
        return wrapper
    return decorator


def close_log():
    """Close log file."""
    global _log_file
    if _log_file:
        _log_file.close()
    _log_file = None
