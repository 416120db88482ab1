"""
settings.py

Persistent settings management for KeyCanvas.

Handles cross-platform settings storage using TOML format with platformdirs
for proper user config directory detection.

Settings file location:
    - Windows: %APPDATA%/keycanvas/settings.toml
    - macOS: ~/Library/Application Support/keycanvas/settings.toml
    - Linux: ~/.config/keycanvas/settings.toml

Default values are documented in comments throughout this file.
If settings.toml is corrupted, these defaults will be used.
"""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import platformdirs

# TOML reading - use tomllib for Python 3.11+, tomli for earlier versions
if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

import tomli_w

APP_NAME = "keycanvas"

log = logging.getLogger(__name__)

# Global settings manager instance (singleton)
_settings_manager: Optional["SettingsManager"] = None


def get_settings() -> "SettingsManager":
    """Get the global settings manager instance.

    Returns:
        The singleton SettingsManager instance.
    """
    global _settings_manager
    if _settings_manager is None:
        _settings_manager = SettingsManager()
    return _settings_manager


def reset_settings(manager: Optional["SettingsManager"] = None) -> None:
    """Replace the global settings manager.

    Passing ``None`` drops the current instance so the next
    ``get_settings()`` call reloads from disk.
    """
    global _settings_manager
    _settings_manager = manager


# =============================================================================
# Editor Settings
# =============================================================================

@dataclass
class EditorGridSettings:
    """Grid snapping settings.

    Defaults:
        snap_divisions: 4
        fine_snap_divisions: 16
    """
    snap_divisions: int = 4         # Default: 4 divisions per unit (15px)
    fine_snap_divisions: int = 16   # Default: 16 divisions per unit (3.75px, Alt held)


@dataclass
class EditorKeySettings:
    """Palette key sizes.

    Defaults:
        horizontal_sizes: [1, 1.25, 1.5, 1.75, 2, 2.25, 2.75, 3, 6, 6.5]
        vertical_sizes: [1.25, 1.5, 1.75, 2]
        default_width_u: 1.0
        default_height_u: 1.0
    """
    horizontal_sizes: List[float] = field(
        default_factory=lambda: [1, 1.25, 1.5, 1.75, 2, 2.25, 2.75, 3, 6, 6.5]
    )
    vertical_sizes: List[float] = field(default_factory=lambda: [1.25, 1.5, 1.75, 2])
    default_width_u: float = 1.0    # Default: 1U
    default_height_u: float = 1.0   # Default: 1U


@dataclass
class EditorRotationSettings:
    """Rotation settings.

    Defaults:
        step: 15.0
        min: 0.0
        max: 345.0
        handle_size: 12.0
    """
    step: float = 15.0          # Default: 15 degrees
    min: float = 0.0            # Default: 0 degrees
    max: float = 345.0          # Default: 345 degrees
    handle_size: float = 12.0   # Default: 12 pixels (screen space)


@dataclass
class EditorHistorySettings:
    """Undo/redo settings.

    Defaults:
        undo_limit: 100
    """
    undo_limit: int = 100  # Default: 100 snapshots


@dataclass
class EditorSettings:
    """All editor-related settings.

    Contains nested settings for grid, keys, rotation, and history.
    """
    grid: EditorGridSettings = field(default_factory=EditorGridSettings)
    keys: EditorKeySettings = field(default_factory=EditorKeySettings)
    rotation: EditorRotationSettings = field(default_factory=EditorRotationSettings)
    history: EditorHistorySettings = field(default_factory=EditorHistorySettings)


# =============================================================================
# Alignment Settings
# =============================================================================

@dataclass
class AlignmentSettings:
    """Helper-line snapping settings.

    Defaults:
        snap_distance: 5.0
        corner_multiplier: 2.0
        guide_color: "#0041D0"
    """
    snap_distance: float = 5.0        # Default: 5.0 pixels (strict <)
    corner_multiplier: float = 2.0    # Default: 2x snap_distance for rotated corners
    guide_color: str = "#0041D0"      # Default: blue


# =============================================================================
# Persistence Settings
# =============================================================================

@dataclass
class PersistenceSettings:
    """Autosave settings.

    Defaults:
        save_debounce_ms: 800
    """
    save_debounce_ms: int = 800  # Default: 800 ms after the last change


# =============================================================================
# Debug Settings
# =============================================================================

@dataclass
class DebugSettings:
    """Trace instrumentation settings.

    Defaults:
        trace_enabled: False
        trace_verbose: False
        log_file: ""  (empty = platformdirs user log dir)
    """
    trace_enabled: bool = False
    trace_verbose: bool = False   # Default: False (skip per-frame categories)
    log_file: str = ""


# =============================================================================
# Main App Settings
# =============================================================================

@dataclass
class AppSettings:
    """Application settings with default values.

    Attributes:
        editor: Editor-related settings.
        alignment: Helper-line snapping settings.
        persistence: Autosave settings.
        debug: Trace settings.
    """
    editor: EditorSettings = field(default_factory=EditorSettings)
    alignment: AlignmentSettings = field(default_factory=AlignmentSettings)
    persistence: PersistenceSettings = field(default_factory=PersistenceSettings)
    debug: DebugSettings = field(default_factory=DebugSettings)


# =============================================================================
# Settings Manager
# =============================================================================

class SettingsManager:
    """Manages loading, saving, and accessing application settings.

    Settings are stored in a TOML file at the platform-appropriate location.
    If the settings file doesn't exist, defaults are used and the file is
    created on first save.

    Args:
        app_name: Application name used for the config directory.
        settings_dir: Explicit directory, overriding the platform location.
    """

    def __init__(self, app_name: str = APP_NAME, settings_dir: Optional[Path] = None):
        if settings_dir is None:
            settings_dir = Path(platformdirs.user_config_dir(app_name))
        self.app_name = app_name
        self.settings_dir = Path(settings_dir)
        self.settings_file = self.settings_dir / "settings.toml"
        self.settings = self.load()
        self._needs_save = not self.settings_file.exists()  # Save if file didn't exist

    def ensure_file_complete(self) -> None:
        """Ensure settings file exists with all sections. Call once at startup."""
        if self._needs_save or not self.settings_file.exists():
            self.save()
            self._needs_save = False

    def load(self) -> AppSettings:
        """Load settings from the TOML file.

        Returns:
            AppSettings instance with values from file or defaults if file
            doesn't exist or is invalid.
        """
        if not self.settings_file.exists():
            return AppSettings()

        try:
            with open(self.settings_file, "rb") as f:
                data = tomllib.load(f)

            return self._parse_toml(data)
        except (OSError, tomllib.TOMLDecodeError) as e:
            # If file is corrupted or invalid, return defaults
            log.warning("Ignoring unreadable settings file %s: %s", self.settings_file, e)
            return AppSettings()

    def _parse_toml(self, data: Dict[str, Any]) -> AppSettings:
        """Parse TOML data into AppSettings.

        Args:
            data: Parsed TOML dictionary.

        Returns:
            AppSettings instance populated from TOML data.
        """
        settings = AppSettings()

        # Editor section
        editor = data.get("editor", {})
        if "grid" in editor:
            g = editor["grid"]
            settings.editor.grid.snap_divisions = g.get("snap_divisions", settings.editor.grid.snap_divisions)
            settings.editor.grid.fine_snap_divisions = g.get("fine_snap_divisions", settings.editor.grid.fine_snap_divisions)
        if "keys" in editor:
            k = editor["keys"]
            settings.editor.keys.horizontal_sizes = k.get("horizontal_sizes", settings.editor.keys.horizontal_sizes)
            settings.editor.keys.vertical_sizes = k.get("vertical_sizes", settings.editor.keys.vertical_sizes)
            settings.editor.keys.default_width_u = k.get("default_width_u", settings.editor.keys.default_width_u)
            settings.editor.keys.default_height_u = k.get("default_height_u", settings.editor.keys.default_height_u)
        if "rotation" in editor:
            r = editor["rotation"]
            settings.editor.rotation.step = r.get("step", settings.editor.rotation.step)
            settings.editor.rotation.min = r.get("min", settings.editor.rotation.min)
            settings.editor.rotation.max = r.get("max", settings.editor.rotation.max)
            settings.editor.rotation.handle_size = r.get("handle_size", settings.editor.rotation.handle_size)
        if "history" in editor:
            h = editor["history"]
            settings.editor.history.undo_limit = h.get("undo_limit", settings.editor.history.undo_limit)

        # Alignment section
        alignment = data.get("alignment", {})
        settings.alignment.snap_distance = alignment.get("snap_distance", settings.alignment.snap_distance)
        settings.alignment.corner_multiplier = alignment.get("corner_multiplier", settings.alignment.corner_multiplier)
        settings.alignment.guide_color = alignment.get("guide_color", settings.alignment.guide_color)

        # Persistence section
        persistence = data.get("persistence", {})
        settings.persistence.save_debounce_ms = persistence.get("save_debounce_ms", settings.persistence.save_debounce_ms)

        # Debug section
        debug = data.get("debug", {})
        settings.debug.trace_enabled = debug.get("trace_enabled", settings.debug.trace_enabled)
        settings.debug.trace_verbose = debug.get("trace_verbose", settings.debug.trace_verbose)
        settings.debug.log_file = debug.get("log_file", settings.debug.log_file)

        return settings

    def save(self) -> None:
        """Save current settings to the TOML file.

        Creates the settings directory if it doesn't exist.
        """
        # Ensure directory exists
        self.settings_dir.mkdir(parents=True, exist_ok=True)

        # Convert settings to TOML structure
        data = self._to_toml_dict()

        with open(self.settings_file, "wb") as f:
            tomli_w.dump(data, f)

    def _to_toml_dict(self) -> Dict[str, Any]:
        """Convert settings to a TOML-compatible dictionary structure.

        Returns:
            Dictionary organized by TOML sections.
        """
        s = self.settings
        return {
            "editor": {
                "grid": {
                    "snap_divisions": s.editor.grid.snap_divisions,
                    "fine_snap_divisions": s.editor.grid.fine_snap_divisions,
                },
                "keys": {
                    "horizontal_sizes": s.editor.keys.horizontal_sizes,
                    "vertical_sizes": s.editor.keys.vertical_sizes,
                    "default_width_u": s.editor.keys.default_width_u,
                    "default_height_u": s.editor.keys.default_height_u,
                },
                "rotation": {
                    "step": s.editor.rotation.step,
                    "min": s.editor.rotation.min,
                    "max": s.editor.rotation.max,
                    "handle_size": s.editor.rotation.handle_size,
                },
                "history": {
                    "undo_limit": s.editor.history.undo_limit,
                },
            },
            "alignment": {
                "snap_distance": s.alignment.snap_distance,
                "corner_multiplier": s.alignment.corner_multiplier,
                "guide_color": s.alignment.guide_color,
            },
            "persistence": {
                "save_debounce_ms": s.persistence.save_debounce_ms,
            },
            "debug": {
                "trace_enabled": s.debug.trace_enabled,
                "trace_verbose": s.debug.trace_verbose,
                "log_file": s.debug.log_file,
            },
        }

    def to_toml(self) -> str:
        """Convert current settings to a TOML-formatted string.

        Returns:
            TOML representation of the current settings.
        """
        data = self._to_toml_dict()
        return tomli_w.dumps(data)

    def get_log_path(self) -> Path:
        """Get the resolved trace log path.

        Returns:
            Path to the trace log. Falls back to the platform user log
            directory if the log_file setting is empty.
        """
        if self.settings.debug.log_file:
            return Path(self.settings.debug.log_file)
        return Path(platformdirs.user_log_dir(self.app_name)) / "keycanvas_trace.log"

    def get_settings_path(self) -> Path:
        """Get the path to the settings file.

        Returns:
            Path object pointing to the settings file location.
        """
        return self.settings_file
