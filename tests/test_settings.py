"""Tests for TOML settings and trace configuration."""
from __future__ import annotations

import logging
from pathlib import Path

import pytest

import debug_trace
from debug_trace import configure_trace, is_enabled, trace, trace_call, trace_exception
from settings import AppSettings, SettingsManager, get_settings, reset_settings


# ─────────────────────────────────────────────────────────
# SettingsManager
# ─────────────────────────────────────────────────────────


class TestSettingsManager:
    def test_defaults_without_file(self, tmp_path):
        manager = SettingsManager(settings_dir=tmp_path)
        assert manager.settings == AppSettings()
        assert manager.settings.editor.rotation.step == 15.0
        assert manager.settings.alignment.snap_distance == 5.0
        assert manager.settings.persistence.save_debounce_ms == 800

    def test_save_and_reload(self, tmp_path):
        manager = SettingsManager(settings_dir=tmp_path)
        manager.settings.editor.grid.snap_divisions = 8
        manager.settings.alignment.guide_color = "#ff00ff"
        manager.settings.debug.trace_enabled = True
        manager.save()

        again = SettingsManager(settings_dir=tmp_path)
        assert again.settings.editor.grid.snap_divisions == 8
        assert again.settings.alignment.guide_color == "#ff00ff"
        assert again.settings.debug.trace_enabled is True

    def test_partial_file(self, tmp_path):
        (tmp_path / "settings.toml").write_text(
            "[editor.rotation]\nstep = 5.0\n\n[persistence]\nsave_debounce_ms = 100\n",
            encoding="utf-8",
        )
        manager = SettingsManager(settings_dir=tmp_path)
        assert manager.settings.editor.rotation.step == 5.0
        assert manager.settings.persistence.save_debounce_ms == 100
        assert manager.settings.editor.history.undo_limit == 100

    def test_corrupt_file_uses_defaults(self, tmp_path, caplog):
        (tmp_path / "settings.toml").write_text("[editor\nthis is = = not toml", encoding="utf-8")
        with caplog.at_level(logging.WARNING, logger="settings"):
            manager = SettingsManager(settings_dir=tmp_path)
        assert manager.settings == AppSettings()
        assert "Ignoring unreadable settings file" in caplog.text

    def test_ensure_file_complete(self, tmp_path):
        manager = SettingsManager(settings_dir=tmp_path / "nested")
        assert not manager.get_settings_path().exists()
        manager.ensure_file_complete()
        assert manager.get_settings_path().exists()

    def test_to_toml_sections(self, tmp_path):
        text = SettingsManager(settings_dir=tmp_path).to_toml()
        for section in ("[editor.grid]", "[editor.rotation]", "[alignment]", "[persistence]", "[debug]"):
            assert section in text

    def test_log_path(self, tmp_path):
        manager = SettingsManager(settings_dir=tmp_path)
        assert manager.get_log_path().name == "keycanvas_trace.log"
        manager.settings.debug.log_file = str(tmp_path / "trace.log")
        assert manager.get_log_path() == tmp_path / "trace.log"

    def test_singleton(self, isolated_settings):
        assert get_settings() is isolated_settings
        other = SettingsManager(settings_dir=isolated_settings.settings_dir / "other")
        reset_settings(other)
        assert get_settings() is other


# ─────────────────────────────────────────────────────────
# debug_trace
# ─────────────────────────────────────────────────────────


class TestTrace:
    def test_disabled_is_silent(self, capsys):
        trace("hello", "KLE")
        assert capsys.readouterr().err == ""

    def test_enabled_writes_stderr_and_file(self, tmp_path, capsys):
        log_path = tmp_path / "trace.log"
        configure_trace(True, log_path=log_path)
        trace("imported 3 keys", "KLE")
        debug_trace.close_log()
        assert "[KLE] imported 3 keys" in capsys.readouterr().err
        assert "[KLE] imported 3 keys" in log_path.read_text(encoding="utf-8")

    def test_verbose_categories(self, tmp_path):
        configure_trace(True, log_path=tmp_path / "t.log")
        assert is_enabled("ROTATE")
        assert not is_enabled("ALIGN")
        configure_trace(True, verbose=True, log_path=tmp_path / "t.log")
        assert is_enabled("ALIGN")

    def test_config_from_settings(self, isolated_settings, monkeypatch, tmp_path):
        isolated_settings.settings.debug.trace_enabled = True
        isolated_settings.settings.debug.log_file = str(tmp_path / "from_settings.log")
        monkeypatch.setattr(debug_trace, "_enabled", None)
        monkeypatch.setattr(debug_trace, "_log_path", None)
        trace("from settings", "SESSION")
        debug_trace.close_log()
        assert "from settings" in Path(tmp_path / "from_settings.log").read_text(encoding="utf-8")

    def test_trace_exception(self, tmp_path, capsys):
        configure_trace(True, log_path=tmp_path / "t.log")
        try:
            raise ValueError("bad")
        except ValueError:
            trace_exception("while saving")
        err = capsys.readouterr().err
        assert "[ERROR] while saving" in err
        assert "ValueError: bad" in err

    def test_trace_call(self, tmp_path, capsys):
        configure_trace(True, log_path=tmp_path / "t.log")

        @trace_call("SESSION")
        def double(x):
            return x * 2

        @trace_call("SESSION")
        def fail():
            raise RuntimeError("nope")

        assert double(4) == 8
        with pytest.raises(RuntimeError):
            fail()
        err = capsys.readouterr().err
        assert ">>> TestTrace.test_trace_call.<locals>.double" in err
        assert "!!! TestTrace.test_trace_call.<locals>.fail raised RuntimeError: nope" in err
