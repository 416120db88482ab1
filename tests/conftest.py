"""Shared fixtures: offscreen Qt, one QApplication, and isolated settings."""
from __future__ import annotations

import os
import sys

import pytest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from PyQt6.QtWidgets import QApplication

import debug_trace
from settings import SettingsManager, reset_settings


@pytest.fixture(scope="session")
def qapp():
    """Provide a single QApplication for the entire test session."""
    app = QApplication.instance() or QApplication(sys.argv)
    yield app


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path):
    """Point the settings singleton at a throwaway directory."""
    manager = SettingsManager(settings_dir=tmp_path / "config")
    reset_settings(manager)
    debug_trace.configure_trace(False)
    yield manager
    debug_trace.close_log()
    reset_settings(None)
