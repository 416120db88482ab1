"""Tests for debounced saving (persistence.py)."""
from __future__ import annotations

import logging

import pytest
from PyQt6.QtTest import QTest

from persistence import SaveScheduler, json_file_backend, load_layout_file


class Recorder:
    def __init__(self, result=None):
        self.documents = []
        self.result = result

    def __call__(self, document):
        self.documents.append(document)
        return self.result


def _scheduler(callback, delay_ms=10):
    counter = {"n": 0}

    def provider():
        counter["n"] += 1
        return {"nodes": [], "edges": [], "revision": counter["n"]}

    return SaveScheduler(provider, callback, delay_ms=delay_ms)


class TestSaveScheduler:
    def test_burst_saves_once(self, qapp):
        recorder = Recorder()
        scheduler = _scheduler(recorder)
        for _ in range(5):
            scheduler.schedule_save()
        assert scheduler.is_pending()
        QTest.qWait(100)
        assert len(recorder.documents) == 1
        assert not scheduler.is_pending()

    def test_flush_runs_pending_save(self, qapp):
        recorder = Recorder()
        scheduler = _scheduler(recorder, delay_ms=10_000)
        scheduler.schedule_save()
        assert scheduler.flush()
        assert len(recorder.documents) == 1
        assert not scheduler.is_pending()

    def test_flush_without_pending(self, qapp):
        recorder = Recorder()
        scheduler = _scheduler(recorder)
        assert scheduler.flush()
        assert recorder.documents == []

    def test_cancel(self, qapp):
        recorder = Recorder()
        scheduler = _scheduler(recorder)
        scheduler.schedule_save()
        scheduler.cancel()
        QTest.qWait(50)
        assert recorder.documents == []

    def test_document_read_at_save_time(self, qapp):
        recorder = Recorder()
        scheduler = _scheduler(recorder, delay_ms=10_000)
        scheduler.schedule_save()
        scheduler.schedule_save()
        scheduler.flush()
        assert recorder.documents[0]["revision"] == 1

    def test_saved_signal(self, qapp):
        outcomes = []
        scheduler = _scheduler(Recorder())
        scheduler.saved.connect(outcomes.append)
        scheduler.save_flow()
        assert outcomes == [True]
        assert scheduler.last_error is None

    def test_backend_error_reported(self, qapp, caplog):
        outcomes = []
        scheduler = _scheduler(Recorder(result="disk full"))
        scheduler.saved.connect(outcomes.append)
        with caplog.at_level(logging.WARNING, logger="persistence"):
            assert not scheduler.save_flow()
        assert outcomes == [False]
        assert scheduler.last_error == "disk full"
        assert "disk full" in caplog.text

    def test_backend_exception_reported(self, qapp):
        def explode(document):
            raise OSError("read-only")

        scheduler = _scheduler(explode)
        assert not scheduler.save_flow()
        assert scheduler.last_error == "OSError: read-only"

    def test_failure_not_retried(self, qapp):
        recorder = Recorder(result="nope")
        scheduler = _scheduler(recorder)
        scheduler.schedule_save()
        QTest.qWait(100)
        assert len(recorder.documents) == 1
        assert not scheduler.is_pending()

    def test_default_delay_from_settings(self, qapp, isolated_settings):
        isolated_settings.settings.persistence.save_debounce_ms = 5
        recorder = Recorder()
        scheduler = SaveScheduler(lambda: {"nodes": []}, recorder)
        scheduler.schedule_save()
        QTest.qWait(80)
        assert len(recorder.documents) == 1


class TestJsonBackend:
    def test_write_and_read(self, tmp_path):
        path = tmp_path / "layouts" / "board.json"
        save = json_file_backend(path)
        document = {"nodes": [], "edges": [], "viewport": {"x": 0, "y": 0, "zoom": 1}}
        assert save(document) is None
        assert load_layout_file(path) == document

    def test_unwritable_path(self, tmp_path):
        save = json_file_backend(tmp_path)
        error = save({"nodes": []})
        assert isinstance(error, str) and error

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_layout_file(tmp_path / "missing.json")
