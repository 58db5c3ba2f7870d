"""Tests for todo_store.py."""

import json

import pytest
from PySide6.QtCore import QSettings

from todo_store import (
    STORAGE_KEY,
    JsonFileStore,
    MemoryStore,
    SettingsStore,
    StoreError,
    decode_tasks,
    encode_tasks,
)


class TestEncodeDecode:
    def test_encode_tasks(self):
        text = encode_tasks([{"id": "1", "text": "Buy milk", "completed": False}])
        assert json.loads(text) == [{"id": "1", "text": "Buy milk", "completed": False}]

    def test_encode_keeps_unicode(self):
        text = encode_tasks([{"id": "1", "text": "Café ☕", "completed": True}])
        assert "Café ☕" in text

    def test_decode_empty_list(self):
        assert decode_tasks("[]") == []

    def test_decode_invalid_json(self):
        with pytest.raises(StoreError):
            decode_tasks("{ invalid json }")

    def test_decode_wrong_top_level(self):
        with pytest.raises(StoreError, match="expected a list"):
            decode_tasks('{"tasks": []}')

    def test_decode_skips_malformed_entries(self):
        text = json.dumps([
            {"id": "1", "text": "ok"},
            "not a dict",
            {"text": "no id"},
            {"id": "2", "text": "   "},
            {"id": "3", "text": 42},
            {"id": True, "text": "bool id"},
        ])
        assert decode_tasks(text) == [{"id": "1", "text": "ok", "completed": False}]

    def test_decode_coerces_numeric_ids(self):
        assert decode_tasks('[{"id": 17, "text": "x", "completed": 1}]') == [
            {"id": "17", "text": "x", "completed": True}
        ]

    def test_decode_drops_duplicate_ids(self):
        text = json.dumps([
            {"id": "1", "text": "first"},
            {"id": "1", "text": "second"},
        ])
        assert [r["text"] for r in decode_tasks(text)] == ["first"]


class TestMemoryStore:
    def test_get_missing(self):
        assert MemoryStore().get(STORAGE_KEY) is None

    def test_set_and_get(self):
        store = MemoryStore()
        store.set(STORAGE_KEY, "[]")
        assert store.get(STORAGE_KEY) == "[]"

    def test_initial_values(self):
        assert MemoryStore({"k": "v"}).get("k") == "v"


class TestJsonFileStore:
    def test_get_missing(self, tmp_path):
        assert JsonFileStore(tmp_path).get(STORAGE_KEY) is None

    def test_set_and_get(self, tmp_path):
        store = JsonFileStore(tmp_path / "data")
        store.set(STORAGE_KEY, '[{"id":"1","text":"a","completed":false}]')
        assert (tmp_path / "data" / "TASKS_V1.json").exists()
        assert JsonFileStore(tmp_path / "data").get(STORAGE_KEY) == '[{"id":"1","text":"a","completed":false}]'

    def test_set_overwrites_without_leftovers(self, tmp_path):
        store = JsonFileStore(tmp_path)
        store.set(STORAGE_KEY, "[1]")
        store.set(STORAGE_KEY, "[2]")
        assert store.get(STORAGE_KEY) == "[2]"
        assert [p.name for p in tmp_path.iterdir()] == ["TASKS_V1.json"]

    def test_read_failure_raises_store_error(self, tmp_path):
        store = JsonFileStore(tmp_path)
        store.path_for(STORAGE_KEY).mkdir()
        with pytest.raises(StoreError, match="Failed to read"):
            store.get(STORAGE_KEY)

    def test_write_failure_raises_store_error(self, tmp_path):
        blocker = tmp_path / "not_a_dir"
        blocker.write_text("file in the way")
        store = JsonFileStore(blocker)
        with pytest.raises(StoreError, match="Failed to write"):
            store.set(STORAGE_KEY, "[]")


class TestSettingsStore:
    @pytest.fixture
    def settings_path(self, tmp_path):
        return str(tmp_path / "tasks.ini")

    def test_get_missing(self, app, settings_path):
        store = SettingsStore(settings=QSettings(settings_path, QSettings.IniFormat))
        assert store.get(STORAGE_KEY) is None

    def test_set_and_get(self, app, settings_path):
        value = encode_tasks([
            {"id": "1", "text": "Buy milk, eggs", "completed": False},
            {"id": "2", "text": "Call mom", "completed": True},
        ])
        SettingsStore(settings=QSettings(settings_path, QSettings.IniFormat)).set(STORAGE_KEY, value)

        reopened = SettingsStore(settings=QSettings(settings_path, QSettings.IniFormat))
        assert decode_tasks(reopened.get(STORAGE_KEY)) == decode_tasks(value)
