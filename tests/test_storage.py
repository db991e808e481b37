#!/usr/bin/env python3
"""Tests for key-value persistence."""
import json

from structlog.testing import capture_logs

from carlog import FileStore, MemoryStore, StateManager, STORAGE_KEY, TRASH_STORAGE_KEY
from carlog.storage import (
    load_state,
    load_trash_state,
    persist_state,
    persist_trash_state,
)


class FailingStore(MemoryStore):
    def set(self, key, value):
        raise OSError("disk full")


class TestFileStore:
    """Tests for FileStore."""

    def test_missing_key_returns_none(self, tmp_path):
        assert FileStore(tmp_path).get("nothing") is None

    def test_set_creates_directory(self, tmp_path):
        store = FileStore(tmp_path / "data")
        store.set(STORAGE_KEY, '{"a": 1}')
        assert store.get(STORAGE_KEY) == '{"a": 1}'
        assert (tmp_path / "data" / f"{STORAGE_KEY}.json").exists()

    def test_utf8(self, tmp_path):
        store = FileStore(tmp_path)
        store.set("k", "Ölwechsel")
        assert store.get("k") == "Ölwechsel"

    def test_remove(self, tmp_path):
        store = FileStore(tmp_path)
        store.set("k", "v")
        store.remove("k")
        store.remove("k")
        assert store.get("k") is None


class TestLoadState:
    """Tests for load_state."""

    def test_empty_store(self):
        assert load_state(MemoryStore()) == {
            "schemaVersion": 1,
            "vehicles": [],
            "serviceEntries": [],
            "serviceIntervals": [],
        }

    def test_unparsable_json_is_logged(self):
        store = MemoryStore({STORAGE_KEY: "{not json"})
        with capture_logs() as logs:
            state = load_state(store)
        assert state["vehicles"] == []
        assert logs[0]["event"] == "storage_parse_failed"
        assert logs[0]["log_level"] == "error"

    def test_non_object_json(self):
        store = MemoryStore({STORAGE_KEY: "[1, 2]"})
        with capture_logs():
            assert load_state(store)["schemaVersion"] == 1

    def test_non_array_fields_coerced(self):
        store = MemoryStore(
            {
                STORAGE_KEY: json.dumps(
                    {
                        "schemaVersion": 3,
                        "vehicles": {"id": "x"},
                        "serviceEntries": None,
                        "serviceIntervals": [{"id": "int-1"}],
                    }
                )
            }
        )
        state = load_state(store)
        assert state["schemaVersion"] == 3
        assert state["vehicles"] == []
        assert state["serviceEntries"] == []
        assert state["serviceIntervals"] == [{"id": "int-1"}]

    def test_invalid_utf8_file_is_logged(self, tmp_path):
        store = FileStore(tmp_path)
        store.path_for(STORAGE_KEY).write_bytes(b'{"vehicles": [\xff\xfe]}')
        with capture_logs() as logs:
            state = load_state(store)
        assert state["vehicles"] == []
        assert logs[0]["event"] == "storage_read_failed"

    def test_manager_loads_empty_from_invalid_utf8(self, tmp_path):
        store = FileStore(tmp_path)
        store.path_for(STORAGE_KEY).write_bytes(b"\xff")
        store.path_for(TRASH_STORAGE_KEY).write_bytes(b"\xff")
        with capture_logs():
            manager = StateManager(store).load()
        assert manager.vehicles == []
        assert manager.trash_service_entries == []
        assert manager.export_state()["schemaVersion"] == 1


class TestTrashState:
    """Tests for load_trash_state and persist_trash_state."""

    def test_round_trip(self):
        store = MemoryStore()
        assert persist_trash_state(store, [{"id": "srv-1"}]) is True
        assert load_trash_state(store) == [{"id": "srv-1"}]

    def test_non_list_becomes_empty(self):
        store = MemoryStore({TRASH_STORAGE_KEY: '{"id": "srv-1"}'})
        assert load_trash_state(store) == []


class TestPersistFailures:
    """Write failures are logged and reported, never raised."""

    def test_persist_state_failure(self):
        with capture_logs() as logs:
            assert persist_state(FailingStore(), {"vehicles": []}) is False
        assert logs[0]["event"] == "storage_write_failed"
        assert logs[0]["key"] == STORAGE_KEY

    def test_persist_trash_failure(self):
        with capture_logs():
            assert persist_trash_state(FailingStore(), []) is False
