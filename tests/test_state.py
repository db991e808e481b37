#!/usr/bin/env python3
"""Tests for StateManager."""
import json

import pytest
from structlog.testing import capture_logs

from carlog import (
    MemoryStore,
    STORAGE_KEY,
    ServiceEntry,
    StateManager,
    TRASH_STORAGE_KEY,
    Vehicle,
)


class FailingStore(MemoryStore):
    def set(self, key, value):
        raise OSError("quota exceeded")


def add_fleet(manager):
    """Two vehicles, each with an entry and an interval."""
    for vid in ("veh-1", "veh-2"):
        manager.add_vehicle({"id": vid, "name": vid, "currentMileage": 1000})
        manager.add_service_entry(
            {"id": f"srv-{vid}", "vehicleId": vid, "date": "2023-01-01", "type": "HU/AU"}
        )
        manager.add_service_interval(
            {"id": f"int-{vid}", "vehicleId": vid, "name": "HU/AU", "intervalMonths": 24}
        )


class TestLoad:
    """Tests for StateManager.load."""

    def test_empty_store(self, manager):
        assert manager.schema_version == 1
        assert manager.vehicles == []
        assert manager.trash_service_entries == []
        assert not manager.has_stored_data

    def test_malformed_store(self):
        store = MemoryStore({STORAGE_KEY: "oops", TRASH_STORAGE_KEY: "42"})
        with capture_logs():
            manager = StateManager(store).load()
        assert manager.vehicles == []
        assert manager.trash_service_entries == []

    def test_reload_after_mutations(self, store, manager):
        add_fleet(manager)
        manager.delete_service_entry("srv-veh-1")

        reloaded = StateManager(store).load()
        assert [v.id for v in reloaded.vehicles] == ["veh-1", "veh-2"]
        assert [e.id for e in reloaded.service_entries] == ["srv-veh-2"]
        assert [i.id for i in reloaded.service_intervals] == ["int-veh-1", "int-veh-2"]
        assert [t.id for t in reloaded.trash_service_entries] == ["srv-veh-1"]
        assert reloaded.trash_service_entries[0].deleted_at == "2024-03-01T12:00:00.000Z"

    def test_stored_values_are_json(self, store, manager):
        manager.add_vehicle({"id": "veh-1", "name": "Golf"})
        stored = json.loads(store.get(STORAGE_KEY))
        assert stored == {
            "schemaVersion": 1,
            "vehicles": [{"id": "veh-1", "name": "Golf", "currentMileage": 0}],
            "serviceEntries": [],
            "serviceIntervals": [],
        }


class TestIds:
    """Tests for id generation."""

    def test_generated_when_absent(self, manager):
        vehicle = manager.add_vehicle({"name": "Golf"})
        entry = manager.add_service_entry({"vehicleId": vehicle.id})
        interval = manager.add_service_interval({"vehicleId": vehicle.id, "name": "HU"})
        assert len({vehicle.id, entry.id, interval.id}) == 3

    def test_caller_id_kept(self, manager):
        assert manager.add_vehicle({"id": "mine"}).id == "mine"

    def test_skips_ids_in_use_anywhere(self, store):
        candidates = iter(["a", "b", "b", "c", "d"])
        manager = StateManager(store, id_factory=lambda: next(candidates)).load()
        manager.add_vehicle({"id": "c"})
        assert manager.add_vehicle({}).id == "a"
        assert manager.add_service_entry({}).id == "b"
        manager.delete_service_entry("b")
        assert manager.add_service_interval({}).id == "d"


class TestVehicles:
    """Tests for vehicle operations."""

    def test_add_defaults_mileage(self, manager):
        assert manager.add_vehicle({"name": "a"}).current_mileage == 0
        assert manager.add_vehicle({"name": "b", "currentMileage": "12"}).current_mileage == 0
        assert manager.add_vehicle(Vehicle(name="c", current_mileage=500)).current_mileage == 500

    def test_add_copies_input(self, manager):
        vehicle = Vehicle(id="veh-1", name="Golf")
        manager.add_vehicle(vehicle)
        vehicle.name = "changed"
        assert manager.get_vehicle("veh-1").name == "Golf"

    def test_mileage_never_decreases(self, manager):
        manager.add_vehicle({"id": "veh-1", "currentMileage": 1000})
        for mileage in (1500, 900, 3000, 2500, 3000):
            manager.update_vehicle("veh-1", current_mileage=mileage)
        assert manager.get_vehicle("veh-1").current_mileage == 3000

    def test_other_fields_merge_and_keep_mileage(self, manager):
        manager.add_vehicle({"id": "veh-1", "name": "Golf", "currentMileage": 1000})
        manager.update_vehicle("veh-1", name="Golf GTI", license_plate="B-AB 1")
        vehicle = manager.get_vehicle("veh-1")
        assert vehicle.name == "Golf GTI"
        assert vehicle.license_plate == "B-AB 1"
        assert vehicle.current_mileage == 1000

    def test_non_numeric_mileage_ignored(self, manager):
        manager.add_vehicle({"id": "veh-1", "currentMileage": 1000})
        manager.update_vehicle("veh-1", current_mileage=None)
        assert manager.get_vehicle("veh-1").current_mileage == 1000

    def test_update_unknown_id_is_noop(self, store, manager):
        manager.add_vehicle({"id": "veh-1"})
        before = dict(store.data)
        manager.update_vehicle("nope", name="x")
        assert store.data == before

    def test_unknown_field_raises(self, manager):
        manager.add_vehicle({"id": "veh-1", "name": "Golf"})
        with pytest.raises(TypeError):
            manager.update_vehicle("veh-1", name="x", colour="red")
        assert manager.get_vehicle("veh-1").name == "Golf"

    def test_delete_cascades_to_own_records_only(self, manager):
        add_fleet(manager)
        manager.delete_vehicle("veh-1")
        assert [v.id for v in manager.vehicles] == ["veh-2"]
        assert [e.id for e in manager.service_entries] == ["srv-veh-2"]
        assert [i.id for i in manager.service_intervals] == ["int-veh-2"]

    def test_read_access_returns_copies(self, manager):
        manager.add_vehicle({"id": "veh-1", "name": "Golf"})
        manager.vehicles[0].name = "changed"
        manager.get_vehicle("veh-1").name = "changed"
        assert manager.get_vehicle("veh-1").name == "Golf"


class TestServiceEntries:
    """Tests for service entry operations and the trash."""

    def test_update(self, manager):
        manager.add_service_entry({"id": "srv-1", "vehicleId": "veh-1", "cost": 10})
        manager.update_service_entry("srv-1", cost=12.5, notes="Rechnung 42")
        entry = manager.service_entries[0]
        assert entry.cost == 12.5
        assert entry.notes == "Rechnung 42"
        manager.update_service_entry("nope", cost=1)

    def test_delete_moves_to_trash(self, manager):
        manager.add_service_entry({"id": "srv-1", "vehicleId": "veh-1"})
        manager.delete_service_entry("srv-1")
        assert manager.service_entries == []
        trash = manager.trash_service_entries
        assert [t.id for t in trash] == ["srv-1"]
        assert trash[0].deleted_at == "2024-03-01T12:00:00.000Z"

    def test_delete_unknown_is_noop(self, manager):
        manager.delete_service_entry("nope")
        assert manager.trash_service_entries == []

    def test_delete_keeps_existing_deleted_at(self, manager):
        manager.add_service_entry(
            {"id": "srv-1", "vehicleId": "veh-1", "deletedAt": "2020-01-01T00:00:00.000Z"}
        )
        manager.delete_service_entry("srv-1")
        assert manager.trash_service_entries[0].deleted_at == "2020-01-01T00:00:00.000Z"

    def test_delete_then_restore_round_trip(self, manager):
        original = ServiceEntry(
            id="srv-1",
            vehicle_id="veh-1",
            date="2023-02-05",
            mileage=22000,
            type="Inspektion",
            cost=249.9,
            extra={"invoice": "R-42"},
        )
        manager.add_service_entry(original)
        manager.delete_service_entry("srv-1")
        manager.restore_service_entry("srv-1")

        assert [e.to_dict() for e in manager.service_entries] == [original.to_dict()]
        assert manager.trash_service_entries == []

    def test_restore_unknown_is_noop(self, manager):
        manager.add_service_entry({"id": "srv-1", "vehicleId": "veh-1"})
        manager.restore_service_entry("srv-1")
        assert len(manager.service_entries) == 1

    def test_id_lives_in_one_collection(self, manager):
        manager.add_service_entry({"id": "srv-1", "vehicleId": "veh-1"})
        manager.delete_service_entry("srv-1")
        manager.add_service_entry({"id": "srv-1", "vehicleId": "veh-1", "notes": "new"})
        assert manager.trash_service_entries == []
        assert len(manager.service_entries) == 1

    def test_delete_forever(self, manager):
        for eid in ("srv-1", "srv-2"):
            manager.add_service_entry({"id": eid, "vehicleId": "veh-1"})
            manager.delete_service_entry(eid)
        manager.delete_service_entry_forever("srv-1")
        manager.delete_service_entry_forever("nope")
        assert [t.id for t in manager.trash_service_entries] == ["srv-2"]
        assert manager.service_entries == []

    def test_clear_trash(self, store, manager):
        manager.add_service_entry({"id": "srv-1", "vehicleId": "veh-1"})
        manager.delete_service_entry("srv-1")
        manager.clear_trash_service_entries()
        assert manager.trash_service_entries == []
        assert json.loads(store.get(TRASH_STORAGE_KEY)) == []


class TestServiceIntervals:
    """Tests for service interval operations."""

    def test_crud(self, manager):
        manager.add_service_interval({"id": "int-1", "vehicleId": "veh-1", "name": "HU/AU"})
        manager.update_service_interval("int-1", interval_months=24)
        assert manager.service_intervals[0].interval_months == 24

        manager.update_service_interval("nope", interval_months=1)
        manager.delete_service_interval("nope")
        assert len(manager.service_intervals) == 1

        manager.delete_service_interval("int-1")
        assert manager.service_intervals == []

    def test_filters_by_vehicle(self, manager):
        add_fleet(manager)
        assert [i.id for i in manager.intervals_for_vehicle("veh-2")] == ["int-veh-2"]
        assert [e.id for e in manager.entries_for_vehicle("veh-1")] == ["srv-veh-1"]


class TestExportImport:
    """Tests for export_state and apply_imported_data."""

    def test_export_excludes_trash(self, manager):
        add_fleet(manager)
        manager.delete_service_entry("srv-veh-1")
        snapshot = manager.export_state()
        assert set(snapshot) == {"schemaVersion", "vehicles", "serviceEntries", "serviceIntervals"}
        assert [e["id"] for e in snapshot["serviceEntries"]] == ["srv-veh-2"]

    def test_export_is_a_copy(self, manager):
        manager.add_vehicle({"id": "veh-1", "name": "Golf", "tags": ["x"]})
        snapshot = manager.export_state()
        snapshot["vehicles"][0]["name"] = "changed"
        snapshot["vehicles"][0]["tags"].append("y")
        snapshot["vehicles"].clear()
        vehicle = manager.get_vehicle("veh-1")
        assert vehicle.name == "Golf"
        assert vehicle.extra == {"tags": ["x"]}

    def test_round_trip(self, manager):
        add_fleet(manager)
        payload = manager.export_state()
        payload["schemaVersion"] = 2
        manager.apply_imported_data(payload)
        before = manager.export_state()
        manager.apply_imported_data(manager.export_state())
        assert manager.export_state() == before
        assert manager.schema_version == 2

    def test_empty_payload(self, manager):
        add_fleet(manager)
        manager.apply_imported_data({})
        assert manager.export_state() == {
            "schemaVersion": 1,
            "vehicles": [],
            "serviceEntries": [],
            "serviceIntervals": [],
        }

    def test_lenient_payload(self, manager):
        manager.apply_imported_data(
            {
                "schemaVersion": "two",
                "vehicles": {"id": "veh-1"},
                "serviceEntries": [{"id": "srv-1", "vehicleId": "veh-1"}, "junk"],
            }
        )
        assert manager.schema_version == 1
        assert manager.vehicles == []
        assert [e.id for e in manager.service_entries] == ["srv-1"]
        assert manager.service_intervals == []

    def test_import_keeps_trash(self, manager):
        manager.add_service_entry({"id": "srv-1", "vehicleId": "veh-1"})
        manager.delete_service_entry("srv-1")
        manager.apply_imported_data({})
        assert [t.id for t in manager.trash_service_entries] == ["srv-1"]

    def test_import_persists(self, store, manager):
        manager.apply_imported_data({"vehicles": [{"id": "veh-1", "currentMileage": 5}]})
        reloaded = StateManager(store).load()
        assert [v.id for v in reloaded.vehicles] == ["veh-1"]


class TestPersistenceFailures:
    """Write failures never undo or block in-memory changes."""

    def test_mutations_survive_failed_writes(self, fixed_clock):
        manager = StateManager(FailingStore(), clock=fixed_clock).load()
        with capture_logs() as logs:
            manager.add_vehicle({"id": "veh-1"})
            manager.add_service_entry({"id": "srv-1", "vehicleId": "veh-1"})
            manager.delete_service_entry("srv-1")
        assert [v.id for v in manager.vehicles] == ["veh-1"]
        assert [t.id for t in manager.trash_service_entries] == ["srv-1"]
        assert any(log["event"] == "storage_write_failed" for log in logs)
