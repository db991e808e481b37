"""
In-memory state for vehicles, service entries, service intervals and the
service entry trash.

StateManager is the only owner of the collections. Every mutation is
persisted right away; persistence problems are logged by the storage layer
and never undo the in-memory change. Updates and deletes of unknown ids are
no-ops.
"""

import copy
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Set, Union

import structlog

from .calculations import is_finite_number
from .loader import (
    coerce_record,
    parse_schema_version,
    parse_service_entries,
    parse_service_intervals,
    parse_trash,
    parse_vehicles,
    to_dicts,
)
from .service_entry import ServiceEntry
from .service_interval import ServiceInterval
from .storage import (
    DEFAULT_SCHEMA_VERSION,
    KeyValueStore,
    load_state,
    load_trash_state,
    persist_state,
    persist_trash_state,
)
from .trash import TrashedServiceEntry, trash_entry
from .vehicle import Vehicle

logger = structlog.get_logger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _new_uuid() -> str:
    return uuid.uuid4().hex


class StateManager:
    """Owns the service log collections and keeps the store in sync."""

    def __init__(
        self,
        store: KeyValueStore,
        clock: Optional[Callable[[], datetime]] = None,
        id_factory: Optional[Callable[[], str]] = None,
    ):
        self.store = store
        self._clock = clock or _utc_now
        self._id_factory = id_factory or _new_uuid
        self._schema_version: Union[int, float] = DEFAULT_SCHEMA_VERSION
        self._vehicles: List[Vehicle] = []
        self._service_entries: List[ServiceEntry] = []
        self._service_intervals: List[ServiceInterval] = []
        self._trash: List[TrashedServiceEntry] = []

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def load(self) -> "StateManager":
        """Load the snapshot and trash from the store (empty on bad data)."""
        state = load_state(self.store)
        self._schema_version = parse_schema_version(state["schemaVersion"])
        self._vehicles = parse_vehicles(state["vehicles"])
        self._service_entries = parse_service_entries(state["serviceEntries"])
        self._service_intervals = parse_service_intervals(state["serviceIntervals"])
        self._trash = parse_trash(load_trash_state(self.store))
        logger.debug(
            "state_loaded",
            vehicles=len(self._vehicles),
            service_entries=len(self._service_entries),
            service_intervals=len(self._service_intervals),
            trash=len(self._trash),
        )
        return self

    def persist(self) -> None:
        """Write both the active snapshot and the trash."""
        self._persist_state()
        self._persist_trash()

    def _persist_state(self) -> None:
        persist_state(self.store, self.export_state())

    def _persist_trash(self) -> None:
        persist_trash_state(self.store, to_dicts(self._trash))

    # -------------------------------------------------------------------------
    # Read access (copies; callers cannot mutate internal state)
    # -------------------------------------------------------------------------

    @property
    def schema_version(self) -> Union[int, float]:
        return self._schema_version

    @property
    def vehicles(self) -> List[Vehicle]:
        return [v.copy() for v in self._vehicles]

    @property
    def service_entries(self) -> List[ServiceEntry]:
        return [e.copy() for e in self._service_entries]

    @property
    def service_intervals(self) -> List[ServiceInterval]:
        return [i.copy() for i in self._service_intervals]

    @property
    def trash_service_entries(self) -> List[TrashedServiceEntry]:
        return [TrashedServiceEntry(t.entry.copy(), t.deleted_at) for t in self._trash]

    @property
    def has_stored_data(self) -> bool:
        return bool(self._vehicles or self._service_entries or self._service_intervals)

    def get_vehicle(self, vehicle_id: str) -> Optional[Vehicle]:
        vehicle = self._find(self._vehicles, vehicle_id)
        return vehicle.copy() if vehicle else None

    def entries_for_vehicle(self, vehicle_id: str) -> List[ServiceEntry]:
        return [e.copy() for e in self._service_entries if e.vehicle_id == vehicle_id]

    def intervals_for_vehicle(self, vehicle_id: str) -> List[ServiceInterval]:
        return [i.copy() for i in self._service_intervals if i.vehicle_id == vehicle_id]

    # -------------------------------------------------------------------------
    # Ids
    # -------------------------------------------------------------------------

    def _known_ids(self) -> Set[str]:
        ids = {v.id for v in self._vehicles}
        ids.update(e.id for e in self._service_entries)
        ids.update(i.id for i in self._service_intervals)
        ids.update(t.id for t in self._trash)
        return ids

    def new_id(self) -> str:
        """Generate an id not used by any record in any collection."""
        known = self._known_ids()
        while True:
            candidate = self._id_factory()
            if candidate not in known:
                return candidate

    def _ensure_id(self, record: Any) -> None:
        if not record.id:
            record.id = self.new_id()

    @staticmethod
    def _find(records: List[Any], record_id: str) -> Optional[Any]:
        for record in records:
            if record.id == record_id:
                return record
        return None

    # -------------------------------------------------------------------------
    # Vehicles
    # -------------------------------------------------------------------------

    def add_vehicle(self, data: Union[Vehicle, Dict[str, Any]]) -> Vehicle:
        """Add a vehicle; current mileage defaults to 0."""
        vehicle = coerce_record(Vehicle, data)
        self._ensure_id(vehicle)
        if not is_finite_number(vehicle.current_mileage):
            vehicle.current_mileage = 0
        self._vehicles.append(vehicle)
        self._persist_state()
        logger.debug("vehicle_added", vehicle_id=vehicle.id)
        return vehicle.copy()

    def update_vehicle(self, vehicle_id: str, **updates: Any) -> None:
        """
        Update vehicle fields.

        current_mileage never decreases: the stored value becomes the larger
        of the existing and the requested mileage.
        """
        vehicle = self._find(self._vehicles, vehicle_id)
        if vehicle is None:
            return
        existing = vehicle.current_mileage
        requested = updates.get("current_mileage", existing)
        if not is_finite_number(requested):
            requested = existing
        if is_finite_number(existing) and is_finite_number(requested):
            updates["current_mileage"] = max(existing, requested)
        else:
            updates["current_mileage"] = requested
        vehicle.update(**updates)
        self._persist_state()

    def delete_vehicle(self, vehicle_id: str) -> None:
        """Remove a vehicle together with its entries and intervals."""
        self._vehicles = [v for v in self._vehicles if v.id != vehicle_id]
        self._service_entries = [
            e for e in self._service_entries if e.vehicle_id != vehicle_id
        ]
        self._service_intervals = [
            i for i in self._service_intervals if i.vehicle_id != vehicle_id
        ]
        self._persist_state()
        logger.debug("vehicle_deleted", vehicle_id=vehicle_id)

    # -------------------------------------------------------------------------
    # Service entries
    # -------------------------------------------------------------------------

    def add_service_entry(self, data: Union[ServiceEntry, Dict[str, Any]]) -> ServiceEntry:
        entry = coerce_record(ServiceEntry, data)
        self._ensure_id(entry)
        self._service_entries.append(entry)
        self._persist_state()
        # an active entry supersedes a trashed one with the same id
        if any(t.id == entry.id for t in self._trash):
            self._trash = [t for t in self._trash if t.id != entry.id]
            self._persist_trash()
        return entry.copy()

    def update_service_entry(self, entry_id: str, **updates: Any) -> None:
        entry = self._find(self._service_entries, entry_id)
        if entry is None:
            return
        entry.update(**updates)
        self._persist_state()

    def delete_service_entry(self, entry_id: str) -> None:
        """Move an entry to the trash, stamping deletedAt."""
        entry = self._find(self._service_entries, entry_id)
        if entry is None:
            return
        self._service_entries = [e for e in self._service_entries if e.id != entry_id]
        trashed = trash_entry(entry, self._clock())
        self._trash = [t for t in self._trash if t.id != entry_id] + [trashed]
        self._persist_state()
        self._persist_trash()
        logger.debug("service_entry_trashed", entry_id=entry_id, deleted_at=trashed.deleted_at)

    def restore_service_entry(self, entry_id: str) -> None:
        """Move an entry from the trash back to the active entries."""
        trashed = self._find(self._trash, entry_id)
        if trashed is None:
            return
        self._service_entries = [
            e for e in self._service_entries if e.id != entry_id
        ] + [trashed.restore()]
        self._trash = [t for t in self._trash if t.id != entry_id]
        self._persist_state()
        self._persist_trash()

    def delete_service_entry_forever(self, entry_id: str) -> None:
        """Remove an entry from the trash without restoring it."""
        self._trash = [t for t in self._trash if t.id != entry_id]
        self._persist_trash()

    def clear_trash_service_entries(self) -> None:
        self._trash = []
        self._persist_trash()

    # -------------------------------------------------------------------------
    # Service intervals
    # -------------------------------------------------------------------------

    def add_service_interval(
        self, data: Union[ServiceInterval, Dict[str, Any]]
    ) -> ServiceInterval:
        interval = coerce_record(ServiceInterval, data)
        self._ensure_id(interval)
        self._service_intervals.append(interval)
        self._persist_state()
        return interval.copy()

    def update_service_interval(self, interval_id: str, **updates: Any) -> None:
        interval = self._find(self._service_intervals, interval_id)
        if interval is None:
            return
        interval.update(**updates)
        self._persist_state()

    def delete_service_interval(self, interval_id: str) -> None:
        self._service_intervals = [
            i for i in self._service_intervals if i.id != interval_id
        ]
        self._persist_state()

    # -------------------------------------------------------------------------
    # Export / import
    # -------------------------------------------------------------------------

    def export_state(self) -> Dict[str, Any]:
        """Snapshot of the active state (trash excluded)."""
        return copy.deepcopy(
            {
                "schemaVersion": self._schema_version,
                "vehicles": to_dicts(self._vehicles),
                "serviceEntries": to_dicts(self._service_entries),
                "serviceIntervals": to_dicts(self._service_intervals),
            }
        )

    def apply_imported_data(self, payload: Any) -> None:
        """Replace the active state with an imported snapshot. Trash is kept."""
        if not isinstance(payload, dict):
            payload = {}
        payload = copy.deepcopy(payload)
        self._schema_version = parse_schema_version(payload.get("schemaVersion"))
        self._vehicles = parse_vehicles(payload.get("vehicles"))
        self._service_entries = parse_service_entries(payload.get("serviceEntries"))
        self._service_intervals = parse_service_intervals(payload.get("serviceIntervals"))
        self._persist_state()
        logger.info(
            "state_imported",
            schema_version=self._schema_version,
            vehicles=len(self._vehicles),
            service_entries=len(self._service_entries),
            service_intervals=len(self._service_intervals),
        )
