"""ServiceEntry class for service records."""

import copy
from enum import Enum
from typing import Any, Dict, Optional

from .records import FieldMap, apply_updates, build_dict, split_known

SERVICE_TYPES = (
    "Inspektion",
    "Ölwechsel",
    "HU/AU",
    "Reifenwechsel",
    "Bremsen",
    "Reparatur",
    "Umbau",
    "Sonstiges",
)

SERVICE_ENTRY_FIELDS: FieldMap = (
    ("id", "id"),
    ("vehicle_id", "vehicleId"),
    ("date", "date"),
    ("mileage", "mileage"),
    ("type", "type"),
    ("workshop", "workshop"),
    ("cost", "cost"),
    ("notes", "notes"),
    ("deleted_at", "deletedAt"),
)


class EntryState(Enum):
    """Where a service entry currently lives."""

    ACTIVE = "active"
    TRASHED = "trashed"


class ServiceEntry:
    """A record of service performed on a vehicle."""

    state = EntryState.ACTIVE

    def __init__(
        self,
        id: Optional[str] = None,
        vehicle_id: Optional[str] = None,
        date: Optional[str] = None,
        mileage: Optional[float] = None,
        type: Optional[str] = None,
        workshop: Optional[str] = None,
        cost: Optional[float] = None,
        notes: Optional[str] = None,
        deleted_at: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ):
        self.id = id
        self.vehicle_id = vehicle_id
        self.date = date
        self.mileage = mileage
        self.type = type
        self.workshop = workshop
        self.cost = cost
        self.notes = notes
        self.deleted_at = deleted_at
        self.extra = extra or {}

    @property
    def is_custom_type(self) -> bool:
        """True when the type is free text rather than a known category."""
        return self.type not in SERVICE_TYPES

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ServiceEntry":
        known, extra = split_known(data, SERVICE_ENTRY_FIELDS)
        return cls(**known, extra=extra)

    def to_dict(self) -> Dict[str, Any]:
        return build_dict(self, SERVICE_ENTRY_FIELDS, required=("id", "vehicle_id"))

    def update(self, **updates: Any) -> None:
        apply_updates(self, SERVICE_ENTRY_FIELDS, updates)

    def copy(self) -> "ServiceEntry":
        return copy.deepcopy(self)

    def __repr__(self) -> str:
        return (
            f"ServiceEntry(id={self.id!r}, vehicle_id={self.vehicle_id!r}, "
            f"date={self.date!r}, type={self.type!r})"
        )
