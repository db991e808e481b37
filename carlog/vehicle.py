"""Vehicle class for vehicle identification and mileage."""

import copy
from typing import Any, Dict, Optional

from .records import FieldMap, apply_updates, build_dict, split_known

VEHICLE_FIELDS: FieldMap = (
    ("id", "id"),
    ("name", "name"),
    ("category", "category"),
    ("manufacturer", "manufacturer"),
    ("model", "model"),
    ("year", "year"),
    ("license_plate", "licensePlate"),
    ("vin", "vin"),
    ("notes", "notes"),
    ("current_mileage", "currentMileage"),
)


class Vehicle:
    """A vehicle owned by the user."""

    def __init__(
        self,
        id: Optional[str] = None,
        name: Optional[str] = None,
        category: Optional[str] = None,
        manufacturer: Optional[str] = None,
        model: Optional[str] = None,
        year: Optional[int] = None,
        license_plate: Optional[str] = None,
        vin: Optional[str] = None,
        notes: Optional[str] = None,
        current_mileage: Optional[float] = None,
        extra: Optional[Dict[str, Any]] = None,
    ):
        self.id = id
        self.name = name
        self.category = category
        self.manufacturer = manufacturer
        self.model = model
        self.year = year
        self.license_plate = license_plate
        self.vin = vin
        self.notes = notes
        self.current_mileage = current_mileage
        self.extra = extra or {}

    @property
    def display_name(self) -> str:
        """Human-readable vehicle name."""
        if self.name:
            return self.name
        parts = [str(p) for p in (self.year, self.manufacturer, self.model) if p]
        return " ".join(parts) or (self.id or "")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Vehicle":
        known, extra = split_known(data, VEHICLE_FIELDS)
        return cls(**known, extra=extra)

    def to_dict(self) -> Dict[str, Any]:
        return build_dict(self, VEHICLE_FIELDS, required=("id", "current_mileage"))

    def update(self, **updates: Any) -> None:
        apply_updates(self, VEHICLE_FIELDS, updates)

    def copy(self) -> "Vehicle":
        return copy.deepcopy(self)

    def __repr__(self) -> str:
        return f"Vehicle(id={self.id!r}, name={self.name!r}, current_mileage={self.current_mileage!r})"
