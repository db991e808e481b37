"""ServiceInterval class for recurring service definitions."""

import copy
from typing import Any, Dict, Optional

from .records import FieldMap, apply_updates, build_dict, split_known

SERVICE_INTERVAL_FIELDS: FieldMap = (
    ("id", "id"),
    ("vehicle_id", "vehicleId"),
    ("name", "name"),
    ("interval_months", "intervalMonths"),
    ("interval_mileage", "intervalMileage"),
    ("last_service_entry_id", "lastServiceEntryId"),
)


class ServiceInterval:
    """A recurring service, due every N months and/or every N km."""

    def __init__(
        self,
        id: Optional[str] = None,
        vehicle_id: Optional[str] = None,
        name: Optional[str] = None,
        interval_months: Optional[float] = None,
        interval_mileage: Optional[float] = None,
        last_service_entry_id: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ):
        self.id = id
        self.vehicle_id = vehicle_id
        self.name = name
        self.interval_months = interval_months
        self.interval_mileage = interval_mileage
        self.last_service_entry_id = last_service_entry_id
        self.extra = extra or {}

    @property
    def is_inspection(self) -> bool:
        """True for roadworthiness inspections (HU/AU), matched on the name."""
        return isinstance(self.name, str) and "hu" in self.name.lower()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ServiceInterval":
        known, extra = split_known(data, SERVICE_INTERVAL_FIELDS)
        return cls(**known, extra=extra)

    def to_dict(self) -> Dict[str, Any]:
        return build_dict(self, SERVICE_INTERVAL_FIELDS, required=("id", "vehicle_id", "name"))

    def update(self, **updates: Any) -> None:
        apply_updates(self, SERVICE_INTERVAL_FIELDS, updates)

    def copy(self) -> "ServiceInterval":
        return copy.deepcopy(self)

    def __repr__(self) -> str:
        return f"ServiceInterval(id={self.id!r}, name={self.name!r})"
