"""Dataclasses for calculated service status."""

from dataclasses import dataclass
from typing import Any, Dict, Optional, TYPE_CHECKING

from .status import Status

if TYPE_CHECKING:
    from .service_entry import ServiceEntry
    from .service_interval import ServiceInterval
    from .vehicle import Vehicle


@dataclass
class ServiceDue:
    """Calculated due information for a service interval."""

    interval: "ServiceInterval"
    status: Status
    last_service_entry: Optional["ServiceEntry"] = None
    next_due_date: Optional[str] = None
    next_due_mileage: Optional[float] = None

    @property
    def is_due(self) -> bool:
        return self.status in (Status.OVERDUE, Status.DUE_SOON)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "interval": self.interval.to_dict(),
            "lastServiceEntry": (
                self.last_service_entry.to_dict() if self.last_service_entry else None
            ),
            "nextDueDate": self.next_due_date,
            "nextDueMileage": self.next_due_mileage,
            "status": self.status.name,
        }


@dataclass
class DueItem:
    """A service interval's due data paired with its vehicle."""

    vehicle: "Vehicle"
    due_data: ServiceDue


@dataclass
class VehicleSummary:
    """Worst status across a vehicle's intervals and the item behind it."""

    vehicle: "Vehicle"
    status: Status = Status.OK
    next_due: Optional[ServiceDue] = None
