"""
Due computation for service intervals.

Everything here is a pure read-only transform over vehicles, entries and
intervals. Missing or malformed input degrades to absent fields and an OK
status instead of raising.
"""

from datetime import date, datetime, timezone
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

from .calculations import (
    calc_due_date,
    calc_due_mileage,
    check_status,
    difference_in_days,
    is_finite_number,
    parse_date,
    registration_date,
)
from .service_due import DueItem, ServiceDue, VehicleSummary
from .service_entry import ServiceEntry
from .service_interval import ServiceInterval
from .status import Status
from .vehicle import Vehicle

Now = Union[datetime, date, str, None]


def resolve_now(now: Now = None) -> Optional[datetime]:
    """Reference instant as an aware UTC datetime; None reads the clock."""
    if now is None:
        return datetime.now(timezone.utc)
    return parse_date(now)


def _entry_timestamp(entry: ServiceEntry) -> float:
    parsed = parse_date(entry.date)
    return parsed.timestamp() if parsed else 0


def find_entry_by_id(entries: Iterable[ServiceEntry], entry_id: str) -> Optional[ServiceEntry]:
    """Find an entry by id."""
    for entry in entries:
        if entry.id == entry_id:
            return entry
    return None


def find_fallback_entry(
    interval: ServiceInterval, entries: Iterable[ServiceEntry]
) -> Optional[ServiceEntry]:
    """
    Most recent entry of the interval's vehicle, preferring entries whose
    type matches the interval name (case-insensitive).
    """
    if not interval.vehicle_id:
        return None
    vehicle_entries = sorted(
        (e for e in entries if e.vehicle_id == interval.vehicle_id),
        key=_entry_timestamp,
        reverse=True,
    )
    if not vehicle_entries:
        return None
    if isinstance(interval.name, str) and interval.name:
        target = interval.name.lower()
        for entry in vehicle_entries:
            if isinstance(entry.type, str) and entry.type.lower() == target:
                return entry
    return vehicle_entries[0]


def get_interval_due_data(
    interval: ServiceInterval,
    service_entries: Sequence[ServiceEntry] = (),
    vehicle: Optional[Vehicle] = None,
    now: Now = None,
) -> ServiceDue:
    """
    Calculate when a service interval is next due.

    Logic:
    - Baseline is the entry named by lastServiceEntryId, else the latest
      entry of the vehicle (same type as the interval name preferred)
    - Inspection (HU) intervals without a linked entry fall back to
      January 1st of the vehicle's year when no baseline entry exists
    - Due date = baseline date + intervalMonths
    - Due mileage = baseline mileage + intervalMileage
    - Status compares both against now and the vehicle's current mileage
    """
    moment = resolve_now(now)

    last_entry = None
    if interval.last_service_entry_id:
        last_entry = find_entry_by_id(service_entries, interval.last_service_entry_id)
    baseline = last_entry or find_fallback_entry(interval, service_entries)

    fallback_date = None
    if last_entry is None and baseline is None and interval.is_inspection and vehicle is not None:
        fallback_date = registration_date(vehicle.year)

    next_due_date = calc_due_date(
        interval.interval_months,
        baseline.date if baseline else None,
        fallback_date,
    )
    next_due_mileage = calc_due_mileage(
        baseline.mileage if baseline else None, interval.interval_mileage
    )

    current_mileage = vehicle.current_mileage if vehicle is not None else None
    mileage_diff = None
    if next_due_mileage is not None and is_finite_number(current_mileage):
        mileage_diff = next_due_mileage - current_mileage

    status = check_status(difference_in_days(next_due_date, moment), mileage_diff)

    return ServiceDue(
        interval=interval,
        status=status,
        last_service_entry=baseline,
        next_due_date=next_due_date,
        next_due_mileage=next_due_mileage,
    )


def collect_interval_due_items(
    intervals: Sequence[ServiceInterval] = (),
    service_entries: Sequence[ServiceEntry] = (),
    vehicles: Sequence[Vehicle] = (),
    now: Now = None,
) -> List[DueItem]:
    """Due data for every interval whose vehicle exists, in interval order."""
    reference = now if now is not None else resolve_now()
    by_id: Dict[str, Vehicle] = {}
    for vehicle in vehicles:
        by_id.setdefault(vehicle.id, vehicle)

    items = []
    for interval in intervals:
        vehicle = by_id.get(interval.vehicle_id)
        if vehicle is None:
            continue
        due_data = get_interval_due_data(interval, service_entries, vehicle, reference)
        items.append(DueItem(vehicle=vehicle, due_data=due_data))
    return items


def _sort_key(item: DueItem) -> Tuple[int, float]:
    due_date = parse_date(item.due_data.next_due_date)
    return (
        item.due_data.status.value,
        due_date.timestamp() if due_date else float("inf"),
    )


def sort_due_items(items: Iterable[DueItem]) -> List[DueItem]:
    """Sort by urgency (OVERDUE first), then by earliest due date."""
    return sorted(items, key=_sort_key)


def group_due_items(items: Iterable[DueItem]) -> Tuple[List[DueItem], List[DueItem]]:
    """Split into (overdue, due_soon), each sorted by urgency and date."""
    due = [i for i in sort_due_items(items) if i.due_data.is_due]
    overdue = [i for i in due if i.due_data.status == Status.OVERDUE]
    due_soon = [i for i in due if i.due_data.status == Status.DUE_SOON]
    return overdue, due_soon


def summarize_vehicles(
    vehicles: Iterable[Vehicle], items: Sequence[DueItem]
) -> List[VehicleSummary]:
    """One summary per vehicle, carrying its most urgent interval."""
    summaries = []
    for vehicle in vehicles:
        related = [i for i in items if i.vehicle.id == vehicle.id]
        if not related:
            summaries.append(VehicleSummary(vehicle=vehicle))
            continue
        first = sort_due_items(related)[0]
        summaries.append(
            VehicleSummary(
                vehicle=vehicle, status=first.due_data.status, next_due=first.due_data
            )
        )
    return summaries
