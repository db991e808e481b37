"""
Vehicle service log.

This package tracks vehicles, their service history and recurring service
intervals:
- Status: Urgency levels (OVERDUE, DUE_SOON, OK)
- Vehicle, ServiceEntry, ServiceInterval: Stored records
- TrashedServiceEntry: Soft-deleted service entries
- ServiceDue, DueItem, VehicleSummary: Calculated due information
- StateManager: Owner of all collections, with persistence and import/export
"""

from .status import Status
from .vehicle import Vehicle
from .service_entry import EntryState, ServiceEntry, SERVICE_TYPES
from .service_interval import ServiceInterval
from .trash import TrashedServiceEntry, trash_entry
from .service_due import ServiceDue, DueItem, VehicleSummary
from .calculations import (
    add_months,
    calc_due_date,
    calc_due_mileage,
    check_status,
    difference_in_days,
    parse_date,
)
from .due import (
    get_interval_due_data,
    collect_interval_due_items,
    sort_due_items,
    group_due_items,
    summarize_vehicles,
)
from .storage import (
    DEFAULT_SCHEMA_VERSION,
    STORAGE_KEY,
    TRASH_STORAGE_KEY,
    KeyValueStore,
    MemoryStore,
    FileStore,
)
from .state import StateManager
from .backup import load_backup, save_backup, validate_backup, backup_filename
from .errors import CarlogError, BackupError

__all__ = [
    "Status",
    "Vehicle",
    "ServiceEntry",
    "SERVICE_TYPES",
    "ServiceInterval",
    "EntryState",
    "TrashedServiceEntry",
    "trash_entry",
    "ServiceDue",
    "DueItem",
    "VehicleSummary",
    "add_months",
    "calc_due_date",
    "calc_due_mileage",
    "check_status",
    "difference_in_days",
    "parse_date",
    "get_interval_due_data",
    "collect_interval_due_items",
    "sort_due_items",
    "group_due_items",
    "summarize_vehicles",
    "DEFAULT_SCHEMA_VERSION",
    "STORAGE_KEY",
    "TRASH_STORAGE_KEY",
    "KeyValueStore",
    "MemoryStore",
    "FileStore",
    "StateManager",
    "load_backup",
    "save_backup",
    "validate_backup",
    "backup_filename",
    "CarlogError",
    "BackupError",
]
