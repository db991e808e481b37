#!/usr/bin/env python3
"""
Unified CLI for the vehicle service log.

Commands:
  status          - Show which services are overdue or due soon
  vehicles        - List vehicles
  add-vehicle     - Add a vehicle
  update-miles    - Update current vehicle mileage
  delete-vehicle  - Delete a vehicle with its entries and intervals
  log             - Add a new service entry
  history         - View service history
  delete-entry    - Move a service entry to the trash
  trash           - List trashed service entries
  restore         - Restore a trashed service entry
  purge           - Permanently delete a trashed service entry
  empty-trash     - Permanently delete all trashed service entries
  intervals       - List service intervals with due data
  add-interval    - Add a service interval
  delete-interval - Delete a service interval
  export          - Write a backup file
  import          - Replace all data with a backup file
"""

import argparse
import sys
from datetime import date
from pathlib import Path
from tabulate import tabulate
from typing import List, Optional

import structlog

from carlog import (
    SERVICE_TYPES,
    BackupError,
    DueItem,
    FileStore,
    ServiceEntry,
    StateManager,
    backup_filename,
    collect_interval_due_items,
    get_interval_due_data,
    group_due_items,
    load_backup,
    save_backup,
    sort_due_items,
    summarize_vehicles,
    validate_backup,
)
from carlog.calculations import difference_in_days
from carlog.config import Settings
from carlog.due import resolve_now
from carlog.logging_setup import configure_logging

logger = structlog.get_logger(__name__)

# =============================================================================
# Formatting helpers
# =============================================================================


def format_mileage(mileage: Optional[float]) -> str:
    """Format mileage for display."""
    return f"{mileage:,.0f}" if mileage is not None else "-"


def format_cost(cost: Optional[float]) -> str:
    """Format cost for display."""
    return f"{cost:,.2f} €" if cost is not None else "-"


def format_days(days: Optional[float]) -> str:
    """Format remaining days for display (e.g., '3mo 15d' or '-2mo 5d')."""
    if days is None:
        return "-"

    sign = "-" if days < 0 else ""
    days = int(abs(days))
    months = days // 30
    remaining_days = days % 30
    if months > 0:
        return f"{sign}{months}mo {remaining_days}d"
    return f"{sign}{days}d"


def truncate(text: Optional[str], max_len: int = 30) -> str:
    """Truncate text with ellipsis if too long."""
    if text is None:
        return "-"
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."


# =============================================================================
# Table helpers
# =============================================================================


def make_due_table(items: List[DueItem], now) -> List[List[str]]:
    """Convert due items to table rows."""
    rows = []
    for item in items:
        due = item.due_data
        last = due.last_service_entry
        last_done = "-"
        if last is not None:
            parts = [last.date or "?"]
            if last.mileage is not None:
                parts.append(format_mileage(last.mileage))
            last_done = " @ ".join(parts)

        remaining_km = None
        if due.next_due_mileage is not None and item.vehicle.current_mileage is not None:
            remaining_km = due.next_due_mileage - item.vehicle.current_mileage

        rows.append(
            [
                item.vehicle.display_name,
                due.interval.name or "-",
                last_done,
                due.next_due_date or "-",
                format_mileage(due.next_due_mileage),
                format_days(difference_in_days(due.next_due_date, now)),
                format_mileage(remaining_km),
            ]
        )
    return rows


DUE_HEADERS = [
    "Vehicle",
    "Service",
    "Last Done",
    "Due (date)",
    "Due (km)",
    "Remaining (time)",
    "Remaining (km)",
]


def make_history_table(entries: List[ServiceEntry], vehicle_names) -> List[List[str]]:
    """Convert service entries to table rows."""
    rows = []
    for entry in entries:
        rows.append(
            [
                entry.id,
                entry.date or "-",
                vehicle_names.get(entry.vehicle_id, entry.vehicle_id),
                format_mileage(entry.mileage),
                entry.type or "-",
                entry.workshop or "-",
                format_cost(entry.cost),
                truncate(entry.notes),
            ]
        )
    return rows


HISTORY_HEADERS = ["Id", "Date", "Vehicle", "Mileage", "Type", "Workshop", "Cost", "Notes"]


def vehicle_names(manager: StateManager):
    return {v.id: v.display_name for v in manager.vehicles}


def require_vehicle(manager: StateManager, vehicle_id: str):
    vehicle = manager.get_vehicle(vehicle_id)
    if vehicle is None:
        print(f"Error: Unknown vehicle '{vehicle_id}'")
        if manager.vehicles:
            print("\nAvailable vehicles:")
            for v in manager.vehicles:
                print(f"  {v.id}  {v.display_name}")
    return vehicle


# =============================================================================
# Status command
# =============================================================================


def cmd_status(manager: StateManager, args):
    """Show which services are overdue or due soon."""
    now = resolve_now(args.now)
    if now is None:
        print(f"Error: Invalid date: {args.now}")
        return 1

    vehicles = manager.vehicles
    items = collect_interval_due_items(
        manager.service_intervals, manager.service_entries, vehicles, now
    )
    overdue, due_soon = group_due_items(items)

    print(f"As of: {now.date().isoformat()}")
    print(f"Vehicles: {len(vehicles)}")
    print(f"Service intervals: {len(items)}")
    print()

    if vehicles:
        rows = []
        for summary in summarize_vehicles(vehicles, items):
            next_due = summary.next_due
            rows.append(
                [
                    summary.vehicle.display_name,
                    format_mileage(summary.vehicle.current_mileage),
                    summary.status.label,
                    next_due.interval.name if next_due else "-",
                    (next_due.next_due_date if next_due else None) or "-",
                ]
            )
        headers = ["Vehicle", "Mileage", "Status", "Next Service", "Due (date)"]
        print(tabulate(rows, headers=headers, tablefmt="simple"))
        print()

    if overdue:
        print("OVERDUE:")
        print(tabulate(make_due_table(overdue, now), headers=DUE_HEADERS, tablefmt="simple"))
        print()

    if due_soon:
        print("DUE SOON:")
        print(tabulate(make_due_table(due_soon, now), headers=DUE_HEADERS, tablefmt="simple"))
        print()

    if not overdue and not due_soon:
        print("Nothing due.")

    return 0


# =============================================================================
# Vehicle commands
# =============================================================================


def cmd_vehicles(manager: StateManager, args):
    """List vehicles."""
    vehicles = manager.vehicles
    if not vehicles:
        print("No vehicles.")
        return 0

    rows = [
        [
            v.id,
            v.display_name,
            v.category or "-",
            v.license_plate or "-",
            v.year or "-",
            format_mileage(v.current_mileage),
        ]
        for v in vehicles
    ]
    headers = ["Id", "Name", "Category", "Plate", "Year", "Mileage"]
    print(tabulate(rows, headers=headers, tablefmt="simple"))
    return 0


def cmd_add_vehicle(manager: StateManager, args):
    """Add a vehicle."""
    vehicle = manager.add_vehicle(
        {
            "name": args.name,
            "category": args.category,
            "manufacturer": args.manufacturer,
            "model": args.model,
            "year": args.year,
            "licensePlate": args.plate,
            "vin": args.vin,
            "notes": args.notes,
            "currentMileage": args.mileage,
        }
    )
    print(f"Vehicle added: {vehicle.display_name} ({vehicle.id})")
    return 0


def cmd_update_miles(manager: StateManager, args):
    """Update current vehicle mileage."""
    vehicle = require_vehicle(manager, args.vehicle_id)
    if vehicle is None:
        return 1
    old_mileage = vehicle.current_mileage

    print(f"Vehicle: {vehicle.display_name}")
    print(f"Current mileage: {format_mileage(old_mileage)}")
    print(f"New mileage:     {format_mileage(args.mileage)}")
    if old_mileage is not None and args.mileage < old_mileage:
        print("Mileage cannot decrease; keeping the current value.")
    print()

    if args.dry_run:
        print("(dry run - no changes made)")
        return 0

    manager.update_vehicle(args.vehicle_id, current_mileage=args.mileage)
    print("Mileage updated.")
    return 0


def cmd_delete_vehicle(manager: StateManager, args):
    """Delete a vehicle with its entries and intervals."""
    vehicle = require_vehicle(manager, args.vehicle_id)
    if vehicle is None:
        return 1
    entries = len(manager.entries_for_vehicle(args.vehicle_id))
    intervals = len(manager.intervals_for_vehicle(args.vehicle_id))
    manager.delete_vehicle(args.vehicle_id)
    print(
        f"Deleted {vehicle.display_name} "
        f"({entries} service entries, {intervals} intervals)."
    )
    return 0


# =============================================================================
# Service entry commands
# =============================================================================


def cmd_log(manager: StateManager, args):
    """Add a new service entry."""
    vehicle = require_vehicle(manager, args.vehicle_id)
    if vehicle is None:
        return 1

    # Use the canonical spelling of known service types
    service_type = args.type
    for known in SERVICE_TYPES:
        if known.lower() == args.type.lower():
            service_type = known
            break

    entry = ServiceEntry(
        vehicle_id=vehicle.id,
        date=args.date or date.today().isoformat(),
        mileage=args.mileage,
        type=service_type,
        workshop=args.workshop,
        cost=args.cost,
        notes=args.notes,
    )

    print(f"Adding service entry for {vehicle.display_name}:")
    print(f"  Type:     {entry.type}")
    print(f"  Date:     {entry.date}")
    if entry.mileage is not None:
        print(f"  Mileage:  {format_mileage(entry.mileage)}")
    if entry.workshop:
        print(f"  Workshop: {entry.workshop}")
    if entry.notes:
        print(f"  Notes:    {entry.notes}")
    if entry.cost is not None:
        print(f"  Cost:     {format_cost(entry.cost)}")
    print()

    if args.dry_run:
        print("(dry run - no changes made)")
        return 0

    saved = manager.add_service_entry(entry)
    print(f"Entry saved ({saved.id}).")
    return 0


def cmd_history(manager: StateManager, args):
    """View service history."""
    if args.vehicle_id:
        if require_vehicle(manager, args.vehicle_id) is None:
            return 1
        entries = manager.entries_for_vehicle(args.vehicle_id)
    else:
        entries = manager.service_entries

    if args.type:
        entries = [e for e in entries if args.type.lower() in (e.type or "").lower()]
    if args.since:
        entries = [e for e in entries if (e.date or "") >= args.since]

    entries.sort(key=lambda e: (e.date or "", e.mileage or 0), reverse=not args.asc)

    total_cost = sum(e.cost for e in entries if e.cost is not None)
    print(f"Services: {len(entries)}")
    if total_cost > 0:
        print(f"Total cost: {format_cost(total_cost)}")
    print()

    if not entries:
        print("No service entries found.")
        return 0

    print(
        tabulate(
            make_history_table(entries, vehicle_names(manager)),
            headers=HISTORY_HEADERS,
            tablefmt="simple",
        )
    )
    return 0


def cmd_delete_entry(manager: StateManager, args):
    """Move a service entry to the trash."""
    if not any(e.id == args.entry_id for e in manager.service_entries):
        print(f"Error: Unknown service entry '{args.entry_id}'")
        return 1
    manager.delete_service_entry(args.entry_id)
    print("Entry moved to trash.")
    return 0


def cmd_trash(manager: StateManager, args):
    """List trashed service entries."""
    trash = manager.trash_service_entries
    if not trash:
        print("Trash is empty.")
        return 0

    names = vehicle_names(manager)
    rows = [
        [
            t.id,
            t.deleted_at or "-",
            t.entry.date or "-",
            names.get(t.entry.vehicle_id, t.entry.vehicle_id),
            t.entry.type or "-",
            format_mileage(t.entry.mileage),
        ]
        for t in trash
    ]
    headers = ["Id", "Deleted", "Date", "Vehicle", "Type", "Mileage"]
    print(tabulate(rows, headers=headers, tablefmt="simple"))
    return 0


def cmd_restore(manager: StateManager, args):
    """Restore a trashed service entry."""
    if not any(t.id == args.entry_id for t in manager.trash_service_entries):
        print(f"Error: '{args.entry_id}' is not in the trash")
        return 1
    manager.restore_service_entry(args.entry_id)
    print("Entry restored.")
    return 0


def cmd_purge(manager: StateManager, args):
    """Permanently delete a trashed service entry."""
    if not any(t.id == args.entry_id for t in manager.trash_service_entries):
        print(f"Error: '{args.entry_id}' is not in the trash")
        return 1
    manager.delete_service_entry_forever(args.entry_id)
    print("Entry deleted permanently.")
    return 0


def cmd_empty_trash(manager: StateManager, args):
    """Permanently delete all trashed service entries."""
    count = len(manager.trash_service_entries)
    manager.clear_trash_service_entries()
    print(f"Deleted {count} entries permanently.")
    return 0


# =============================================================================
# Interval commands
# =============================================================================


def cmd_intervals(manager: StateManager, args):
    """List service intervals with due data."""
    if args.vehicle_id:
        if require_vehicle(manager, args.vehicle_id) is None:
            return 1
        intervals = manager.intervals_for_vehicle(args.vehicle_id)
    else:
        intervals = manager.service_intervals

    if not intervals:
        print("No service intervals.")
        return 0

    now = resolve_now()
    items = sort_due_items(
        collect_interval_due_items(
            intervals, manager.service_entries, manager.vehicles, now
        )
    )

    rows = []
    for item in items:
        interval = item.due_data.interval
        every = []
        if interval.interval_mileage:
            every.append(f"{interval.interval_mileage:,.0f} km")
        if interval.interval_months:
            every.append(f"{interval.interval_months} mo")
        rows.append(
            [
                interval.id,
                item.vehicle.display_name,
                interval.name or "-",
                " / ".join(every) if every else "-",
                item.due_data.next_due_date or "-",
                format_mileage(item.due_data.next_due_mileage),
                item.due_data.status.label,
            ]
        )
    headers = ["Id", "Vehicle", "Service", "Interval", "Due (date)", "Due (km)", "Status"]
    print(tabulate(rows, headers=headers, tablefmt="simple"))
    return 0


def cmd_add_interval(manager: StateManager, args):
    """Add a service interval."""
    vehicle = require_vehicle(manager, args.vehicle_id)
    if vehicle is None:
        return 1
    if args.months is None and args.mileage is None:
        print("Warning: no --months or --mileage given; due data will be unknown")

    interval = manager.add_service_interval(
        {
            "vehicleId": vehicle.id,
            "name": args.name,
            "intervalMonths": args.months,
            "intervalMileage": args.mileage,
            "lastServiceEntryId": args.last_entry,
        }
    )
    due = get_interval_due_data(interval, manager.service_entries, vehicle)
    print(f"Interval added: {interval.name} ({interval.id})")
    print(f"  Next due: {due.next_due_date or '-'} / {format_mileage(due.next_due_mileage)} km")
    print(f"  Status:   {due.status.label}")
    return 0


def cmd_delete_interval(manager: StateManager, args):
    """Delete a service interval."""
    if not any(i.id == args.interval_id for i in manager.service_intervals):
        print(f"Error: Unknown service interval '{args.interval_id}'")
        return 1
    manager.delete_service_interval(args.interval_id)
    print("Interval deleted.")
    return 0


# =============================================================================
# Backup commands
# =============================================================================


def cmd_export(manager: StateManager, args):
    """Write a backup file."""
    path = args.file or Path(backup_filename())
    snapshot = manager.export_state()
    save_backup(path, snapshot)
    print(
        f"Exported {len(snapshot['vehicles'])} vehicles, "
        f"{len(snapshot['serviceEntries'])} service entries and "
        f"{len(snapshot['serviceIntervals'])} intervals to {path}"
    )
    return 0


def cmd_import(manager: StateManager, args):
    """Replace all data with a backup file."""
    try:
        payload = load_backup(args.file)
    except BackupError as e:
        logger.error("import_failed", file=str(args.file), error=str(e))
        print(f"Error: {e}")
        return 1

    errors = validate_backup(payload)
    if errors:
        print(f"{'Warning' if args.force else 'Error'}: {args.file} does not match the backup schema")
        for error in errors:
            print(f"  {error}")
        if not args.force:
            print("\nUse --force to import anyway.")
            return 1
        print()

    manager.apply_imported_data(payload)
    print(
        f"Imported {len(manager.vehicles)} vehicles, "
        f"{len(manager.service_entries)} service entries and "
        f"{len(manager.service_intervals)} intervals "
        f"(schema version {manager.schema_version})."
    )
    return 0


COMMANDS = {
    "status": cmd_status,
    "vehicles": cmd_vehicles,
    "add-vehicle": cmd_add_vehicle,
    "update-miles": cmd_update_miles,
    "delete-vehicle": cmd_delete_vehicle,
    "log": cmd_log,
    "history": cmd_history,
    "delete-entry": cmd_delete_entry,
    "trash": cmd_trash,
    "restore": cmd_restore,
    "purge": cmd_purge,
    "empty-trash": cmd_empty_trash,
    "intervals": cmd_intervals,
    "add-interval": cmd_add_interval,
    "delete-interval": cmd_delete_interval,
    "export": cmd_export,
    "import": cmd_import,
}


# =============================================================================
# Main
# =============================================================================


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Vehicle service log",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s add-vehicle "Golf" --manufacturer VW --year 2019 --mileage 42000
  %(prog)s add-interval <vehicle-id> "HU/AU" --months 24
  %(prog)s add-interval <vehicle-id> "Ölwechsel" --months 12 --mileage 15000
  %(prog)s log <vehicle-id> "Ölwechsel" --mileage 43000 --cost 89.90
  %(prog)s status
  %(prog)s status --now 2025-06-01
  %(prog)s history <vehicle-id> --since 2024-01-01
  %(prog)s export backup.json
""",
    )
    parser.add_argument(
        "--data-dir",
        type=Path,
        help="Directory holding the stored state (default: $CARLOG_DATA_DIR or ~/.carlog)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # Status subcommand
    status_parser = subparsers.add_parser(
        "status", help="Show which services are overdue or due soon"
    )
    status_parser.add_argument(
        "--now",
        type=str,
        help="Reference date in YYYY-MM-DD format (default: today)",
    )

    # Vehicle subcommands
    subparsers.add_parser("vehicles", help="List vehicles")

    add_vehicle_parser = subparsers.add_parser("add-vehicle", help="Add a vehicle")
    add_vehicle_parser.add_argument("name", type=str, help="Vehicle name")
    add_vehicle_parser.add_argument("--category", type=str, help="e.g. 'PKW', 'Motorrad'")
    add_vehicle_parser.add_argument("--manufacturer", type=str)
    add_vehicle_parser.add_argument("--model", type=str)
    add_vehicle_parser.add_argument("--year", type=int, help="First registration year")
    add_vehicle_parser.add_argument("--plate", type=str, help="License plate")
    add_vehicle_parser.add_argument("--vin", type=str)
    add_vehicle_parser.add_argument("--notes", type=str)
    add_vehicle_parser.add_argument("--mileage", type=float, help="Current mileage")

    update_miles_parser = subparsers.add_parser(
        "update-miles", help="Update current vehicle mileage"
    )
    update_miles_parser.add_argument("vehicle_id", type=str)
    update_miles_parser.add_argument("mileage", type=float, help="Current mileage")
    update_miles_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be updated without saving",
    )

    delete_vehicle_parser = subparsers.add_parser(
        "delete-vehicle", help="Delete a vehicle with its entries and intervals"
    )
    delete_vehicle_parser.add_argument("vehicle_id", type=str)

    # Log subcommand
    log_parser = subparsers.add_parser("log", help="Add a new service entry")
    log_parser.add_argument("vehicle_id", type=str)
    log_parser.add_argument(
        "type",
        type=str,
        help=f"Service type ({', '.join(SERVICE_TYPES)} or free text)",
    )
    log_parser.add_argument(
        "--date",
        type=str,
        help="Service date in YYYY-MM-DD format (default: today)",
    )
    log_parser.add_argument("--mileage", type=float, help="Mileage at time of service")
    log_parser.add_argument("--workshop", type=str, help="Workshop or organisation")
    log_parser.add_argument("--notes", type=str, help="Notes about the service")
    log_parser.add_argument("--cost", type=float, help="Cost of service")
    log_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be added without saving",
    )

    # History subcommand
    history_parser = subparsers.add_parser("history", help="View service history")
    history_parser.add_argument("vehicle_id", type=str, nargs="?")
    history_parser.add_argument(
        "--type",
        type=str,
        help="Filter to types containing text (case-insensitive, e.g. 'öl')",
    )
    history_parser.add_argument(
        "--since",
        type=str,
        help="Show only entries since date (YYYY-MM-DD)",
    )
    history_parser.add_argument(
        "--asc",
        action="store_true",
        help="Sort ascending instead of descending",
    )

    # Trash subcommands
    delete_entry_parser = subparsers.add_parser(
        "delete-entry", help="Move a service entry to the trash"
    )
    delete_entry_parser.add_argument("entry_id", type=str)
    subparsers.add_parser("trash", help="List trashed service entries")
    restore_parser = subparsers.add_parser("restore", help="Restore a trashed entry")
    restore_parser.add_argument("entry_id", type=str)
    purge_parser = subparsers.add_parser(
        "purge", help="Permanently delete a trashed entry"
    )
    purge_parser.add_argument("entry_id", type=str)
    subparsers.add_parser("empty-trash", help="Permanently delete all trashed entries")

    # Interval subcommands
    intervals_parser = subparsers.add_parser(
        "intervals", help="List service intervals with due data"
    )
    intervals_parser.add_argument("vehicle_id", type=str, nargs="?")

    add_interval_parser = subparsers.add_parser(
        "add-interval", help="Add a service interval"
    )
    add_interval_parser.add_argument("vehicle_id", type=str)
    add_interval_parser.add_argument(
        "name",
        type=str,
        help="Interval name; matched against entry types, 'HU' marks inspections",
    )
    add_interval_parser.add_argument("--months", type=float, help="Interval in months")
    add_interval_parser.add_argument("--mileage", type=float, help="Interval in km")
    add_interval_parser.add_argument(
        "--last-entry", type=str, help="Id of the service entry to count from"
    )

    delete_interval_parser = subparsers.add_parser(
        "delete-interval", help="Delete a service interval"
    )
    delete_interval_parser.add_argument("interval_id", type=str)

    # Backup subcommands
    export_parser = subparsers.add_parser("export", help="Write a backup file")
    export_parser.add_argument(
        "file",
        type=Path,
        nargs="?",
        help="Output file, .json or .yaml (default: cars-service-log-backup-<date>.json)",
    )
    import_parser = subparsers.add_parser(
        "import", help="Replace all data with a backup file"
    )
    import_parser.add_argument("file", type=Path)
    import_parser.add_argument(
        "--force",
        action="store_true",
        help="Import even if the file does not match the backup schema",
    )

    return parser


def main(argv=None, settings: Optional[Settings] = None):
    args = build_parser().parse_args(argv)

    settings = settings or Settings.from_env()
    configure_logging(settings.log_level, settings.log_json)

    data_dir = args.data_dir or settings.data_dir
    manager = StateManager(FileStore(data_dir)).load()

    return COMMANDS[args.command](manager, args)


if __name__ == "__main__":
    sys.exit(main() or 0)
