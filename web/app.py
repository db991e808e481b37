"""Flask JSON API for the vehicle service log."""

import json
from typing import Optional

import structlog
from flask import Flask, Response, abort, jsonify, make_response, request

from carlog import (
    FileStore,
    StateManager,
    backup_filename,
    collect_interval_due_items,
    group_due_items,
    summarize_vehicles,
    validate_backup,
)
from carlog.config import Settings
from carlog.due import resolve_now
from carlog.logging_setup import configure_logging

logger = structlog.get_logger(__name__)


def due_item_dict(item):
    return {"vehicleId": item.vehicle.id, "dueData": item.due_data.to_dict()}


def create_app(
    manager: Optional[StateManager] = None, settings: Optional[Settings] = None
) -> Flask:
    """Build the app around one StateManager (a file-backed one by default)."""
    settings = settings or Settings.from_env()
    if manager is None:
        configure_logging(settings.log_level, settings.log_json)
        manager = StateManager(FileStore(settings.data_dir)).load()

    app = Flask(__name__)
    app.secret_key = settings.secret_key
    app.config["STATE_MANAGER"] = manager

    def reference_now():
        """?now=YYYY-MM-DD, or the current time. Unparsable dates abort with 400."""
        raw = request.args.get("now") or None
        now = resolve_now(raw)
        if now is None:
            abort(make_response(jsonify({"error": f"Invalid date: {raw}"}), 400))
        return now

    def due_items():
        return collect_interval_due_items(
            manager.service_intervals,
            manager.service_entries,
            manager.vehicles,
            reference_now(),
        )

    @app.route("/api/vehicles")
    def vehicles():
        """Dashboard: all vehicles with their most urgent service."""
        summaries = summarize_vehicles(manager.vehicles, due_items())
        return jsonify(
            [
                {
                    "vehicle": s.vehicle.to_dict(),
                    "status": s.status.name,
                    "nextDue": s.next_due.to_dict() if s.next_due else None,
                }
                for s in summaries
            ]
        )

    @app.route("/api/due")
    def due():
        """Overdue and due-soon services across all vehicles."""
        overdue, due_soon = group_due_items(due_items())
        return jsonify(
            {
                "overdue": [due_item_dict(i) for i in overdue],
                "dueSoon": [due_item_dict(i) for i in due_soon],
                "serviceAlerts": len(overdue) + len(due_soon),
            }
        )

    @app.route("/api/vehicles/<vehicle_id>")
    def vehicle_detail(vehicle_id: str):
        """Vehicle with its service entries and interval due data."""
        vehicle = manager.get_vehicle(vehicle_id)
        if vehicle is None:
            return jsonify({"error": f"Vehicle '{vehicle_id}' not found"}), 404

        entries = manager.entries_for_vehicle(vehicle_id)
        entries.sort(key=lambda e: e.date or "", reverse=True)
        items = collect_interval_due_items(
            manager.intervals_for_vehicle(vehicle_id),
            manager.service_entries,
            [vehicle],
            reference_now(),
        )
        return jsonify(
            {
                "vehicle": vehicle.to_dict(),
                "serviceEntries": [e.to_dict() for e in entries],
                "intervals": [i.due_data.to_dict() for i in items],
            }
        )

    @app.route("/api/vehicles/<vehicle_id>/mileage", methods=["POST"])
    def update_mileage(vehicle_id: str):
        """Update mileage; lower values than the stored one are ignored."""
        if manager.get_vehicle(vehicle_id) is None:
            return jsonify({"error": f"Vehicle '{vehicle_id}' not found"}), 404

        body = request.get_json(silent=True)
        if not isinstance(body, dict):
            return jsonify({"error": "Request body must be a JSON object"}), 400
        mileage = body.get("currentMileage")
        try:
            mileage = float(mileage)
        except (TypeError, ValueError):
            return jsonify({"error": "Invalid mileage value"}), 400

        manager.update_vehicle(vehicle_id, current_mileage=mileage)
        return jsonify(manager.get_vehicle(vehicle_id).to_dict())

    @app.route("/api/export")
    def export():
        """Download the current state as a backup file."""
        payload = json.dumps(manager.export_state(), indent=2, ensure_ascii=False)
        return Response(
            payload,
            mimetype="application/json",
            headers={
                "Content-Disposition": f'attachment; filename="{backup_filename()}"'
            },
        )

    @app.route("/api/import", methods=["POST"])
    def import_state():
        """Replace the state with an uploaded backup."""
        payload = request.get_json(silent=True)
        if not isinstance(payload, dict):
            logger.warning("import_rejected", reason="not a JSON object")
            return jsonify({"error": "Backup must be a JSON object"}), 400

        warnings = validate_backup(payload)
        manager.apply_imported_data(payload)
        return jsonify(
            {
                "schemaVersion": manager.schema_version,
                "vehicles": len(manager.vehicles),
                "serviceEntries": len(manager.service_entries),
                "serviceIntervals": len(manager.service_intervals),
                "warnings": warnings,
            }
        )

    return app


if __name__ == "__main__":
    # Using 5001 to avoid conflict with macOS AirPlay Receiver on 5000
    create_app().run(debug=True, host="0.0.0.0", port=5001)
