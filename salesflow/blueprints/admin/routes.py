"""
Admin routes.

Provides:
- GET /api/admin/activity-logs  ?page ?limit ?action ?entity_type ?user_id
- GET /api/admin/system-info    version, database facts, record counts

The activity trail is read-only here; nothing in the application updates or
deletes entries.
"""

from flask import Blueprint, jsonify, request
from flask_login import login_required

from ...accounts import activity_logs, system_info
from ...security import admin_required, current_actor

admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")


@admin_bp.route("/activity-logs", methods=["GET"])
@login_required
@admin_required
def list_activity_logs():
    args = request.args
    return jsonify(
        activity_logs(
            current_actor(),
            {"action": args.get("action"), "entity_type": args.get("entity_type"), "user_id": args.get("user_id")},
            page=args.get("page", 1),
            limit=args.get("limit", 50),
        )
    )


@admin_bp.route("/system-info", methods=["GET"])
@login_required
@admin_required
def get_system_info():
    return jsonify(system_info(current_actor()))
