"""
Dashboard Blueprint — per-project workload overview.

Endpoints:
    GET /api/v1/projects/<pid>/dashboard
        Query params: window_days (optional, overrides DEADLINE_WINDOW_DAYS)
"""

from flask import Blueprint, jsonify, request

from docflow.middleware.jwt_auth import current_actor
from docflow.services.dashboard_service import build_dashboard
from docflow.utils.errors import E, api_error, register_error_handlers

dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api/v1")
register_error_handlers(dashboard_bp)


@dashboard_bp.route("/projects/<int:project_id>/dashboard", methods=["GET"])
def project_dashboard(project_id: int):
    window_days = request.args.get("window_days")
    if window_days is not None:
        try:
            window_days = int(window_days)
        except ValueError:
            return api_error(E.VALIDATION_INVALID, "window_days must be an integer")
        if window_days < 0:
            return api_error(E.VALIDATION_INVALID, "window_days cannot be negative")
    return jsonify(build_dashboard(project_id, current_actor(), window_days=window_days)), 200
