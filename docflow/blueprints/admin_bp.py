"""
Admin Blueprint — projects, users and catalogs.

Endpoints:
    GET  /api/v1/projects                 projects visible to the caller
    GET  /api/v1/admin/projects           same listing, admin console path
    POST /api/v1/admin/projects           create project (admin)
    GET  /api/v1/projects/<pid>           single project

    GET  /api/v1/admin/users              list users (admin)
    POST /api/v1/admin/users              create user (admin)
    PUT  /api/v1/admin/users/<uid>        update user (admin)

    GET  /api/v1/catalogs                 discipline / nature / issuer lists
    GET  /api/v1/admin/catalogs           same lists, admin console path
    PUT  /api/v1/admin/catalogs           replace the given catalogs (admin)
           Body: { "discipline"?: [...], "nature"?: [...], "issuer"?: [...] }

Role checks live in the services; this module only shapes input/output.
"""

import logging

from flask import Blueprint, jsonify, request

from docflow.middleware.jwt_auth import current_actor
from docflow.models.catalog import VALID_CATALOGS
from docflow.services import catalog_service, project_service, user_service
from docflow.utils.errors import E, api_error, register_error_handlers

logger = logging.getLogger(__name__)

admin_bp = Blueprint("admin", __name__, url_prefix="/api/v1")
register_error_handlers(admin_bp)


# ═══════════════════════════════════════════════════════════════
# Projects
# ═══════════════════════════════════════════════════════════════
@admin_bp.route("/projects", methods=["GET"])
@admin_bp.route("/admin/projects", methods=["GET"])
def list_projects():
    projects = project_service.list_projects(current_actor())
    return jsonify({"items": [p.to_dict() for p in projects], "total": len(projects)}), 200


@admin_bp.route("/admin/projects", methods=["POST"])
def create_project():
    data = request.get_json(silent=True) or {}
    project = project_service.create_project(data, current_actor())
    return jsonify(project.to_dict()), 201


@admin_bp.route("/projects/<int:project_id>", methods=["GET"])
def get_project(project_id: int):
    return jsonify(project_service.get_project(project_id, current_actor()).to_dict()), 200


# ═══════════════════════════════════════════════════════════════
# Users
# ═══════════════════════════════════════════════════════════════
@admin_bp.route("/admin/users", methods=["GET"])
def list_users():
    users = user_service.list_users(current_actor())
    return jsonify({"items": [u.to_dict() for u in users], "total": len(users)}), 200


@admin_bp.route("/admin/users", methods=["POST"])
def create_user():
    data = request.get_json(silent=True) or {}
    user = user_service.create_user(data, current_actor())
    return jsonify(user.to_dict()), 201


@admin_bp.route("/admin/users/<int:user_id>", methods=["PUT"])
def update_user(user_id: int):
    data = request.get_json(silent=True) or {}
    user = user_service.update_user(user_id, data, current_actor())
    return jsonify(user.to_dict()), 200


# ═══════════════════════════════════════════════════════════════
# Catalogs
# ═══════════════════════════════════════════════════════════════
@admin_bp.route("/catalogs", methods=["GET"])
@admin_bp.route("/admin/catalogs", methods=["GET"])
def get_catalogs():
    return jsonify(catalog_service.get_catalogs()), 200


@admin_bp.route("/admin/catalogs", methods=["PUT"])
def replace_catalogs():
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict) or not data:
        return api_error(E.VALIDATION_REQUIRED, "At least one catalog is required")
    unknown = sorted(set(data) - VALID_CATALOGS)
    if unknown:
        return api_error(E.VALIDATION_INVALID, f"Unknown catalogs: {', '.join(unknown)}")
    if not all(isinstance(v, list) for v in data.values()):
        return api_error(E.VALIDATION_INVALID, "Catalog values must be lists")
    actor = current_actor()
    for catalog, values in data.items():
        catalog_service.replace_catalog(catalog, values, actor)
    return jsonify(catalog_service.get_catalogs()), 200
