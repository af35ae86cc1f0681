"""
Auth Blueprint — mocked login for the document workflow.

Endpoints:
  POST /api/v1/auth/login   — Email of a registered user → access token
  GET  /api/v1/auth/me      — Current user profile

There are no passwords: any registered email logs in.  The token only
identifies the user; roles are re-read from the database on every request.
"""

import logging

from flask import Blueprint, jsonify, request

from docflow.middleware.jwt_auth import current_actor
from docflow.services.jwt_service import issue_token_response
from docflow.services.user_service import find_by_email
from docflow.utils.errors import E, api_error, register_error_handlers

logger = logging.getLogger(__name__)

auth_bp = Blueprint("auth", __name__, url_prefix="/api/v1/auth")
register_error_handlers(auth_bp)


# ═══════════════════════════════════════════════════════════════
# POST /api/v1/auth/login
# ═══════════════════════════════════════════════════════════════
@auth_bp.route("/login", methods=["POST"])
def login():
    """
    Log in by email, return an access token and the user profile.

    Body: { "email": "..." }
    """
    data = request.get_json(silent=True) or {}
    email = (data.get("email") or "").strip().lower()
    if not email:
        return api_error(E.VALIDATION_REQUIRED, "Email is required")

    user = find_by_email(email)
    if user is None:
        logger.info("Login rejected for unknown email")
        return api_error(E.UNAUTHORIZED, "Unknown user")

    logger.info("User %s logged in", user.email, extra={"actor_id": user.id, "action": "login"})
    body = issue_token_response(user)
    body["user"] = user.to_dict()
    return jsonify(body), 200


# ═══════════════════════════════════════════════════════════════
# GET /api/v1/auth/me
# ═══════════════════════════════════════════════════════════════
@auth_bp.route("/me", methods=["GET"])
def me():
    return jsonify(current_actor().to_dict()), 200
