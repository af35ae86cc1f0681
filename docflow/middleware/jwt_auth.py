"""
JWT Auth Middleware — resolves the acting user for every API request.

Parses ``Authorization: Bearer <token>``, loads the User and stores it in
``g.current_user``.  Services never read ``g``: blueprints pass the actor
explicitly into every call (see ``current_actor``).

Unauthenticated API requests outside JWT_SKIP_PREFIXES receive 401.
"""

import logging

import jwt as pyjwt
from flask import g, request

from docflow.models import db
from docflow.models.auth import User
from docflow.services.jwt_service import decode_access_token
from docflow.utils.errors import E, api_error

logger = logging.getLogger(__name__)

# Paths that skip JWT auth entirely
JWT_SKIP_PREFIXES = (
    "/api/v1/auth/login",
    "/api/v1/health",
)


def _resolve_user(token: str) -> User | None:
    try:
        payload = decode_access_token(token)
    except pyjwt.ExpiredSignatureError:
        logger.info("Rejected expired access token")
        return None
    except pyjwt.InvalidTokenError:
        logger.info("Rejected invalid access token")
        return None
    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        return None
    return db.session.get(User, user_id)


def init_jwt_middleware(app):
    """Register JWT middleware as a before_request hook."""

    @app.before_request
    def _jwt_auth():
        g.current_user = None

        path = request.path
        if not path.startswith("/api/v1/"):
            return None
        if request.method == "OPTIONS":
            return None
        for prefix in JWT_SKIP_PREFIXES:
            if path.startswith(prefix):
                return None

        auth_header = request.headers.get("Authorization", "")
        if not auth_header.startswith("Bearer "):
            return api_error(E.UNAUTHORIZED, "Authentication required")

        user = _resolve_user(auth_header[7:])
        if user is None:
            return api_error(E.UNAUTHORIZED, "Invalid or expired token")
        g.current_user = user
        return None


def current_actor() -> User:
    """The authenticated user of the current request."""
    return g.current_user
