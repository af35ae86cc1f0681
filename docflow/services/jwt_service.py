"""
Access tokens for the mocked login.

There is no password and no refresh flow: ``POST /auth/login`` looks the
user up by email and hands back one HS256 access token. The middleware
resolves ``sub`` to a User row on every request, so the roles carried in
the token are informational only and role edits apply immediately.

Payload::

    {"sub": "<user id>", "roles": [...], "project_id": <int | null>,
     "type": "access", "iat": ..., "exp": ..., "jti": "<uuid4>"}
"""

import uuid
from datetime import datetime, timedelta, timezone

import jwt
from flask import current_app

ALGORITHM = "HS256"
TOKEN_TYPE = "access"
DEFAULT_ACCESS_EXPIRES = 8 * 3600


def _secret() -> str:
    return current_app.config.get("JWT_SECRET_KEY") or current_app.config["SECRET_KEY"]


def access_expires() -> int:
    return int(current_app.config.get("JWT_ACCESS_EXPIRES") or DEFAULT_ACCESS_EXPIRES)


def generate_access_token(user) -> str:
    issued = datetime.now(timezone.utc)
    claims = {
        "sub": str(user.id),
        "roles": list(user.roles or []),
        "project_id": user.project_id,
        "type": TOKEN_TYPE,
        "iat": issued,
        "exp": issued + timedelta(seconds=access_expires()),
        "jti": str(uuid.uuid4()),
    }
    return jwt.encode(claims, _secret(), algorithm=ALGORITHM)


def issue_token_response(user) -> dict:
    return {
        "access_token": generate_access_token(user),
        "token_type": "Bearer",
        "expires_in": access_expires(),
    }


def decode_access_token(token: str) -> dict:
    """Verify signature, expiry and token type.

    Raises:
        jwt.InvalidTokenError (or a subclass such as ExpiredSignatureError).
    """
    claims = jwt.decode(token, _secret(), algorithms=[ALGORITHM])
    if claims.get("type") != TOKEN_TYPE:
        raise jwt.InvalidTokenError(f"Unexpected token type: {claims.get('type')!r}")
    return claims
