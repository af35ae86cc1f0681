"""Standardised API error responses.

Usage
-----
    from docflow.utils.errors import api_error, E

    return api_error(E.NOT_FOUND, "Document not found")
    return api_error(E.VALIDATION_REQUIRED, "status is required")
    return api_error(E.MIXED_BATCH_STATUS, str(exc), details={"statuses": [...]})
"""

from __future__ import annotations

from flask import jsonify


# ── Error code constants ──────────────────────────────────────────────
class E:
    """Machine-readable error code constants.

    Convention:
     • ERR_  prefix for every application error
    """

    # Validation – HTTP 400 (malformed) / 422 (business rule)
    VALIDATION_REQUIRED = "ERR_VALIDATION_REQUIRED"
    VALIDATION_INVALID = "ERR_VALIDATION_INVALID"
    VALIDATION_CONSTRAINT = "ERR_VALIDATION_CONSTRAINT"

    # Authentication / permissions – HTTP 401 / 403
    UNAUTHORIZED = "ERR_UNAUTHORIZED"
    FORBIDDEN = "ERR_FORBIDDEN"

    # Not-found – HTTP 404
    NOT_FOUND = "ERR_NOT_FOUND"

    # Conflict – HTTP 409
    CONFLICT_DUPLICATE = "ERR_CONFLICT_DUPLICATE"
    CONFLICT_STATE = "ERR_CONFLICT_STATE"
    INVALID_TRANSITION = "ERR_INVALID_TRANSITION"
    MIXED_BATCH_STATUS = "ERR_MIXED_BATCH_STATUS"

    # Server – HTTP 500
    DATABASE = "ERR_DATABASE"
    INTERNAL = "ERR_INTERNAL"


# ── Default HTTP status mapping ───────────────────────────────────────
_DEFAULT_STATUS: dict[str, int] = {
    E.VALIDATION_REQUIRED: 400,
    E.VALIDATION_INVALID: 422,
    E.VALIDATION_CONSTRAINT: 400,
    E.UNAUTHORIZED: 401,
    E.FORBIDDEN: 403,
    E.NOT_FOUND: 404,
    E.CONFLICT_DUPLICATE: 409,
    E.CONFLICT_STATE: 409,
    E.INVALID_TRANSITION: 409,
    E.MIXED_BATCH_STATUS: 409,
    E.DATABASE: 500,
    E.INTERNAL: 500,
}


def api_error(
    code: str,
    message: str,
    *,
    status: int | None = None,
    details: dict | None = None,
):
    """Return a standard JSON error response.

    Parameters
    ----------
    code : str
        Machine-readable error code (use ``E.*`` constants).
    message : str
        Human-readable explanation for developers / UI.
    status : int, optional
        HTTP status override.  Falls back to ``_DEFAULT_STATUS[code]``,
        then to ``400``.
    details : dict, optional
        Extra structured payload (field errors, offending statuses, etc.).

    Returns
    -------
    tuple[Response, int]
        ``(jsonify(body), http_status)`` – drop-in for Flask views.
    """

    http_status = status or _DEFAULT_STATUS.get(code, 400)

    body: dict = {
        "error": message,
        "code": code,
    }
    if details:
        body["details"] = details

    return jsonify(body), http_status


def register_error_handlers(bp):
    """Attach the platform exception → HTTP mapping to a blueprint.

    Every API blueprint calls this once so services can simply raise.
    """
    from docflow.core.exceptions import (
        ConflictError,
        InvalidTransitionError,
        MixedBatchStatusError,
        NotFoundError,
        PermissionDeniedError,
        ValidationError,
    )

    @bp.errorhandler(NotFoundError)
    def _handle_not_found(exc):
        return api_error(E.NOT_FOUND, f"{exc.resource} not found")

    @bp.errorhandler(ValidationError)
    def _handle_validation(exc):
        return api_error(E.VALIDATION_INVALID, str(exc), details=exc.details)

    @bp.errorhandler(ConflictError)
    def _handle_conflict(exc):
        code = E.CONFLICT_STATE if exc.field == "last_modified" else E.CONFLICT_DUPLICATE
        return api_error(code, str(exc), details={"field": exc.field})

    @bp.errorhandler(PermissionDeniedError)
    def _handle_forbidden(exc):
        return api_error(E.FORBIDDEN, str(exc))

    @bp.errorhandler(InvalidTransitionError)
    def _handle_invalid_transition(exc):
        return api_error(
            E.INVALID_TRANSITION,
            str(exc),
            details={
                "current_status": exc.current_status,
                "target_status": exc.target_status,
                "target_qualification": exc.target_qualification,
            },
        )

    @bp.errorhandler(MixedBatchStatusError)
    def _handle_mixed_batch(exc):
        return api_error(E.MIXED_BATCH_STATUS, str(exc), details={"statuses": exc.statuses})
