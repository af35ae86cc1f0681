"""
Document Workflow Blueprint.

All document endpoints live under /api/v1.  Documents are addressed by
their UUID; project scoping is enforced in document_service (a document of
another project is reported as 404).

Endpoints:
    GET    /projects/<pid>/documents
           Query params: status, discipline, type, q, version, view,
                         sort, direction, limit, offset
    POST   /projects/<pid>/documents
           Body: { "code", "title", "type", "discipline", "nature", "issuer",
                   "forecast_date"?, "ge_code"?, ..., "attachment"? }

    GET    /documents/<id>                ?include=versions
    GET    /documents/<id>/actions        legal actions for the caller
    GET    /documents/<id>/history        version entries visible to the caller
    POST   /documents/<id>/transition
           Body: { "status", "qualification", "comment",
                   "attachment"?, "expected_last_modified"? }
    PATCH  /documents/<id>/metadata
           Body: { "fields": {...}, "expected_last_modified"? }
    POST   /documents/<id>/reissue
           Body: { "comment"?, "label"?, "attachment"?, "expected_last_modified"? }

    POST   /documents/batch-actions
           Body: { "document_ids": [...] }
    POST   /documents/batch-transition
           Body: { "document_ids": [...], "status", "qualification",
                   "items"?: [{ "id", "comment"?, "attachment"? }] }

Attachments: an object ``{"name", "url"?}`` is a new upload; a plain string
forwards the name of an earlier attachment.

Layer contract:
    - Blueprint: parse + validate input shape, call service, return JSON.
    - NO db.session calls here — all writes owned by document_service.
    - NO inline role/permission checks — policy lives in workflow_policy.
"""

import logging

from flask import Blueprint, current_app, jsonify, request

from docflow.blueprints import paginate_query
from docflow.middleware.jwt_auth import current_actor
from docflow.services import document_service, workflow_policy
from docflow.services.document_lifecycle import UploadedFile
from docflow.utils.errors import E, api_error, register_error_handlers
from docflow.utils.helpers import parse_date_input

logger = logging.getLogger(__name__)

document_bp = Blueprint("documents", __name__, url_prefix="/api/v1")
register_error_handlers(document_bp)

_DATE_FIELDS = ("forecast_date",)


# ── Helpers ────────────────────────────────────────────────────────────────────


def _parse_attachment(raw):
    """Map the JSON attachment shape onto the lifecycle's attachment types.

    Returns (attachment, error_response).
    """
    if raw is None:
        return None, None
    if isinstance(raw, str):
        return raw, None
    if isinstance(raw, dict):
        name = raw.get("name")
        if not isinstance(name, str) or not name.strip():
            return None, api_error(E.VALIDATION_REQUIRED, "attachment.name is required")
        return UploadedFile(name=name.strip(), url=raw.get("url")), None
    return None, api_error(E.VALIDATION_INVALID, "attachment must be an object or a string")


def _text(data: dict, key: str):
    """Read an optional string field.  Returns (value, error_response)."""
    value = data.get(key)
    if value is None:
        return "", None
    if not isinstance(value, str):
        return None, api_error(E.VALIDATION_INVALID, f"{key} must be a string", details={key: "invalid"})
    return value.strip(), None


def _required_target(data: dict):
    """Parse status + qualification.  Returns (status, qualification, error_response)."""
    status, err = _text(data, "status")
    if err:
        return None, None, err
    qualification, err = _text(data, "qualification")
    if err:
        return None, None, err
    if not status or not qualification:
        return None, None, api_error(E.VALIDATION_REQUIRED, "status and qualification are required")
    return status, qualification, None


def _document_body(document, actor) -> dict:
    """Document JSON with the history entries ``actor`` may see."""
    body = document.to_dict()
    body["versions"] = [v.to_dict() for v in workflow_policy.visible_versions(actor, document)]
    return body


def _parse_dates(data: dict):
    """Convert known date fields in place.  Returns an error response or None."""
    for field in _DATE_FIELDS:
        if field in data and data[field] not in (None, ""):
            try:
                data[field] = parse_date_input(data[field])
            except ValueError as exc:
                return api_error(E.VALIDATION_INVALID, f"{field}: {exc}")
    return None


def _document_ids(data: dict):
    ids = data.get("document_ids")
    if not isinstance(ids, list) or not ids:
        return None, api_error(E.VALIDATION_REQUIRED, "document_ids must be a non-empty list")
    max_batch = current_app.config.get("MAX_BATCH_SIZE", 200)
    if len(ids) > max_batch:
        return None, api_error(
            E.VALIDATION_CONSTRAINT,
            f"At most {max_batch} documents per batch",
            details={"max_batch_size": max_batch},
        )
    return ids, None


# ── Project documents ──────────────────────────────────────────────────────────


@document_bp.route("/projects/<int:project_id>/documents", methods=["GET"])
def list_documents(project_id: int):
    filters = {
        key: request.args.get(key)
        for key in ("status", "discipline", "type", "q", "version", "view", "sort", "direction")
    }
    query = document_service.list_documents(project_id, current_actor(), filters)
    items, page = paginate_query(query)
    return jsonify({"items": [d.to_dict() for d in items], **page}), 200


@document_bp.route("/projects/<int:project_id>/documents", methods=["POST"])
def create_document(project_id: int):
    data = request.get_json(silent=True) or {}
    attachment, err = _parse_attachment(data.pop("attachment", None))
    if err:
        return err
    err = _parse_dates(data)
    if err:
        return err
    actor = current_actor()
    document = document_service.create(project_id, data, actor, attachment=attachment)
    return jsonify(_document_body(document, actor)), 201


# ── Single document ────────────────────────────────────────────────────────────


@document_bp.route("/documents/<document_id>", methods=["GET"])
def get_document(document_id: str):
    actor = current_actor()
    document = document_service.get_document(document_id, actor)
    body = document.to_dict()
    if request.args.get("include") == "versions":
        body["versions"] = [v.to_dict() for v in document_service.get_history(document_id, actor)]
    return jsonify(body), 200


@document_bp.route("/documents/<document_id>/actions", methods=["GET"])
def document_actions(document_id: str):
    document, actions = document_service.get_actions(document_id, current_actor())
    return jsonify({
        "document_id": document.id,
        "current_status": document.current_status,
        "actions": [a.to_dict() for a in actions],
    }), 200


@document_bp.route("/documents/<document_id>/history", methods=["GET"])
def document_history(document_id: str):
    versions = document_service.get_history(document_id, current_actor())
    return jsonify({"items": [v.to_dict() for v in versions], "total": len(versions)}), 200


@document_bp.route("/documents/<document_id>/transition", methods=["POST"])
def transition_document(document_id: str):
    """Apply one workflow action.

    Returns 200 with the document and, when the move sent it to the
    client, the generated transmittal.
    """
    data = request.get_json(silent=True) or {}
    status, qualification, err = _required_target(data)
    if err:
        return err
    comment, err = _text(data, "comment")
    if err:
        return err
    attachment, err = _parse_attachment(data.get("attachment"))
    if err:
        return err

    actor = current_actor()
    document, transmittal = document_service.transition(
        document_id,
        status,
        qualification,
        comment,
        actor,
        attachment,
        expected_last_modified=data.get("expected_last_modified"),
    )
    return jsonify({
        "document": _document_body(document, actor),
        "transmittal": transmittal.to_dict() if transmittal else None,
    }), 200


@document_bp.route("/documents/<document_id>/metadata", methods=["PATCH"])
def update_metadata(document_id: str):
    data = request.get_json(silent=True) or {}
    fields = data.get("fields")
    if not isinstance(fields, dict) or not fields:
        return api_error(E.VALIDATION_REQUIRED, "fields must be a non-empty object")
    err = _parse_dates(fields)
    if err:
        return err

    result = document_service.update_metadata(
        document_id, fields, current_actor(),
        expected_last_modified=data.get("expected_last_modified"),
    )
    return jsonify({
        "document": result.document.to_dict(),
        "changed": result.changed,
        "changes": [c.to_dict() for c in result.changes],
        "version": result.version.to_dict() if result.version else None,
    }), 200


@document_bp.route("/documents/<document_id>/reissue", methods=["POST"])
def reissue_document(document_id: str):
    data = request.get_json(silent=True) or {}
    comment, err = _text(data, "comment")
    if err:
        return err
    label, err = _text(data, "label")
    if err:
        return err
    attachment, err = _parse_attachment(data.get("attachment"))
    if err:
        return err
    document, version = document_service.reissue(
        document_id,
        current_actor(),
        comment,
        label=label or None,
        attachment=attachment,
        expected_last_modified=data.get("expected_last_modified"),
    )
    return jsonify({"document": document.to_dict(), "version": version.to_dict()}), 200


# ── Batch ──────────────────────────────────────────────────────────────────────


@document_bp.route("/documents/batch-actions", methods=["POST"])
def batch_actions():
    """Actions applicable to the whole selection; 409 when statuses differ."""
    data = request.get_json(silent=True) or {}
    ids, err = _document_ids(data)
    if err:
        return err
    actions = document_service.get_batch_actions(ids, current_actor())
    return jsonify({"actions": [a.to_dict() for a in actions]}), 200


@document_bp.route("/documents/batch-transition", methods=["POST"])
def batch_transition():
    """Apply one action to every selected document, all or nothing."""
    data = request.get_json(silent=True) or {}
    ids, err = _document_ids(data)
    if err:
        return err
    status, qualification, err = _required_target(data)
    if err:
        return err

    items = data.get("items") or []
    if not isinstance(items, list) or not all(isinstance(i, dict) for i in items):
        return api_error(E.VALIDATION_INVALID, "items must be a list of objects")
    parsed = []
    for item in items:
        comment, err = _text(item, "comment")
        if err:
            return err
        attachment, err = _parse_attachment(item.get("attachment"))
        if err:
            return err
        parsed.append({"id": item.get("id"), "comment": comment or None, "attachment": attachment})

    result = document_service.batch_transition(ids, status, qualification, current_actor(), parsed)
    return jsonify(result.to_dict()), 200
