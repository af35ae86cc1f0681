"""
Document Service — store boundary of the document workflow.

Loads documents and actors, hands them to the pure lifecycle services
(workflow_policy, document_lifecycle, batch_reconciliation, transmittal,
metadata_audit) and persists every updated or created document in ONE
commit per operation.

Design decisions:
    - Project scoping: a document of a project the actor cannot access is
      reported as NotFoundError (no existence leak).
    - Optimistic concurrency: mutating calls accept ``expected_last_modified``;
      a stale token raises ConflictError before the core runs.
    - Transmittal codes are sequential per project (code_generator).
    - On any commit failure the session is rolled back; nothing is retried.

Layer contract:
    - Blueprints call these functions and never touch db.session.
    - All db.session.commit() calls for documents live here.
"""

from __future__ import annotations

import logging

from sqlalchemy import asc, desc, func, or_
from sqlalchemy.exc import IntegrityError

from docflow.core.exceptions import ConflictError, NotFoundError, ValidationError
from docflow.models import db
from docflow.models.document import (
    VALID_DOCUMENT_TYPES,
    VALID_STATUSES,
    Document,
    DocumentType,
    WorkflowStatus,
)
from docflow.services import workflow_policy
from docflow.services.batch_reconciliation import BatchItem, BatchResult, apply_batch
from docflow.services.code_generator import generate_transmittal_code
from docflow.services.document_lifecycle import (
    apply_transition,
    as_utc,
    create_document,
    reissue_document,
)
from docflow.services.metadata_audit import MetadataUpdateResult, apply_metadata_update
from docflow.services.project_service import get_project
from docflow.services.transmittal import generate_transmittal
from docflow.utils.helpers import parse_datetime

logger = logging.getLogger(__name__)

SORT_COLUMNS = {
    "code": Document.code,
    "title": Document.title,
    "version": Document.current_version,
    "status": Document.current_status,
    "updated": Document.last_modified,
}


# ── Private helpers ────────────────────────────────────────────────────────────


def _check_expected_last_modified(document: Document, expected) -> None:
    """Raise ConflictError when ``expected`` does not match the stored value."""
    if expected in (None, ""):
        return
    try:
        expected_dt = parse_datetime(expected)
    except (ValueError, TypeError):
        raise ValidationError(
            "expected_last_modified must be an ISO-8601 timestamp",
            details={"expected_last_modified": "invalid"},
        ) from None
    current = as_utc(document.last_modified)
    if current is None or current != expected_dt:
        raise ConflictError("Document", "last_modified", str(expected))


def save_documents(documents) -> None:
    """Persist updated and newly created documents in one transaction."""
    try:
        db.session.add_all(list(documents))
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        logger.warning("Integrity error saving documents: %s", exc.orig)
        raise ConflictError("Document", "id") from exc
    except Exception:
        db.session.rollback()
        logger.exception("Unexpected database error saving documents")
        raise


# ── Queries ────────────────────────────────────────────────────────────────────


def get_document(document_id: str, actor) -> Document:
    """Load a document the actor may see.

    Raises:
        NotFoundError: missing, or in a project outside the actor's scope.
    """
    document = db.session.get(Document, document_id)
    if document is None or not workflow_policy.can_access_project(actor, document.project_id):
        raise NotFoundError(resource="Document", resource_id=document_id)
    return document


def get_documents(document_ids, actor) -> list[Document]:
    """Load several documents, preserving request order.

    Raises:
        ValidationError: empty id list or duplicated ids.
        NotFoundError: any id missing or out of scope.
    """
    ids = [str(i) for i in (document_ids or [])]
    if not ids:
        raise ValidationError("document_ids is required", details={"document_ids": "required"})
    if len(set(ids)) != len(ids):
        raise ValidationError("document_ids contains duplicates", details={"document_ids": "duplicate"})
    found = {d.id: d for d in Document.query.filter(Document.id.in_(ids)).all()}
    docs = []
    for doc_id in ids:
        document = found.get(doc_id)
        if document is None or not workflow_policy.can_access_project(actor, document.project_id):
            raise NotFoundError(resource="Document", resource_id=doc_id)
        docs.append(document)
    return docs


def build_document_query(project_id: int, filters: dict | None = None):
    """Return a filtered, sorted query for a project's documents.

    Filters:
        status       exact workflow status
        discipline   exact discipline
        type         technical | managerial | transmittal
        q            case-insensitive search in code and title
        version      case-insensitive substring of the current label
        view         "transmittals": transmittals plus documents awaiting the client
        sort         code | title | version | status | updated
        direction    asc | desc (default asc)
    """
    filters = filters or {}
    q = Document.query.filter(Document.project_id == project_id)

    status = filters.get("status")
    if status and status != "all":
        if status not in VALID_STATUSES:
            raise ValidationError(f"Unknown status '{status}'", details={"status": "invalid"})
        q = q.filter(Document.current_status == status)

    discipline = filters.get("discipline")
    if discipline and discipline != "all":
        q = q.filter(Document.discipline == discipline)

    doc_type = filters.get("type")
    if doc_type:
        if doc_type not in VALID_DOCUMENT_TYPES:
            raise ValidationError(f"Unknown type '{doc_type}'", details={"type": "invalid"})
        q = q.filter(Document.type == doc_type)

    search = (filters.get("q") or "").strip()
    if search:
        pattern = f"%{search.lower()}%"
        q = q.filter(or_(
            func.lower(Document.code).like(pattern),
            func.lower(Document.title).like(pattern),
        ))

    version = (filters.get("version") or "").strip()
    if version:
        q = q.filter(func.lower(Document.current_version).contains(version.lower()))

    if filters.get("view") == "transmittals":
        q = q.filter(or_(
            Document.type == DocumentType.TRANSMITTAL.value,
            Document.current_status == WorkflowStatus.ANALYSIS_CLIENT.value,
        ))

    sort_key = filters.get("sort") or "code"
    column = SORT_COLUMNS.get(sort_key)
    if column is None:
        raise ValidationError(f"Unknown sort key '{sort_key}'", details={"sort": "invalid"})
    order = desc if (filters.get("direction") or "asc").lower() == "desc" else asc
    return q.order_by(order(column), asc(Document.id))


def list_documents(project_id: int, actor, filters: dict | None = None):
    """Query for a project's documents after checking the actor's scope."""
    get_project(project_id, actor)
    return build_document_query(project_id, filters)


def get_history(document_id: str, actor) -> list:
    """Version entries visible to the actor, newest first."""
    document = get_document(document_id, actor)
    return workflow_policy.visible_versions(actor, document)


def get_actions(document_id: str, actor) -> tuple[Document, list]:
    document = get_document(document_id, actor)
    return document, workflow_policy.legal_actions(actor, document)


def get_batch_actions(document_ids, actor) -> list:
    documents = get_documents(document_ids, actor)
    return workflow_policy.batch_actions_for_selection(actor, documents)


# ── Mutations ──────────────────────────────────────────────────────────────────


def create(project_id: int, payload: dict, actor, attachment=None) -> Document:
    get_project(project_id, actor)
    document = create_document(project_id, payload, actor, attachment=attachment)
    save_documents([document])
    return document


def transition(
    document_id: str,
    new_status,
    new_qualification,
    comment: str,
    actor,
    attachment=None,
    *,
    expected_last_modified=None,
) -> tuple[Document, Document | None]:
    """Apply a single transition; generate and persist a transmittal when triggered.

    Returns:
        (document, transmittal_or_None)
    """
    document = get_document(document_id, actor)
    _check_expected_last_modified(document, expected_last_modified)

    result = apply_transition(document, new_status, new_qualification, comment, actor, attachment)
    transmittal = None
    if result.triggers_transmittal:
        transmittal = generate_transmittal(
            [document], actor, document.project_id,
            code=generate_transmittal_code(document.project_id),
            now=result.version.created_at,
        )
    save_documents([document] + ([transmittal] if transmittal else []))
    return document, transmittal


def batch_transition(
    document_ids,
    target_status,
    target_qualification,
    actor,
    items: list[dict] | None = None,
) -> BatchResult:
    """Apply one action to several documents atomically.

    ``items`` are ``{"id", "comment", "attachment"}`` dicts; a string
    attachment is treated as a forwarded reference.
    """
    documents = get_documents(document_ids, actor)
    batch_items = [
        BatchItem(
            document_id=str(item.get("id")),
            comment=item.get("comment"),
            attachment=item.get("attachment"),
        )
        for item in (items or [])
        if item.get("id") is not None
    ]
    project_ids = {d.project_id for d in documents}
    code = generate_transmittal_code(project_ids.pop()) if len(project_ids) == 1 else None

    result = apply_batch(
        documents, target_status, target_qualification, actor, batch_items,
        transmittal_code=code,
    )
    save_documents(result.documents_to_persist)
    return result


def update_metadata(
    document_id: str, field_updates: dict, actor, *, expected_last_modified=None,
) -> MetadataUpdateResult:
    document = get_document(document_id, actor)
    _check_expected_last_modified(document, expected_last_modified)
    result = apply_metadata_update(document, field_updates, actor)
    if result.changed:
        save_documents([document])
    return result


def reissue(
    document_id: str,
    actor,
    comment: str | None = None,
    *,
    label: str | None = None,
    attachment=None,
    expected_last_modified=None,
):
    document = get_document(document_id, actor)
    _check_expected_last_modified(document, expected_last_modified)
    version = reissue_document(document, actor, comment, label=label, attachment=attachment)
    save_documents([document])
    return document, version
