"""
Document Lifecycle — transition engine, creation and re-issue.

Manages document state changes with:
  - Legality check against workflow_policy (always re-derived, never trusted
    from the caller)
  - Mandatory comment for single transitions
  - Attachment markers on the version comment
  - Append-only version history (newest first)
  - Lock flag + monotonic last_modified

All functions here are pure: they mutate the in-memory Document they are
handed and return the new DocumentVersion.  Persisting is the caller's job
(see document_service).  Every check runs before the first mutation, so a
raised exception leaves the document exactly as it was.

Usage:
    from docflow.services.document_lifecycle import apply_transition

    result = apply_transition(doc, "in_review", "none", "Please review", user)
    if result.triggers_transmittal:
        ...
"""

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone

from docflow.core.exceptions import (
    InvalidTransitionError,
    PermissionDeniedError,
    ValidationError,
)
from docflow.models.document import (
    INITIAL_VERSION_LABELS,
    Document,
    DocumentType,
    DocumentVersion,
    Qualification,
    VersionKind,
    WorkflowStatus,
)
from docflow.services import workflow_policy

logger = logging.getLogger(__name__)

CREATION_COMMENT = "Document created."
NEW_ATTACHMENT_MARKER = " [New attachment]"
FORWARDED_ATTACHMENT_MARKER = " [Forwarded attachment: {name}]"

_ALNUM_LABEL = re.compile(r"^(\d+)([A-Z])$")
_NUMERIC_LABEL = re.compile(r"^\d+$")
_EXPLICIT_LABEL = re.compile(r"^\d+[A-Z]?$")

_REQUIRED_CREATE_FIELDS = ("code", "title", "type", "discipline", "nature", "issuer")
_OPTIONAL_CREATE_FIELDS = (
    "forecast_date", "informative", "as_built", "taf_tac", "ge_code", "access_code",
)

# Re-issue is meaningless once a document left the workflow
_FROZEN_STATUSES = frozenset({WorkflowStatus.CANCELLED, WorkflowStatus.ARCHIVED})


@dataclass(frozen=True)
class UploadedFile:
    """A freshly uploaded attachment; only its name is tracked."""
    name: str
    url: str | None = None


@dataclass
class TransitionResult:
    document: Document
    version: DocumentVersion
    triggers_transmittal: bool


# ── Internal helpers ─────────────────────────────────────────────────────────


def as_utc(value: datetime | None) -> datetime | None:
    """Normalise naive datetimes (SQLite round-trips drop tzinfo) to UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _touch(document, now: datetime) -> None:
    """Advance last_modified, never moving it backwards."""
    now = as_utc(now)
    previous = as_utc(document.last_modified)
    document.last_modified = now if previous is None or now > previous else previous


def actor_snapshot(actor) -> dict:
    role = actor.primary_role
    return {
        "actor_id": actor.id,
        "actor_name": actor.name,
        "actor_role": role.value if role else "",
    }


def parse_target(status, qualification) -> tuple[WorkflowStatus, Qualification]:
    """Coerce raw (status, qualification) values to the closed enums."""
    try:
        target_status = WorkflowStatus(status)
    except ValueError:
        raise ValidationError(
            f"Unknown status '{status}'", details={"status": "invalid"},
        ) from None
    try:
        target_qualification = Qualification(qualification)
    except ValueError:
        raise ValidationError(
            f"Unknown qualification '{qualification}'", details={"qualification": "invalid"},
        ) from None
    return target_status, target_qualification


def resolve_attachment(attachment) -> tuple[str | None, str | None, str]:
    """Return (attachment_name, file_url, comment_suffix) for an attachment reference.

    - UploadedFile → new upload, ``" [New attachment]"``
    - str          → reference forwarded from an earlier version
    - None         → nothing recorded
    """
    if attachment is None:
        return None, None, ""
    if isinstance(attachment, UploadedFile):
        return attachment.name, attachment.url, NEW_ATTACHMENT_MARKER
    if isinstance(attachment, str):
        if not attachment.strip():
            return None, None, ""
        return attachment, None, FORWARDED_ATTACHMENT_MARKER.format(name=attachment)
    raise ValidationError(
        "Attachment must be an uploaded file or an attachment name",
        details={"attachment": "invalid"},
    )


def append_version(
    document,
    *,
    kind: VersionKind,
    actor_name: str,
    actor_role: str,
    comments: str,
    actor_id: int | None = None,
    attachment_name: str | None = None,
    file_url: str | None = None,
    now: datetime,
) -> DocumentVersion:
    """Prepend a version entry snapshotting the document's CURRENT state.

    Shared by every channel (transition, metadata, re-issue, transmittal);
    callers update status / qualification / label first.
    """
    sequence = max((v.sequence for v in document.versions), default=0) + 1
    version = DocumentVersion(
        sequence=sequence,
        kind=VersionKind(kind).value,
        version_label=document.current_version,
        status=document.current_status,
        qualification=document.current_qualification,
        actor_id=actor_id,
        actor_name=actor_name,
        actor_role=actor_role,
        comments=comments,
        attachment_name=attachment_name,
        file_url=file_url,
        created_at=as_utc(now),
    )
    document.versions.insert(0, version)
    _touch(document, now)
    return version


def check_transition(document, status, qualification, actor, *, batch=False):
    """Raise InvalidTransitionError unless the move is a legal action for ``actor``."""
    target_status, target_qualification = parse_target(status, qualification)
    actions = (
        workflow_policy.batch_legal_actions(actor, document)
        if batch else workflow_policy.legal_actions(actor, document)
    )
    if workflow_policy.find_action(actions, target_status, target_qualification) is None:
        raise InvalidTransitionError(
            document.code,
            document.current_status,
            target_status.value,
            target_qualification.value,
            reason="not an available action for your roles",
        )
    return target_status, target_qualification


def record_transition(
    document, status, qualification, comment, actor, attachment=None, *,
    now=None,
) -> TransitionResult:
    """Mutate state and append the version — the per-document primitive.

    No legality or comment checks here: both the single and the batch path
    validate first, then call this.
    """
    now = now or datetime.now(timezone.utc)
    target_status = WorkflowStatus(status)
    attachment_name, file_url, suffix = resolve_attachment(attachment)

    previous_status = WorkflowStatus(document.current_status)
    document.current_status = target_status.value
    document.current_qualification = Qualification(qualification).value
    if not document.is_transmittal:
        document.is_locked = target_status == WorkflowStatus.ANALYSIS_CLIENT

    version = append_version(
        document,
        kind=VersionKind.TRANSITION,
        comments=f"{comment}{suffix}",
        attachment_name=attachment_name,
        file_url=file_url,
        now=now,
        **actor_snapshot(actor),
    )
    triggers = (
        target_status == WorkflowStatus.ANALYSIS_CLIENT
        and previous_status != WorkflowStatus.ANALYSIS_CLIENT
    )
    return TransitionResult(document=document, version=version, triggers_transmittal=triggers)


# ── Public API ───────────────────────────────────────────────────────────────


def apply_transition(
    document,
    new_status,
    new_qualification,
    comment: str,
    actor,
    attachment=None,
    *,
    now: datetime | None = None,
) -> TransitionResult:
    """
    Execute a single-document workflow transition.

    The version label is NOT incremented; see reissue_document.

    Args:
        document: Document to move (mutated in place on success).
        new_status / new_qualification: Target pair; must be one of
            ``workflow_policy.legal_actions(actor, document)``.
        comment: Mandatory, non-blank justification.
        actor: The User performing the move.
        attachment: UploadedFile, forwarded attachment name, or None.
        now: Clock override (tests / batch consistency).

    Returns:
        TransitionResult(document, version, triggers_transmittal)

    Raises:
        ValidationError, InvalidTransitionError
    """
    target_status, target_qualification = parse_target(new_status, new_qualification)
    if not isinstance(comment, str) or not comment.strip():
        raise ValidationError("A comment is required for this action", details={"comment": "required"})
    resolve_attachment(attachment)
    check_transition(document, target_status, target_qualification, actor)

    previous_status = document.current_status
    result = record_transition(
        document, target_status, target_qualification, comment, actor, attachment, now=now,
    )
    logger.info(
        "Document %s: %s → %s/%s",
        document.code, previous_status, target_status.value, target_qualification.value,
        extra={
            "document_id": document.id,
            "project_id": document.project_id,
            "actor_id": actor.id,
            "action": "transition",
        },
    )
    return result


def create_document(project_id: int, payload: dict, actor, *, attachment=None, now=None) -> Document:
    """
    Build a new DRAFT document with its creation version.

    The initial label depends on the type: technical "0A", managerial "01".
    Transmittals are never created by hand (see transmittal.generate_transmittal).

    Raises:
        PermissionDeniedError: actor is neither admin, tech leader nor designer.
        ValidationError: missing required field or unknown type.
    """
    if not workflow_policy.can_create_documents(actor):
        raise PermissionDeniedError("create documents", "requires admin, tech leader or designer")
    if project_id is None:
        raise ValidationError("project_id is required", details={"project_id": "required"})

    missing = [f for f in _REQUIRED_CREATE_FIELDS if not str(payload.get(f) or "").strip()]
    if missing:
        raise ValidationError(
            f"Missing required fields: {', '.join(missing)}",
            details={f: "required" for f in missing},
        )
    try:
        doc_type = DocumentType(payload["type"])
    except ValueError:
        raise ValidationError(f"Unknown document type '{payload['type']}'", details={"type": "invalid"}) from None
    if doc_type == DocumentType.TRANSMITTAL:
        raise ValidationError(
            "Transmittals are generated automatically", details={"type": "invalid"},
        )

    attachment_name, file_url, _ = resolve_attachment(attachment)
    now = now or datetime.now(timezone.utc)

    document = Document(
        project_id=project_id,
        code=payload["code"].strip(),
        title=payload["title"].strip(),
        type=doc_type.value,
        discipline=payload["discipline"].strip(),
        nature=payload["nature"].strip(),
        issuer=payload["issuer"].strip(),
        current_version=INITIAL_VERSION_LABELS[doc_type],
        current_status=WorkflowStatus.DRAFT.value,
        current_qualification=Qualification.NONE.value,
        is_locked=False,
        last_modified=as_utc(now),
        created_at=as_utc(now),
        **{f: payload.get(f) for f in _OPTIONAL_CREATE_FIELDS if payload.get(f) is not None},
    )
    append_version(
        document,
        kind=VersionKind.CREATION,
        comments=CREATION_COMMENT,
        attachment_name=attachment_name,
        file_url=file_url,
        now=now,
        **actor_snapshot(actor),
    )
    logger.info(
        "Document %s created (%s, v%s)", document.code, doc_type.value, document.current_version,
        extra={"project_id": project_id, "actor_id": actor.id, "action": "create"},
    )
    return document


def next_version_label(label: str) -> str:
    """Default successor of a version label.

    "0A" → "0B" (letter bump), "00" → "01", "09" → "10" (width preserved).

    Raises:
        ValidationError: label has no automatic successor ("0Z", free text).
    """
    label = (label or "").strip()
    if _NUMERIC_LABEL.match(label):
        return str(int(label) + 1).zfill(len(label))
    m = _ALNUM_LABEL.match(label)
    if m:
        prefix, letter = m.groups()
        if letter == "Z":
            raise ValidationError(
                f"Version '{label}' has no automatic successor; provide a label explicitly",
                details={"label": "required"},
            )
        return f"{prefix}{chr(ord(letter) + 1)}"
    raise ValidationError(
        f"Version '{label}' has no automatic successor; provide a label explicitly",
        details={"label": "required"},
    )


def reissue_document(
    document,
    actor,
    comment: str | None = None,
    *,
    label: str | None = None,
    attachment=None,
    now: datetime | None = None,
) -> DocumentVersion:
    """
    Issue a new revision of ``document`` under a new version label.

    Status and qualification are unchanged; only the label moves.  An
    explicit ``label`` (e.g. "00" when a technical "0C" is approved for
    construction) overrides the default successor.

    Raises:
        PermissionDeniedError, ValidationError
    """
    if not workflow_policy.can_reissue(actor):
        raise PermissionDeniedError("reissue documents", "requires admin, tech leader or designer")
    if document.is_transmittal:
        raise ValidationError("Transmittals cannot be reissued", details={"type": "transmittal"})
    if WorkflowStatus(document.current_status) in _FROZEN_STATUSES:
        raise ValidationError(
            f"Cannot reissue a document in status '{document.current_status}'",
            details={"status": document.current_status},
        )
    if document.is_locked:
        raise ValidationError(
            "Document is locked while under client analysis", details={"is_locked": True},
        )

    if label is not None:
        label = label.strip().upper()
        if not _EXPLICIT_LABEL.match(label):
            raise ValidationError(
                f"Invalid version label '{label}'", details={"label": "invalid"},
            )
        if label == document.current_version:
            raise ValidationError(
                f"Document is already at version '{label}'", details={"label": "unchanged"},
            )
    else:
        label = next_version_label(document.current_version)

    attachment_name, file_url, suffix = resolve_attachment(attachment)
    now = now or datetime.now(timezone.utc)

    previous_label = document.current_version
    document.current_version = label
    text = (comment or "").strip() or f"Reissued as version {label}."
    version = append_version(
        document,
        kind=VersionKind.REISSUE,
        comments=f"{text}{suffix}",
        attachment_name=attachment_name,
        file_url=file_url,
        now=now,
        **actor_snapshot(actor),
    )
    logger.info(
        "Document %s reissued: %s → %s", document.code, previous_label, label,
        extra={"document_id": document.id, "project_id": document.project_id,
               "actor_id": actor.id, "action": "reissue"},
    )
    return version
