"""
Document workflow models — Document + DocumentVersion.

A Document moves through the engineering approval workflow:

    draft → in_review → evaluation_lt → analysis_client → moderation_lt
          → execution → as_built   (plus archived / cancelled terminals)

Every mutation (creation, transition, metadata edit, re-issue) prepends a
DocumentVersion.  Version rows are APPEND-ONLY: the ORM rejects any UPDATE
of an existing row, so the history doubles as the audit trail.

Ordering:
    Document.versions is loaded newest first (sequence DESC), so
    ``document.versions[0]`` always reflects the latest mutation.  The
    lifecycle services keep the same order in memory by inserting at 0.
"""

import uuid
from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import event as _sa_event
from sqlalchemy.orm import object_session

from docflow.models import db


# ── Enumerations ──────────────────────────────────────────────────────────────


class WorkflowStatus(str, Enum):
    DRAFT = "draft"
    IN_REVIEW = "in_review"
    EVALUATION_LT = "evaluation_lt"
    ANALYSIS_CLIENT = "analysis_client"
    MODERATION_LT = "moderation_lt"
    EXECUTION = "execution"
    AS_BUILT = "as_built"
    ARCHIVED = "archived"
    CANCELLED = "cancelled"


class Qualification(str, Enum):
    """Outcome of a review step (AP / AC / RE / CA / IF / AS in client parlance)."""
    NONE = "none"
    APPROVED = "approved"
    APPROVED_WITH_COMMENTS = "approved_with_comments"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    INFORMATIVE = "informative"
    AS_BUILT = "as_built"


class DocumentType(str, Enum):
    TECHNICAL = "technical"
    MANAGERIAL = "managerial"
    TRANSMITTAL = "transmittal"


class VersionKind(str, Enum):
    """Which channel produced a version entry."""
    CREATION = "creation"
    TRANSITION = "transition"
    METADATA = "metadata"
    REISSUE = "reissue"
    TRANSMITTAL = "transmittal"


VALID_STATUSES = frozenset(s.value for s in WorkflowStatus)
VALID_DOCUMENT_TYPES = frozenset(t.value for t in DocumentType)

# Initial version label per document type
INITIAL_VERSION_LABELS = {
    DocumentType.TECHNICAL: "0A",
    DocumentType.MANAGERIAL: "01",
    DocumentType.TRANSMITTAL: "00",
}


def _uuid():
    return str(uuid.uuid4())


def _utcnow():
    return datetime.now(timezone.utc)


# ═════════════════════════════════════════════════════════════════════════════
# Document
# ═════════════════════════════════════════════════════════════════════════════


class Document(db.Model):
    """Engineering deliverable tracked through the approval workflow.

    Business rules:
    - ``code`` is not unique (re-issued drawings share a code).
    - ``project_id`` never changes after creation.
    - ``is_locked`` is advisory: true while the document sits with the
      client; transmittals are always locked.
    - ``last_modified`` never moves backwards.
    """

    __tablename__ = "documents"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    project_id = db.Column(
        db.Integer,
        db.ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    code = db.Column(db.String(100), nullable=False, index=True)
    title = db.Column(db.String(500), nullable=False)
    type = db.Column(
        db.String(20), nullable=False, default=DocumentType.TECHNICAL.value,
        comment="technical | managerial | transmittal",
    )
    discipline = db.Column(db.String(100), nullable=False)
    nature = db.Column(db.String(150), nullable=False)
    issuer = db.Column(db.String(150), nullable=False)

    # Workflow state
    current_version = db.Column(db.String(10), nullable=False)
    current_status = db.Column(
        db.String(30), nullable=False, default=WorkflowStatus.DRAFT.value, index=True,
    )
    current_qualification = db.Column(
        db.String(30), nullable=False, default=Qualification.NONE.value,
    )
    is_locked = db.Column(db.Boolean, nullable=False, default=False)
    last_modified = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    # Optional descriptive metadata
    forecast_date = db.Column(db.Date, nullable=True, comment="Deadline for the next delivery")
    informative = db.Column(db.Boolean, nullable=True)
    as_built = db.Column(db.Boolean, nullable=True)
    taf_tac = db.Column(db.String(100), nullable=True)
    ge_code = db.Column(db.String(100), nullable=True, comment="Contractor-internal code")
    access_code = db.Column(db.String(100), nullable=True)

    # Transmittals only: ids of the documents the transmittal covers
    related_document_ids = db.Column(db.JSON, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    versions = db.relationship(
        "DocumentVersion",
        back_populates="document",
        order_by="DocumentVersion.sequence.desc()",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        db.Index("ix_documents_project_status", "project_id", "current_status"),
    )

    @property
    def is_transmittal(self) -> bool:
        return self.type == DocumentType.TRANSMITTAL

    @property
    def latest_version(self):
        return self.versions[0] if self.versions else None

    def to_dict(self):
        d = {
            "id": self.id,
            "project_id": self.project_id,
            "code": self.code,
            "title": self.title,
            "type": self.type,
            "discipline": self.discipline,
            "nature": self.nature,
            "issuer": self.issuer,
            "current_version": self.current_version,
            "current_status": self.current_status,
            "current_qualification": self.current_qualification,
            "is_locked": self.is_locked,
            "last_modified": self.last_modified.isoformat() if self.last_modified else None,
            "forecast_date": self.forecast_date.isoformat() if self.forecast_date else None,
            "informative": self.informative,
            "as_built": self.as_built,
            "taf_tac": self.taf_tac,
            "ge_code": self.ge_code,
            "access_code": self.access_code,
            "related_document_ids": list(self.related_document_ids or []),
        }
        return d

    def __repr__(self):
        return f"<Document {self.code} v{self.current_version} [{self.current_status}]>"


# ═════════════════════════════════════════════════════════════════════════════
# DocumentVersion
# ═════════════════════════════════════════════════════════════════════════════


class DocumentVersion(db.Model):
    """
    Immutable history entry of a Document.

    Business rules:
    - Rows are NEVER updated — append-only log (enforced by a
      before_update listener below).
    - ``sequence`` is 1-based per document; the highest sequence is the
      current state.
    - ``actor_name`` / ``actor_role`` are snapshots taken when the entry is
      written so the trail survives user edits and deletions.
    """

    __tablename__ = "document_versions"

    id = db.Column(db.Integer, primary_key=True)
    document_id = db.Column(
        db.String(36),
        db.ForeignKey("documents.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    sequence = db.Column(db.Integer, nullable=False)
    kind = db.Column(
        db.String(20), nullable=False, default=VersionKind.TRANSITION.value,
        comment="creation | transition | metadata | reissue | transmittal",
    )
    version_label = db.Column(db.String(10), nullable=False)
    status = db.Column(db.String(30), nullable=False)
    qualification = db.Column(db.String(30), nullable=False)

    actor_id = db.Column(
        db.Integer,
        db.ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        comment="NULL for system-generated entries",
    )
    actor_name = db.Column(db.String(200), nullable=False)
    actor_role = db.Column(db.String(30), nullable=False)

    comments = db.Column(db.Text, nullable=False, default="")
    attachment_name = db.Column(db.String(255), nullable=True)
    file_url = db.Column(db.String(500), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    document = db.relationship("Document", back_populates="versions")

    __table_args__ = (
        db.UniqueConstraint("document_id", "sequence", name="uq_document_version_seq"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "document_id": self.document_id,
            "sequence": self.sequence,
            "kind": self.kind,
            "version": self.version_label,
            "status": self.status,
            "qualification": self.qualification,
            "actor_id": self.actor_id,
            "actor_name": self.actor_name,
            "actor_role": self.actor_role,
            "comments": self.comments,
            "attachment_name": self.attachment_name,
            "file_url": self.file_url,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<DocumentVersion {self.document_id}#{self.sequence} {self.status}>"


class VersionImmutableError(Exception):
    """Raised when a flush would modify an existing DocumentVersion row."""


@_sa_event.listens_for(DocumentVersion, "before_update")
def _reject_version_update(mapper, connection, target):
    session = object_session(target)
    if session is not None and not session.is_modified(target, include_collections=False):
        return
    raise VersionImmutableError(
        f"DocumentVersion {target.id} is append-only and cannot be modified"
    )
