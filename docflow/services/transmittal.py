"""
Transmittal (GRD) Generator.

A transmittal is the cover record issued whenever documents are sent to
the client for analysis.  It is itself a Document (type ``transmittal``)
so it shows up in listings and history like any other deliverable:

    code     GRD-0001 (sequential per project, assigned by the store) or a
             random GRD-XXXXXX fallback when no code is supplied
    title    "Transmittal - <code1>, <code2>, ..."
    status   analysis_client / none, version "00", locked
    history  one system-authored entry

Pure: builds the Document in memory; the caller persists it together with
the documents it covers.
"""

import logging
import uuid
from datetime import datetime, timezone

from docflow.core.exceptions import ValidationError
from docflow.models.auth import UserRole
from docflow.models.catalog import TRANSMITTAL_DISCIPLINE, TRANSMITTAL_NATURE
from docflow.models.document import (
    INITIAL_VERSION_LABELS,
    Document,
    DocumentType,
    Qualification,
    VersionKind,
    WorkflowStatus,
)
from docflow.services.document_lifecycle import append_version, as_utc

logger = logging.getLogger(__name__)

SYSTEM_ACTOR_NAME = "System (auto)"
GENERATED_COMMENT = "Generated automatically."
TITLE_PREFIX = "Transmittal - "


def random_transmittal_code() -> str:
    return f"GRD-{uuid.uuid4().hex[:6].upper()}"


def transmittal_title(documents) -> str:
    return TITLE_PREFIX + ", ".join(d.code for d in documents)


def generate_transmittal(
    related_documents,
    issuing_actor,
    project_id: int,
    *,
    code: str | None = None,
    now: datetime | None = None,
) -> Document:
    """
    Build a transmittal covering ``related_documents``.

    Args:
        related_documents: Documents just sent to the client (non-empty).
        issuing_actor: User whose action triggered the transmittal; becomes
            the issuer of record.
        project_id: Project the transmittal belongs to.
        code: Pre-assigned code (see code_generator); random if omitted.
        now: Clock override.

    Raises:
        ValidationError: no related documents or no project.
    """
    related_documents = list(related_documents)
    if not related_documents:
        raise ValidationError(
            "A transmittal must cover at least one document",
            details={"related_documents": "required"},
        )
    if project_id is None:
        raise ValidationError("project_id is required", details={"project_id": "required"})

    now = now or datetime.now(timezone.utc)
    transmittal = Document(
        project_id=project_id,
        code=code or random_transmittal_code(),
        title=transmittal_title(related_documents),
        type=DocumentType.TRANSMITTAL.value,
        discipline=TRANSMITTAL_DISCIPLINE,
        nature=TRANSMITTAL_NATURE,
        issuer=issuing_actor.name,
        current_version=INITIAL_VERSION_LABELS[DocumentType.TRANSMITTAL],
        current_status=WorkflowStatus.ANALYSIS_CLIENT.value,
        current_qualification=Qualification.NONE.value,
        is_locked=True,
        related_document_ids=[d.id for d in related_documents],
        last_modified=as_utc(now),
        created_at=as_utc(now),
    )
    append_version(
        transmittal,
        kind=VersionKind.TRANSMITTAL,
        actor_name=SYSTEM_ACTOR_NAME,
        actor_role=UserRole.ADMIN.value,
        comments=GENERATED_COMMENT,
        now=now,
    )
    logger.info(
        "Transmittal %s generated for %d document(s)", transmittal.code, len(related_documents),
        extra={"project_id": project_id, "actor_id": issuing_actor.id, "action": "transmittal"},
    )
    return transmittal
