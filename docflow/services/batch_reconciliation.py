"""
Batch Reconciliation — apply one workflow action to a selection of documents.

Rules:
  - The selection must share a single current status (MixedBatchStatusError).
  - The action must be legal for EVERY document (batch rules include the
    admin-only archive action).
  - Per-document comments / attachments are optional; a missing comment
    becomes "Batch update".
  - Documents entering analysis_client from another status are covered by
    exactly ONE transmittal for the whole batch.

Validation is fail-fast and completes before the first mutation, so either
every document moves or none does.  The caller persists ``updated`` and
``transmittal`` in one transaction.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone

from docflow.core.exceptions import ValidationError
from docflow.models.document import Document, DocumentVersion, WorkflowStatus
from docflow.services import workflow_policy
from docflow.services.document_lifecycle import (
    check_transition,
    parse_target,
    record_transition,
    resolve_attachment,
)
from docflow.services.transmittal import generate_transmittal

logger = logging.getLogger(__name__)

DEFAULT_BATCH_COMMENT = "Batch update"


@dataclass
class BatchItem:
    """Per-document extras of a batch request."""
    document_id: str
    comment: str | None = None
    attachment: object = None


@dataclass
class BatchResult:
    updated: list[Document] = field(default_factory=list)
    versions: list[DocumentVersion] = field(default_factory=list)
    transmittal: Document | None = None

    @property
    def documents_to_persist(self) -> list[Document]:
        docs = list(self.updated)
        if self.transmittal is not None:
            docs.append(self.transmittal)
        return docs

    def to_dict(self) -> dict:
        return {
            "updated": [d.to_dict() for d in self.updated],
            "transmittal": self.transmittal.to_dict() if self.transmittal else None,
            "count": len(self.updated),
        }


def _batch_comment(item: BatchItem | None) -> str:
    comment = item.comment if item is not None else None
    if not isinstance(comment, str) or not comment.strip():
        return DEFAULT_BATCH_COMMENT
    return comment.strip()


def apply_batch(
    documents,
    target_status,
    target_qualification,
    actor,
    items=None,
    *,
    now: datetime | None = None,
    transmittal_code: str | None = None,
) -> BatchResult:
    """
    Move every document in ``documents`` to (target_status, target_qualification).

    Args:
        documents: Non-empty homogeneous selection.
        target_status / target_qualification: The chosen batch action.
        actor: User performing the batch.
        items: Optional iterable of BatchItem keyed by document id.
        now: Single timestamp shared by every version of the batch.
        transmittal_code: Code for the transmittal, if one is generated.

    Returns:
        BatchResult(updated, versions, transmittal)

    Raises:
        ValidationError, MixedBatchStatusError, InvalidTransitionError
    """
    documents = list(documents)
    if not documents:
        raise ValidationError("No documents selected", details={"document_ids": "required"})
    status, qualification = parse_target(target_status, target_qualification)

    # 1. Validate everything up front
    workflow_policy.ensure_homogeneous_status(documents)
    by_id = {item.document_id: item for item in (items or [])}
    for document in documents:
        check_transition(document, status, qualification, actor, batch=True)
        item = by_id.get(document.id)
        if item is not None:
            resolve_attachment(item.attachment)

    entering_analysis = [
        d for d in documents
        if status == WorkflowStatus.ANALYSIS_CLIENT
        and WorkflowStatus(d.current_status) != WorkflowStatus.ANALYSIS_CLIENT
    ]
    if entering_analysis:
        project_ids = {d.project_id for d in entering_analysis}
        if len(project_ids) > 1:
            raise ValidationError(
                "Documents sent to the client in one batch must belong to one project",
                details={"project_ids": sorted(project_ids)},
            )

    # 2. Apply
    now = now or datetime.now(timezone.utc)
    result = BatchResult()
    triggered = []
    for document in documents:
        item = by_id.get(document.id)
        attachment = item.attachment if item is not None else None
        outcome = record_transition(
            document, status, qualification, _batch_comment(item), actor, attachment,
            now=now,
        )
        result.updated.append(document)
        result.versions.append(outcome.version)
        if outcome.triggers_transmittal:
            triggered.append(document)

    # 3. One transmittal for the whole batch
    if triggered:
        result.transmittal = generate_transmittal(
            triggered, actor, triggered[0].project_id, code=transmittal_code, now=now,
        )

    logger.info(
        "Batch %s/%s applied to %d document(s)%s",
        status.value, qualification.value, len(result.updated),
        f", transmittal {result.transmittal.code}" if result.transmittal else "",
        extra={"actor_id": actor.id, "action": "batch_transition"},
    )
    return result
