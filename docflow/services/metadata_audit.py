"""
Metadata Diff & Audit.

Applies descriptive-field edits to a document and logs exactly what changed
as a version entry on the same append-only history as workflow moves:

    Metadata update. Changes: [ title: "Old" -> "New"; ge_code: "(empty)" -> "X-1" ]

Only the fields listed in METADATA_FIELDS may be edited through this path;
workflow fields (status, qualification, version label, lock) never change
here.  An update that changes nothing is a no-op: no version is written and
last_modified stays put.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Callable

from docflow.core.exceptions import PermissionDeniedError, ValidationError
from docflow.models.document import Document, DocumentVersion, VersionKind
from docflow.services import workflow_policy
from docflow.services.document_lifecycle import actor_snapshot, append_version
from docflow.utils.helpers import parse_date_input

logger = logging.getLogger(__name__)

EMPTY_MARKER = "(empty)"
COMMENT_PREFIX = "Metadata update. Changes: [ "
COMMENT_SUFFIX = " ]"


# ── Field comparators ────────────────────────────────────────────────────────


def _normalize_text(value):
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _normalize_bool(value):
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.lower() in ("true", "1", "yes"):
        return True
    if isinstance(value, str) and value.lower() in ("false", "0", "no"):
        return False
    raise ValueError(f"not a boolean: {value!r}")


def _normalize_date(value):
    if isinstance(value, datetime):
        return value.date()
    if value is None or isinstance(value, date):
        return value
    return parse_date_input(value)


def _render(value) -> str:
    if value is None:
        return EMPTY_MARKER
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


@dataclass(frozen=True)
class FieldRule:
    normalize: Callable
    required: bool = False


METADATA_FIELDS: dict[str, FieldRule] = {
    "title": FieldRule(_normalize_text, required=True),
    "discipline": FieldRule(_normalize_text, required=True),
    "nature": FieldRule(_normalize_text, required=True),
    "issuer": FieldRule(_normalize_text, required=True),
    "ge_code": FieldRule(_normalize_text),
    "access_code": FieldRule(_normalize_text),
    "taf_tac": FieldRule(_normalize_text),
    "forecast_date": FieldRule(_normalize_date),
    "informative": FieldRule(_normalize_bool),
    "as_built": FieldRule(_normalize_bool),
}


@dataclass
class FieldChange:
    field: str
    old: object
    new: object

    def render(self) -> str:
        return f'{self.field}: "{_render(self.old)}" -> "{_render(self.new)}"'

    def to_dict(self) -> dict:
        return {"field": self.field, "old": _render(self.old), "new": _render(self.new)}


@dataclass
class MetadataUpdateResult:
    document: Document
    changes: list[FieldChange] = field(default_factory=list)
    version: DocumentVersion | None = None

    @property
    def changed(self) -> bool:
        return bool(self.changes)


# ── Public API ───────────────────────────────────────────────────────────────


def diff_metadata(document, field_updates: dict) -> list[FieldChange]:
    """Compare ``field_updates`` with the document, field by field.

    Returns the changed fields in METADATA_FIELDS order.

    Raises:
        ValidationError: unknown / non-editable field, unparsable value, or
            a required text field set empty.
    """
    unknown = sorted(set(field_updates) - set(METADATA_FIELDS))
    if unknown:
        raise ValidationError(
            f"Fields not editable as metadata: {', '.join(unknown)}",
            details={f: "not editable" for f in unknown},
        )

    changes = []
    errors = {}
    for name, rule in METADATA_FIELDS.items():
        if name not in field_updates:
            continue
        try:
            new = rule.normalize(field_updates[name])
        except ValueError as exc:
            errors[name] = str(exc)
            continue
        if rule.required and new is None:
            errors[name] = "required"
            continue
        old = rule.normalize(getattr(document, name))
        if old != new:
            changes.append(FieldChange(name, old, new))
    if errors:
        raise ValidationError("Invalid metadata values", details=errors)
    return changes


def render_changes(changes) -> str:
    return COMMENT_PREFIX + "; ".join(c.render() for c in changes) + COMMENT_SUFFIX


def apply_metadata_update(
    document, field_updates: dict, actor, *, now: datetime | None = None,
) -> MetadataUpdateResult:
    """
    Apply metadata edits and log them as a version entry.

    The version entry records the document's CURRENT status, qualification
    and label; only the comment describes the edit.

    Returns:
        MetadataUpdateResult — ``version`` is None when nothing changed.

    Raises:
        PermissionDeniedError: actor is neither admin nor tech leader.
        ValidationError: see diff_metadata.
    """
    if not workflow_policy.can_edit_metadata(actor):
        raise PermissionDeniedError("edit metadata", "requires admin or tech leader")

    changes = diff_metadata(document, field_updates or {})
    if not changes:
        return MetadataUpdateResult(document=document)

    for change in changes:
        setattr(document, change.field, change.new)

    version = append_version(
        document,
        kind=VersionKind.METADATA,
        comments=render_changes(changes),
        now=now or datetime.now(timezone.utc),
        **actor_snapshot(actor),
    )
    logger.info(
        "Document %s metadata updated: %s",
        document.code, ", ".join(c.field for c in changes),
        extra={"document_id": document.id, "project_id": document.project_id,
               "actor_id": actor.id, "action": "metadata"},
    )
    return MetadataUpdateResult(document=document, changes=changes, version=version)
