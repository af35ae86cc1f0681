"""
Auto-Code Generator Service

Generates sequential codes for:
  - Transmittals:  GRD-{seq}  (e.g. GRD-0001, GRD-0042)

Codes are project-scoped: every project starts at GRD-0001.
"""

from sqlalchemy import func

from docflow.models import db
from docflow.models.document import Document, DocumentType

TRANSMITTAL_PREFIX = "GRD"


def generate_transmittal_code(project_id: int) -> str:
    """
    Generate the next transmittal code for a project.
    Format: GRD-{SEQ}, SEQ 4-digit, project-scoped.
    """
    count = (
        db.session.query(func.count(Document.id))
        .filter(
            Document.project_id == project_id,
            Document.type == DocumentType.TRANSMITTAL.value,
        )
        .scalar()
    ) or 0
    return f"{TRANSMITTAL_PREFIX}-{count + 1:04d}"
