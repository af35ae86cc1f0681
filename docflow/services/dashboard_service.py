"""
Dashboard Service — per-project workload and deadline overview.

Headline numbers:
    total           every document of the project
    in_progress     not as_built / archived / cancelled
    client_pending  awaiting client analysis
    execution       released for execution or as-built
    by_status       count per workflow status

Task queues (role → statuses that wait on that role):
    designer     draft, in_review
    tech_leader  evaluation_lt, moderation_lt
    client       analysis_client

Deadlines consider active documents with a forecast_date only:
    overdue   forecast_date before today
    upcoming  forecast_date within DEADLINE_WINDOW_DAYS (today inclusive)

The computations are pure; build_dashboard() is the only DB-touching entry.
"""

import logging
from datetime import date

from flask import current_app

from docflow.models.auth import UserRole
from docflow.models.document import Document, WorkflowStatus
from docflow.services.project_service import get_project

logger = logging.getLogger(__name__)

DEFAULT_DEADLINE_WINDOW_DAYS = 7

CLOSED_STATUSES = frozenset({
    WorkflowStatus.AS_BUILT,
    WorkflowStatus.ARCHIVED,
    WorkflowStatus.CANCELLED,
})

ROLE_TASK_STATUSES = {
    UserRole.DESIGNER: frozenset({WorkflowStatus.DRAFT, WorkflowStatus.IN_REVIEW}),
    UserRole.TECH_LEADER: frozenset({WorkflowStatus.EVALUATION_LT, WorkflowStatus.MODERATION_LT}),
    UserRole.CLIENT: frozenset({WorkflowStatus.ANALYSIS_CLIENT}),
}


def _status(document) -> WorkflowStatus:
    return WorkflowStatus(document.current_status)


def is_active(document) -> bool:
    return _status(document) not in CLOSED_STATUSES


def compute_stats(documents) -> dict:
    by_status = {s.value: 0 for s in WorkflowStatus}
    for d in documents:
        by_status[_status(d).value] += 1
    return {
        "total": len(documents),
        "in_progress": sum(1 for d in documents if is_active(d)),
        "client_pending": by_status[WorkflowStatus.ANALYSIS_CLIENT.value],
        "execution": (
            by_status[WorkflowStatus.EXECUTION.value] + by_status[WorkflowStatus.AS_BUILT.value]
        ),
        "by_status": by_status,
    }


def tasks_for(user, documents) -> list:
    """Documents currently waiting on one of the user's roles."""
    waiting = set()
    for role in user.role_set:
        waiting |= ROLE_TASK_STATUSES.get(role, frozenset())
    return [d for d in documents if _status(d) in waiting]


def overdue(documents, today: date) -> list:
    return [
        d for d in documents
        if d.forecast_date is not None and is_active(d) and d.forecast_date < today
    ]


def upcoming(documents, today: date, window_days: int = DEFAULT_DEADLINE_WINDOW_DAYS) -> list:
    return [
        d for d in documents
        if d.forecast_date is not None
        and is_active(d)
        and 0 <= (d.forecast_date - today).days <= window_days
    ]


def _brief(document) -> dict:
    return {
        "id": document.id,
        "code": document.code,
        "title": document.title,
        "current_status": document.current_status,
        "current_version": document.current_version,
        "forecast_date": document.forecast_date.isoformat() if document.forecast_date else None,
    }


def build_dashboard(project_id: int, actor, *, today: date | None = None, window_days: int | None = None) -> dict:
    """Assemble the dashboard payload for one project."""
    project = get_project(project_id, actor)
    today = today or date.today()
    if window_days is None:
        window_days = current_app.config.get("DEADLINE_WINDOW_DAYS", DEFAULT_DEADLINE_WINDOW_DAYS)

    documents = Document.query.filter_by(project_id=project.id).order_by(Document.code).all()
    return {
        "project": project.to_dict(),
        "stats": compute_stats(documents),
        "tasks": [_brief(d) for d in tasks_for(actor, documents)],
        "overdue": [_brief(d) for d in overdue(documents, today)],
        "upcoming": [_brief(d) for d in upcoming(documents, today, window_days)],
        "deadline_window_days": window_days,
        "today": today.isoformat(),
    }
