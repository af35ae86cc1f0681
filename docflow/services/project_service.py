"""Project service — create, list and scope-check projects."""

import logging

from docflow.core.exceptions import ConflictError, NotFoundError, PermissionDeniedError, ValidationError
from docflow.models import db
from docflow.models.auth import UserRole
from docflow.models.project import Project
from docflow.services import workflow_policy

logger = logging.getLogger(__name__)


def get_project(project_id: int, actor=None) -> Project:
    """Return the project, enforcing the actor's project scope when given.

    Raises:
        NotFoundError: missing or outside the actor's scope.
    """
    project = db.session.get(Project, project_id)
    if project is None:
        raise NotFoundError(resource="Project", resource_id=project_id)
    if actor is not None and not workflow_policy.can_access_project(actor, project.id):
        raise NotFoundError(resource="Project", resource_id=project_id)
    return project


def list_projects(actor) -> list[Project]:
    """Projects visible to the actor, ordered by code."""
    q = Project.query.order_by(Project.code)
    if actor.project_id is not None:
        q = q.filter(Project.id == actor.project_id)
    return q.all()


def create_project(data: dict, actor) -> Project:
    """Create a project; every descriptive field except description is required.

    Raises:
        PermissionDeniedError, ValidationError, ConflictError
    """
    if not actor.has_role(UserRole.ADMIN):
        raise PermissionDeniedError("create projects", "requires admin")

    missing = [f for f in Project.REQUIRED_FIELDS if not str(data.get(f) or "").strip()]
    if missing:
        raise ValidationError(
            f"Missing required fields: {', '.join(missing)}",
            details={f: "required" for f in missing},
        )

    code = data["code"].strip()
    if Project.query.filter_by(code=code).first():
        raise ConflictError("Project", "code", code)

    project = Project(
        code=code,
        name=data["name"].strip(),
        description=(data.get("description") or "").strip() or None,
        wbs=data["wbs"].strip(),
        site=data["site"].strip(),
        direct_client=data["direct_client"].strip(),
        final_client=data["final_client"].strip(),
    )
    db.session.add(project)
    db.session.commit()
    logger.info("Project %s created", project.code, extra={"project_id": project.id, "actor_id": actor.id})
    return project
