"""User service — mocked login lookup and admin user management."""

import logging

from docflow.core.exceptions import ConflictError, NotFoundError, PermissionDeniedError, ValidationError
from docflow.models import db
from docflow.models.auth import VALID_ROLES, User, UserRole
from docflow.models.project import Project

logger = logging.getLogger(__name__)


def _require_admin(actor, action: str) -> None:
    if not actor.has_role(UserRole.ADMIN):
        raise PermissionDeniedError(action, "requires admin")


def _clean_roles(roles) -> list[str]:
    if not isinstance(roles, list) or not roles:
        raise ValidationError("At least one role is required", details={"roles": "required"})
    invalid = [r for r in roles if r not in VALID_ROLES]
    if invalid:
        raise ValidationError(
            f"Unknown roles: {', '.join(map(str, invalid))}",
            details={"roles": sorted(VALID_ROLES)},
        )
    cleaned = []
    for role in roles:
        if role not in cleaned:
            cleaned.append(role)
    return cleaned


def _clean_project_id(project_id):
    if project_id in (None, ""):
        return None
    if db.session.get(Project, project_id) is None:
        raise ValidationError("Unknown project", details={"project_id": "invalid"})
    return project_id


def find_by_email(email: str) -> User | None:
    email = (email or "").strip().lower()
    if not email:
        return None
    return User.query.filter(db.func.lower(User.email) == email).first()


def get_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFoundError(resource="User", resource_id=user_id)
    return user


def list_users(actor) -> list[User]:
    _require_admin(actor, "list users")
    return User.query.order_by(User.name).all()


def create_user(data: dict, actor) -> User:
    """Register a user (admin only).

    Raises:
        PermissionDeniedError, ValidationError, ConflictError
    """
    _require_admin(actor, "create users")
    email = (data.get("email") or "").strip().lower()
    name = (data.get("name") or "").strip()
    errors = {}
    if not email or "@" not in email:
        errors["email"] = "a valid email is required"
    if not name:
        errors["name"] = "required"
    if errors:
        raise ValidationError("Invalid user data", details=errors)
    if find_by_email(email):
        raise ConflictError("User", "email", email)

    user = User(
        email=email,
        name=name,
        roles=_clean_roles(data.get("roles")),
        avatar_url=(data.get("avatar_url") or "").strip() or None,
        project_id=_clean_project_id(data.get("project_id")),
    )
    db.session.add(user)
    db.session.commit()
    logger.info("User %s created with roles %s", user.email, user.roles, extra={"actor_id": actor.id})
    return user


def update_user(user_id: int, data: dict, actor) -> User:
    """Update name / roles / project binding / avatar (admin only)."""
    _require_admin(actor, "update users")
    user = get_user(user_id)
    if "name" in data:
        name = (data.get("name") or "").strip()
        if not name:
            raise ValidationError("Name cannot be empty", details={"name": "required"})
        user.name = name
    if "roles" in data:
        user.roles = _clean_roles(data.get("roles"))
    if "project_id" in data:
        user.project_id = _clean_project_id(data.get("project_id"))
    if "avatar_url" in data:
        user.avatar_url = (data.get("avatar_url") or "").strip() or None
    db.session.commit()
    logger.info("User %s updated", user.email, extra={"actor_id": actor.id})
    return user
