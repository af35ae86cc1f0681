"""
User model and workflow roles.

A user holds one or more roles.  The first role in ``roles`` is the
*primary role*, recorded on every version entry the user produces.
Users with ``project_id = NULL`` have global (all-project) access.
"""

from datetime import datetime, timezone
from enum import Enum

from docflow.models import db


class UserRole(str, Enum):
    """Workflow roles; authorization is derived from the union of held roles."""
    ADMIN = "admin"
    TECH_LEADER = "tech_leader"
    DESIGNER = "designer"
    CLIENT = "client"
    READER = "reader"


VALID_ROLES = frozenset(r.value for r in UserRole)


class User(db.Model):
    """Platform user.

    ``roles`` is stored as a JSON list of UserRole values (non-empty,
    ordered).  Authentication is mocked: login is by email only.
    """

    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), nullable=False, unique=True, index=True)
    name = db.Column(db.String(200), nullable=False)
    roles = db.Column(db.JSON, nullable=False, default=list)
    avatar_url = db.Column(db.String(500), nullable=True)
    project_id = db.Column(
        db.Integer,
        db.ForeignKey("projects.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
        comment="NULL = global access to every project",
    )
    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    @property
    def role_set(self) -> frozenset:
        return frozenset(UserRole(r) for r in (self.roles or []))

    @property
    def primary_role(self) -> UserRole | None:
        if not self.roles:
            return None
        return UserRole(self.roles[0])

    def has_role(self, *roles: UserRole) -> bool:
        """True if the user holds at least one of ``roles``."""
        held = self.role_set
        return any(UserRole(r) in held for r in roles)

    def to_dict(self):
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "roles": list(self.roles or []),
            "primary_role": self.primary_role.value if self.primary_role else None,
            "avatar_url": self.avatar_url,
            "project_id": self.project_id,
        }

    def __repr__(self):
        return f"<User {self.id}: {self.email}>"
