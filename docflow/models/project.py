"""Project domain model — the engineering contract a document belongs to."""

from datetime import datetime, timezone

from docflow.models import db


class Project(db.Model):
    """Engineering project (e.g. a substation or transmission-line lot).

    Every Document belongs to exactly one Project; users bound to a project
    only see that project's documents.
    """

    __tablename__ = "projects"

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(50), nullable=False, unique=True)
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)
    wbs = db.Column(db.String(100), nullable=False, comment="Work breakdown structure code")
    site = db.Column(
        db.String(200), nullable=False,
        comment="Substation / lot identifier",
    )
    direct_client = db.Column(db.String(200), nullable=False)
    final_client = db.Column(db.String(200), nullable=False)
    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    REQUIRED_FIELDS = ("name", "code", "wbs", "site", "direct_client", "final_client")

    def to_dict(self):
        return {
            "id": self.id,
            "code": self.code,
            "name": self.name,
            "description": self.description,
            "wbs": self.wbs,
            "site": self.site,
            "direct_client": self.direct_client,
            "final_client": self.final_client,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<Project {self.id}: {self.code}>"
