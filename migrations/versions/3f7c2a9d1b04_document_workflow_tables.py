"""document_workflow_tables

Create the document workflow schema: projects, users, documents,
document_versions and catalog_entries.

Revision ID: 3f7c2a9d1b04
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect as sa_inspect


# revision identifiers, used by Alembic.
revision = "3f7c2a9d1b04"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    inspector = sa_inspect(bind)
    existing_tables = set(inspector.get_table_names())

    if "projects" not in existing_tables:
        op.create_table(
            "projects",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("code", sa.String(length=50), nullable=False),
            sa.Column("name", sa.String(length=200), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("wbs", sa.String(length=100), nullable=False),
            sa.Column("site", sa.String(length=200), nullable=False),
            sa.Column("direct_client", sa.String(length=200), nullable=False),
            sa.Column("final_client", sa.String(length=200), nullable=False),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("code"),
        )

    if "users" not in existing_tables:
        op.create_table(
            "users",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("email", sa.String(length=255), nullable=False),
            sa.Column("name", sa.String(length=200), nullable=False),
            sa.Column("roles", sa.JSON(), nullable=False),
            sa.Column("avatar_url", sa.String(length=500), nullable=True),
            sa.Column("project_id", sa.Integer(), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="SET NULL"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_users_email", "users", ["email"], unique=True)
        op.create_index("ix_users_project_id", "users", ["project_id"])

    if "documents" not in existing_tables:
        op.create_table(
            "documents",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("project_id", sa.Integer(), nullable=False),
            sa.Column("code", sa.String(length=100), nullable=False),
            sa.Column("title", sa.String(length=500), nullable=False),
            sa.Column("type", sa.String(length=20), nullable=False),
            sa.Column("discipline", sa.String(length=100), nullable=False),
            sa.Column("nature", sa.String(length=150), nullable=False),
            sa.Column("issuer", sa.String(length=150), nullable=False),
            sa.Column("current_version", sa.String(length=10), nullable=False),
            sa.Column("current_status", sa.String(length=30), nullable=False),
            sa.Column("current_qualification", sa.String(length=30), nullable=False),
            sa.Column("is_locked", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("last_modified", sa.DateTime(timezone=True), nullable=False),
            sa.Column("forecast_date", sa.Date(), nullable=True),
            sa.Column("informative", sa.Boolean(), nullable=True),
            sa.Column("as_built", sa.Boolean(), nullable=True),
            sa.Column("taf_tac", sa.String(length=100), nullable=True),
            sa.Column("ge_code", sa.String(length=100), nullable=True),
            sa.Column("access_code", sa.String(length=100), nullable=True),
            sa.Column("related_document_ids", sa.JSON(), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_documents_project_id", "documents", ["project_id"])
        op.create_index("ix_documents_code", "documents", ["code"])
        op.create_index("ix_documents_current_status", "documents", ["current_status"])
        op.create_index("ix_documents_project_status", "documents", ["project_id", "current_status"])

    if "document_versions" not in existing_tables:
        op.create_table(
            "document_versions",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("document_id", sa.String(length=36), nullable=False),
            sa.Column("sequence", sa.Integer(), nullable=False),
            sa.Column("kind", sa.String(length=20), nullable=False),
            sa.Column("version_label", sa.String(length=10), nullable=False),
            sa.Column("status", sa.String(length=30), nullable=False),
            sa.Column("qualification", sa.String(length=30), nullable=False),
            sa.Column("actor_id", sa.Integer(), nullable=True),
            sa.Column("actor_name", sa.String(length=200), nullable=False),
            sa.Column("actor_role", sa.String(length=30), nullable=False),
            sa.Column("comments", sa.Text(), nullable=False),
            sa.Column("attachment_name", sa.String(length=255), nullable=True),
            sa.Column("file_url", sa.String(length=500), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.ForeignKeyConstraint(["document_id"], ["documents.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["actor_id"], ["users.id"], ondelete="SET NULL"),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("document_id", "sequence", name="uq_document_version_seq"),
        )
        op.create_index("ix_document_versions_document_id", "document_versions", ["document_id"])

    if "catalog_entries" not in existing_tables:
        op.create_table(
            "catalog_entries",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("catalog", sa.String(length=20), nullable=False),
            sa.Column("value", sa.String(length=200), nullable=False),
            sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("catalog", "value", name="uq_catalog_value"),
        )
        op.create_index("ix_catalog_entries_catalog", "catalog_entries", ["catalog"])


def downgrade():
    op.drop_index("ix_catalog_entries_catalog", table_name="catalog_entries")
    op.drop_table("catalog_entries")
    op.drop_index("ix_document_versions_document_id", table_name="document_versions")
    op.drop_table("document_versions")
    op.drop_index("ix_documents_project_status", table_name="documents")
    op.drop_index("ix_documents_current_status", table_name="documents")
    op.drop_index("ix_documents_code", table_name="documents")
    op.drop_index("ix_documents_project_id", table_name="documents")
    op.drop_table("documents")
    op.drop_index("ix_users_project_id", table_name="users")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
    op.drop_table("projects")
