"""Users, projects and project memberships."""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op


revision = "0001_project_access"
down_revision = None
branch_labels = None
depends_on = None


SYSTEM_ROLES = ("ADMIN", "PROJECT_MANAGER", "CONTRIBUTOR", "VIEWER")
PROJECT_STATUSES = ("ACTIVE", "COMPLETED", "ON_HOLD", "CANCELLED")
PROJECT_ROLES = ("LEAD", "MEMBER", "OBSERVER")


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("email", sa.String(length=320), nullable=False, unique=True),
        sa.Column("display_name", sa.String(length=200), nullable=False),
        sa.Column("system_role", sa.Enum(*SYSTEM_ROLES, name="system_role"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        "projects",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("status", sa.Enum(*PROJECT_STATUSES, name="project_status"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )

    op.create_table(
        "project_members",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "project_id",
            sa.Uuid(),
            sa.ForeignKey("projects.id", name="fk_project_members_project_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "user_id",
            sa.Uuid(),
            sa.ForeignKey("users.id", name="fk_project_members_user_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("role", sa.Enum(*PROJECT_ROLES, name="project_role"), nullable=False),
        sa.Column("joined_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("project_id", "user_id", name="uq_project_members_project_user"),
    )
    op.create_index("ix_project_members_user_id", "project_members", ["user_id"])


def downgrade() -> None:
    op.drop_index("ix_project_members_user_id", table_name="project_members")
    op.drop_table("project_members")
    op.drop_table("projects")
    op.drop_table("users")
    for name in ("project_role", "project_status", "system_role"):
        sa.Enum(name=name).drop(op.get_bind(), checkfirst=True)
