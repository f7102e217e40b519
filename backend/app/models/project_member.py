"""ProjectMember model (membership of a user in a project).

Invariants:
- Exactly one row per (project_id, user_id): at most one role per user per project.
- Role changes only through MembershipService.change_member_role (hierarchy gated).
- Removal deletes the row.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates
from sqlalchemy.sql.sqltypes import Enum as SAEnum

from app.core.base import Base, UUIDPrimaryKeyMixin, ensure_utc
from app.security.roles import ProjectRole


class ProjectMember(UUIDPrimaryKeyMixin, Base):
    __tablename__ = "project_members"

    project_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("projects.id", name="fk_project_members_project_id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", name="fk_project_members_user_id", ondelete="CASCADE"),
        nullable=False,
    )
    role: Mapped[ProjectRole] = mapped_column(
        SAEnum(ProjectRole, name="project_role"),
        nullable=False,
        default=ProjectRole.MEMBER,
    )
    joined_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    project = relationship("Project", back_populates="members")

    __table_args__ = (
        UniqueConstraint("project_id", "user_id", name="uq_project_members_project_user"),
        Index("ix_project_members_user_id", "user_id"),
    )

    @validates("joined_at")
    def _validate_utc(self, key: str, value: datetime) -> datetime:
        return ensure_utc(key, value)
