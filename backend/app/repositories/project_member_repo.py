"""Project membership repository (read-only)."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Sequence

from sqlalchemy import Select, select
from sqlalchemy.exc import SQLAlchemyError

from app.models.project import Project
from app.models.project_member import ProjectMember
from app.models.user import User
from app.repositories.base import BaseRepository
from app.security.errors import MembershipFetchError


@dataclass(frozen=True, slots=True)
class MembershipDTO:
    id: str
    project_id: str
    user_id: str
    role: str
    joined_at: datetime
    project_name: Optional[str] = None


@dataclass(frozen=True, slots=True)
class MemberDTO:
    user_id: str
    email: str
    display_name: str
    role: str
    joined_at: datetime


@dataclass(frozen=True, slots=True)
class ProjectDTO:
    id: str
    name: str
    description: Optional[str]
    status: str
    created_at: Optional[datetime]


def parse_uuid(value: str) -> Optional[uuid.UUID]:
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        return None


class ProjectMemberRepository(BaseRepository[ProjectMember]):
    """Membership reads. Implements the MembershipLookup protocol."""

    async def get_my_projects(self, user_id: str) -> Sequence[MembershipDTO]:
        """All memberships of a user, newest first.

        An id that is not a UUID cannot own memberships and yields an empty list.
        Storage failures raise MembershipFetchError, never an empty list.
        """
        uid = parse_uuid(user_id)
        if uid is None:
            return []
        stmt: Select = (
            select(ProjectMember, Project.name)
            .join(Project, Project.id == ProjectMember.project_id)
            .where(ProjectMember.user_id == uid)
            .order_by(ProjectMember.joined_at.desc())
        )
        try:
            rows = (await self._execute(stmt)).all()
        except SQLAlchemyError as e:
            raise MembershipFetchError(f"Membership lookup failed: {type(e).__name__}") from e
        return [to_membership_dto(m, project_name=name) for m, name in rows]

    async def get_membership(self, project_id: uuid.UUID, user_id: uuid.UUID) -> Optional[MembershipDTO]:
        stmt: Select = (
            select(ProjectMember)
            .where(ProjectMember.project_id == project_id)
            .where(ProjectMember.user_id == user_id)
        )
        m = (await self._execute(stmt)).scalars().first()
        return to_membership_dto(m) if m is not None else None

    async def list_project_members(self, project_id: uuid.UUID) -> Sequence[MemberDTO]:
        stmt: Select = (
            select(ProjectMember, User)
            .join(User, User.id == ProjectMember.user_id)
            .where(ProjectMember.project_id == project_id)
            .order_by(ProjectMember.joined_at.asc())
        )
        rows = (await self._execute(stmt)).all()
        return [
            MemberDTO(
                user_id=str(m.user_id),
                email=u.email,
                display_name=u.display_name,
                role=m.role.value,
                joined_at=m.joined_at,
            )
            for m, u in rows
        ]

    async def get_project(self, project_id: uuid.UUID) -> Optional[ProjectDTO]:
        stmt: Select = select(Project).where(Project.id == project_id)
        p = (await self._execute(stmt)).scalars().first()
        return to_project_dto(p) if p is not None else None


def to_membership_dto(m: ProjectMember, *, project_name: Optional[str] = None) -> MembershipDTO:
    return MembershipDTO(
        id=str(m.id),
        project_id=str(m.project_id),
        user_id=str(m.user_id),
        role=m.role.value,
        joined_at=m.joined_at,
        project_name=project_name,
    )


def to_project_dto(p: Project) -> ProjectDTO:
    return ProjectDTO(
        id=str(p.id),
        name=p.name,
        description=p.description,
        status=p.status.value,
        created_at=p.created_at,
    )
