"""Membership lifecycle (writes), gated by the permission model.

Every operation re-reads the acting and target memberships inside its own
transaction (SELECT ... FOR UPDATE where supported) and decides on that
snapshot, so a stale read from an earlier request cannot authorize a write.
"""

from __future__ import annotations

import json
import logging
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.models.project import Project, ProjectStatus
from app.models.project_member import ProjectMember
from app.models.user import User
from app.repositories.project_member_repo import (
    MembershipDTO,
    ProjectDTO,
    to_membership_dto,
    to_project_dto,
)
from app.security.errors import (
    MembershipConflict,
    MembershipNotFound,
    PermissionDenied,
    ProjectNotFound,
    UserNotFound,
)
from app.security.permissions import (
    Capability,
    authorize_role_change,
    can_manage_user,
    can_perform,
)
from app.security.roles import ProjectRole


UTC = timezone.utc
logger = logging.getLogger("teamhub.membership")


def _log(event: dict) -> None:
    logger.info(json.dumps(event, ensure_ascii=False))


class MembershipService:
    def __init__(self, session: Session) -> None:
        self._session = session

    @contextmanager
    def _unit_of_work(self) -> Iterator[Session]:
        try:
            yield self._session
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

    def _require_project(self, project_id: uuid.UUID) -> Project:
        project = self._session.get(Project, project_id)
        if project is None:
            raise ProjectNotFound(f"Project {project_id} not found.")
        return project

    def _lock_project(self, project_id: uuid.UUID) -> Project:
        stmt = select(Project).where(Project.id == project_id).with_for_update()
        project = self._session.execute(stmt).scalars().first()
        if project is None:
            raise ProjectNotFound(f"Project {project_id} not found.")
        return project

    def _lock_membership(self, project_id: uuid.UUID, user_id: uuid.UUID) -> Optional[ProjectMember]:
        stmt = (
            select(ProjectMember)
            .where(ProjectMember.project_id == project_id)
            .where(ProjectMember.user_id == user_id)
            .with_for_update()
        )
        return self._session.execute(stmt).scalars().first()

    def _acting_role(self, project_id: uuid.UUID, acting_user_id: uuid.UUID) -> Optional[ProjectRole]:
        acting = self._lock_membership(project_id, acting_user_id)
        return acting.role if acting is not None else None

    def _deny(self, action: str, project_id: uuid.UUID, acting_user_id: uuid.UUID, reason: str) -> PermissionDenied:
        _log(
            {
                "event": "membership_denied",
                "action": action,
                "project_id": str(project_id),
                "acting_user_id": str(acting_user_id),
                "reason": reason,
            }
        )
        return PermissionDenied(reason)

    async def create_project(
        self,
        *,
        creator_id: uuid.UUID,
        name: str,
        description: Optional[str] = None,
    ) -> ProjectDTO:
        """Create a project; the creator joins it as LEAD."""
        clean_name = name.strip()
        if not clean_name:
            raise ValueError("Project name is required.")

        with self._unit_of_work() as s:
            if s.get(User, creator_id) is None:
                raise UserNotFound(f"User {creator_id} not found.")
            project = Project(
                name=clean_name,
                description=(description or "").strip() or None,
                status=ProjectStatus.ACTIVE,
            )
            s.add(project)
            s.flush()
            s.add(
                ProjectMember(
                    project_id=project.id,
                    user_id=creator_id,
                    role=ProjectRole.LEAD,
                    joined_at=datetime.now(tz=UTC),
                )
            )

        _log({"event": "project_created", "project_id": str(project.id), "creator_id": str(creator_id)})
        return to_project_dto(project)

    async def add_member(
        self,
        *,
        project_id: uuid.UUID,
        acting_user_id: uuid.UUID,
        user_id: uuid.UUID,
        role: ProjectRole = ProjectRole.MEMBER,
    ) -> MembershipDTO:
        try:
            with self._unit_of_work() as s:
                self._require_project(project_id)
                acting_role = self._acting_role(project_id, acting_user_id)
                if not can_perform(acting_role, Capability.ADD_MEMBERS):
                    raise self._deny("add_member", project_id, acting_user_id, "Only project leads can add members.")
                if s.get(User, user_id) is None:
                    raise UserNotFound(f"User {user_id} not found.")
                if self._lock_membership(project_id, user_id) is not None:
                    raise MembershipConflict("User is already a member of this project.")

                member = ProjectMember(
                    project_id=project_id,
                    user_id=user_id,
                    role=ProjectRole(role),
                    joined_at=datetime.now(tz=UTC),
                )
                s.add(member)
        except IntegrityError as e:
            # Concurrent insert of the same (project, user) pair.
            raise MembershipConflict("User is already a member of this project.") from e

        _log(
            {
                "event": "member_added",
                "project_id": str(project_id),
                "user_id": str(user_id),
                "role": member.role.value,
                "acting_user_id": str(acting_user_id),
            }
        )
        return to_membership_dto(member)

    async def change_member_role(
        self,
        *,
        project_id: uuid.UUID,
        acting_user_id: uuid.UUID,
        user_id: uuid.UUID,
        new_role: ProjectRole,
    ) -> MembershipDTO:
        with self._unit_of_work():
            self._require_project(project_id)
            acting_role = self._acting_role(project_id, acting_user_id)
            if not can_perform(acting_role, Capability.CHANGE_ROLES):
                raise self._deny("change_role", project_id, acting_user_id, "Only project leads can change roles.")
            member = self._lock_membership(project_id, user_id)
            if member is None:
                raise MembershipNotFound(f"User {user_id} is not a member of project {project_id}.")
            old_role = member.role
            try:
                member.role = authorize_role_change(acting_role, old_role, new_role)
            except PermissionDenied as e:
                raise self._deny("change_role", project_id, acting_user_id, str(e)) from e

        _log(
            {
                "event": "member_role_changed",
                "project_id": str(project_id),
                "user_id": str(user_id),
                "from_role": old_role.value,
                "to_role": member.role.value,
                "acting_user_id": str(acting_user_id),
            }
        )
        return to_membership_dto(member)

    async def remove_member(
        self,
        *,
        project_id: uuid.UUID,
        acting_user_id: uuid.UUID,
        user_id: uuid.UUID,
    ) -> None:
        with self._unit_of_work() as s:
            self._require_project(project_id)
            acting_role = self._acting_role(project_id, acting_user_id)
            if not can_perform(acting_role, Capability.REMOVE_MEMBERS):
                raise self._deny("remove_member", project_id, acting_user_id, "Only project leads can remove members.")
            member = self._lock_membership(project_id, user_id)
            if member is None:
                raise MembershipNotFound(f"User {user_id} is not a member of project {project_id}.")
            if not can_manage_user(acting_role, member.role):
                raise self._deny(
                    "remove_member",
                    project_id,
                    acting_user_id,
                    "Cannot remove a member of equal or higher role.",
                )
            s.delete(member)

        _log(
            {
                "event": "member_removed",
                "project_id": str(project_id),
                "user_id": str(user_id),
                "acting_user_id": str(acting_user_id),
            }
        )

    async def update_project(
        self,
        *,
        project_id: uuid.UUID,
        acting_user_id: uuid.UUID,
        name: Optional[str] = None,
        description: Optional[str] = None,
        status: Optional[ProjectStatus] = None,
    ) -> ProjectDTO:
        """Edit project details. Status changes also need manage_project_settings."""
        clean_name = name.strip() if name is not None else None
        if clean_name == "":
            raise ValueError("Project name is required.")

        with self._unit_of_work():
            project = self._lock_project(project_id)
            acting_role = self._acting_role(project_id, acting_user_id)
            if not can_perform(acting_role, Capability.EDIT_PROJECT):
                raise self._deny("update_project", project_id, acting_user_id, "Only project leads can update projects.")
            if status is not None and not can_perform(acting_role, Capability.MANAGE_PROJECT_SETTINGS):
                raise self._deny(
                    "update_project",
                    project_id,
                    acting_user_id,
                    "Only project leads can change project status.",
                )

            changed: list[str] = []
            if clean_name is not None and clean_name != project.name:
                project.name = clean_name
                changed.append("name")
            if description is not None:
                project.description = description.strip() or None
                changed.append("description")
            if status is not None and ProjectStatus(status) is not project.status:
                project.status = ProjectStatus(status)
                changed.append("status")

        _log(
            {
                "event": "project_updated",
                "project_id": str(project_id),
                "fields": changed,
                "acting_user_id": str(acting_user_id),
            }
        )
        return to_project_dto(project)

    async def delete_project(self, *, project_id: uuid.UUID, acting_user_id: uuid.UUID) -> None:
        """Delete a project together with its memberships."""
        with self._unit_of_work() as s:
            project = self._lock_project(project_id)
            acting_role = self._acting_role(project_id, acting_user_id)
            if not can_perform(acting_role, Capability.DELETE_PROJECT):
                raise self._deny("delete_project", project_id, acting_user_id, "Only project leads can delete projects.")
            s.execute(delete(ProjectMember).where(ProjectMember.project_id == project_id))
            s.delete(project)

        _log({"event": "project_deleted", "project_id": str(project_id), "acting_user_id": str(acting_user_id)})
