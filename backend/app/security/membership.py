"""Membership resolution: (project, user) -> project role.

Design:
- The lookup returns the caller's full membership list; the resolver scans it.
- Non-members resolve to OBSERVER with is_project_member=False.
- A failed lookup is its own outcome (FETCH_FAILED), never "not a member".
  The last known role for the same (user, project) is kept on failure so a
  transient outage does not drop privileges.
- Project ids are compared in canonical form: a UUID written in upper case,
  without hyphens or in braces matches the stored lower-case form.
- The last-known cache lives as long as the resolver. The HTTP layer builds
  one per request; long-lived resolvers evict the oldest entries past
  `max_entries`.
"""

from __future__ import annotations

import json
import logging
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol, Sequence, Union

from app.security.permissions import (
    NO_PERMISSIONS,
    Capability,
    PermissionSet,
    can_manage_user,
    permissions_of,
)
from app.security.roles import ProjectRole, RoleLike, has_higher_or_equal_role, parse_project_role


logger = logging.getLogger("teamhub.membership")

DEFAULT_MAX_ENTRIES = 1024


class MembershipEntry(Protocol):
    project_id: str
    role: Union[ProjectRole, str]


class MembershipLookup(Protocol):
    async def get_my_projects(self, user_id: str) -> Sequence[MembershipEntry]:
        """Return every membership of user_id. Errors propagate."""
        ...


class ResolutionStatus(str, Enum):
    RESOLVED = "RESOLVED"
    NO_ROLE = "NO_ROLE"
    FETCH_FAILED = "FETCH_FAILED"


@dataclass(frozen=True, slots=True)
class ProjectRoleResolution:
    status: ResolutionStatus
    project_id: Optional[str]
    role: Optional[ProjectRole]
    is_project_member: bool
    error: Optional[str] = None

    @property
    def permissions(self) -> PermissionSet:
        if self.role is None:
            return NO_PERMISSIONS
        return permissions_of(self.role)

    def can_perform(self, capability: Capability) -> bool:
        return self.permissions.allows(capability)

    def has_higher_or_equal_role(self, target: RoleLike) -> bool:
        if self.role is None:
            return False
        return has_higher_or_equal_role(self.role, target)

    def can_manage_user(self, target: RoleLike) -> bool:
        if self.role is None:
            return False
        return can_manage_user(self.role, target)


def canonical_id(value: object) -> str:
    """Lower-case hyphenated form for UUIDs; other ids are only stripped."""
    text = str(value).strip()
    try:
        return str(uuid.UUID(text))
    except ValueError:
        return text


def no_role(project_id: Optional[str] = None) -> ProjectRoleResolution:
    return ProjectRoleResolution(
        status=ResolutionStatus.NO_ROLE,
        project_id=project_id,
        role=None,
        is_project_member=False,
    )


class MembershipResolver:
    """Resolve a user's role in a project from their membership list."""

    def __init__(self, lookup: MembershipLookup, *, max_entries: int = DEFAULT_MAX_ENTRIES) -> None:
        self._lookup = lookup
        self._max_entries = max(1, max_entries)
        self._last_known: dict[tuple[str, str], ProjectRoleResolution] = {}

    async def resolve(
        self,
        project_id: Optional[str],
        user_id: Optional[str],
        is_authenticated: bool,
    ) -> ProjectRoleResolution:
        if not project_id or not user_id or not is_authenticated:
            return no_role(project_id or None)

        project_id = canonical_id(project_id)
        key = (str(user_id), project_id)
        try:
            memberships = await self._lookup.get_my_projects(str(user_id))
        except Exception as e:  # noqa: BLE001
            prior = self._last_known.get(key)
            logger.warning(
                json.dumps(
                    {
                        "event": "membership_fetch_failed",
                        "project_id": str(project_id),
                        "retained_role": prior.role.value if prior and prior.role else None,
                        "error": type(e).__name__,
                    }
                )
            )
            return ProjectRoleResolution(
                status=ResolutionStatus.FETCH_FAILED,
                project_id=str(project_id),
                role=prior.role if prior else None,
                is_project_member=prior.is_project_member if prior else False,
                error=str(e) or type(e).__name__,
            )

        entry = next((m for m in memberships if canonical_id(m.project_id) == project_id), None)
        if entry is None:
            resolution = ProjectRoleResolution(
                status=ResolutionStatus.RESOLVED,
                project_id=str(project_id),
                role=ProjectRole.OBSERVER,
                is_project_member=False,
            )
        else:
            resolution = ProjectRoleResolution(
                status=ResolutionStatus.RESOLVED,
                project_id=str(project_id),
                role=parse_project_role(entry.role),
                is_project_member=True,
            )

        self._remember(key, resolution)
        return resolution

    def _remember(self, key: tuple[str, str], resolution: ProjectRoleResolution) -> None:
        self._last_known.pop(key, None)
        self._last_known[key] = resolution
        while len(self._last_known) > self._max_entries:
            del self._last_known[next(iter(self._last_known))]
