"""Role model for project-scoped and system-level access control.

Two independent axes:
- ProjectRole: what a user may do inside one project (LEAD > MEMBER > OBSERVER).
- SystemRole: coarse, project-independent role carried on the token.

The project hierarchy is an explicit ordered tuple. Adding a role means
inserting it into ROLE_HIERARCHY at the intended rank.
"""

from __future__ import annotations

import json
import logging
from enum import Enum
from typing import Optional, Union


logger = logging.getLogger("teamhub.rbac")


class ProjectRole(str, Enum):
    """Project roles."""

    LEAD = "LEAD"
    MEMBER = "MEMBER"
    OBSERVER = "OBSERVER"


class SystemRole(str, Enum):
    """System roles (checked separately from project roles)."""

    ADMIN = "ADMIN"
    PROJECT_MANAGER = "PROJECT_MANAGER"
    CONTRIBUTOR = "CONTRIBUTOR"
    VIEWER = "VIEWER"


# Lowest privilege first.
ROLE_HIERARCHY: tuple[ProjectRole, ...] = (
    ProjectRole.OBSERVER,
    ProjectRole.MEMBER,
    ProjectRole.LEAD,
)

RoleLike = Union[ProjectRole, str, None]


def parse_project_role(value: RoleLike) -> Optional[ProjectRole]:
    """Return the ProjectRole for value, or None if it is not a known role.

    Unknown values are reported as data-integrity warnings and never upgraded.
    """
    if value is None:
        return None
    if isinstance(value, ProjectRole):
        return value
    try:
        return ProjectRole(str(value))
    except ValueError:
        logger.warning(json.dumps({"event": "unknown_project_role", "value": str(value)}))
        return None


def hierarchy_level(role: RoleLike) -> int:
    """Rank of a role (OBSERVER=1, MEMBER=2, LEAD=3); 0 for no or unknown role."""
    parsed = parse_project_role(role)
    if parsed is None:
        return 0
    return ROLE_HIERARCHY.index(parsed) + 1


def has_higher_or_equal_role(candidate: RoleLike, target: RoleLike) -> bool:
    """True when candidate ranks at or above target.

    Fails closed: an unknown or missing candidate never passes, even against
    an equally unknown target.
    """
    if parse_project_role(candidate) is None:
        return False
    return hierarchy_level(candidate) >= hierarchy_level(target)


def is_role_allowed(subject_role: SystemRole, allowed: set[SystemRole]) -> bool:
    """Default-deny system role check with explicit allow set."""
    return subject_role in allowed
