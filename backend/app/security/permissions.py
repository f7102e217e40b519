"""Permission derivation for project roles.

Design:
- PermissionSet is a derived, non-persisted value: one boolean per capability.
- permissions_of() is total over any input. Unknown roles fail closed.
- Management actions additionally require strict hierarchy dominance, so two
  LEADs can never demote each other through can_manage_user().
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, fields
from enum import Enum
from typing import Optional

from app.security.errors import PermissionDenied
from app.security.roles import (
    ProjectRole,
    RoleLike,
    SystemRole,
    hierarchy_level,
    parse_project_role,
)


logger = logging.getLogger("teamhub.rbac")


class Capability(str, Enum):
    VIEW_PROJECT = "view_project"
    EDIT_PROJECT = "edit_project"
    DELETE_PROJECT = "delete_project"
    MANAGE_MEMBERS = "manage_members"
    ADD_MEMBERS = "add_members"
    REMOVE_MEMBERS = "remove_members"
    CHANGE_ROLES = "change_roles"
    CREATE_KNOWLEDGE = "create_knowledge"
    EDIT_KNOWLEDGE = "edit_knowledge"
    DELETE_KNOWLEDGE = "delete_knowledge"
    UPLOAD_FILES = "upload_files"
    DELETE_FILES = "delete_files"
    VIEW_MEMBERS = "view_members"
    MANAGE_PROJECT_SETTINGS = "manage_project_settings"


@dataclass(frozen=True, slots=True)
class PermissionSet:
    """Capability flags for one role. Defaults deny everything."""

    view_project: bool = False
    edit_project: bool = False
    delete_project: bool = False
    manage_members: bool = False
    add_members: bool = False
    remove_members: bool = False
    change_roles: bool = False
    create_knowledge: bool = False
    edit_knowledge: bool = False
    delete_knowledge: bool = False
    upload_files: bool = False
    delete_files: bool = False
    view_members: bool = False
    manage_project_settings: bool = False

    def allows(self, capability: Capability) -> bool:
        return bool(getattr(self, Capability(capability).value))

    def granted(self) -> frozenset[Capability]:
        return frozenset(c for c in Capability if self.allows(c))

    def to_dict(self) -> dict[str, bool]:
        return asdict(self)

    @classmethod
    def only(cls, *capabilities: Capability) -> "PermissionSet":
        return cls(**{Capability(c).value: True for c in capabilities})


NO_PERMISSIONS = PermissionSet()

# MEMBER edit/delete rights on knowledge and files apply to their own
# resources only; see can_modify_resource().
_ROLE_PERMISSIONS: dict[ProjectRole, PermissionSet] = {
    ProjectRole.LEAD: PermissionSet(**{f.name: True for f in fields(PermissionSet)}),
    ProjectRole.MEMBER: PermissionSet.only(
        Capability.VIEW_PROJECT,
        Capability.CREATE_KNOWLEDGE,
        Capability.EDIT_KNOWLEDGE,
        Capability.DELETE_KNOWLEDGE,
        Capability.UPLOAD_FILES,
        Capability.DELETE_FILES,
        Capability.VIEW_MEMBERS,
    ),
    ProjectRole.OBSERVER: PermissionSet.only(
        Capability.VIEW_PROJECT,
        Capability.VIEW_MEMBERS,
    ),
}

_OWNERSHIP_SCOPED: frozenset[Capability] = frozenset(
    {
        Capability.EDIT_KNOWLEDGE,
        Capability.DELETE_KNOWLEDGE,
        Capability.DELETE_FILES,
    }
)


def permissions_of(role: RoleLike) -> PermissionSet:
    """Derive the PermissionSet for a role. Never raises."""
    parsed = parse_project_role(role)
    if parsed is None:
        return NO_PERMISSIONS
    perms = _ROLE_PERMISSIONS.get(parsed)
    if perms is None:
        # Role declared in the enum but missing from the table.
        logger.warning(json.dumps({"event": "role_without_permissions", "role": parsed.value}))
        return NO_PERMISSIONS
    return perms


def can_perform(role: RoleLike, capability: Capability) -> bool:
    return permissions_of(role).allows(capability)


def can_manage_user(acting_role: RoleLike, target_role: RoleLike) -> bool:
    """Acting role needs manage_members and a strictly higher rank than target."""
    if not permissions_of(acting_role).manage_members:
        return False
    return hierarchy_level(acting_role) > hierarchy_level(target_role)


def authorize_role_change(
    acting_role: RoleLike,
    target_role: RoleLike,
    new_role: ProjectRole,
) -> ProjectRole:
    """Authorize moving a member from target_role to new_role.

    Every transition between project roles is legal; the only gate is
    can_manage_user(). Returns the validated new role.
    """
    parsed_new = parse_project_role(new_role)
    if parsed_new is None:
        raise PermissionDenied(f"Unknown project role: {new_role!r}.")
    if not can_manage_user(acting_role, target_role):
        raise PermissionDenied("Role change denied: insufficient standing over target member.")
    return parsed_new


def can_modify_resource(
    role: RoleLike,
    capability: Capability,
    *,
    actor_id: str,
    owner_id: Optional[str],
) -> bool:
    """Capability check that also applies the ownership rule.

    LEADs may modify any resource. Other roles may only modify resources they
    own for ownership-scoped capabilities.
    """
    if not can_perform(role, capability):
        return False
    if Capability(capability) not in _OWNERSHIP_SCOPED:
        return True
    if parse_project_role(role) is ProjectRole.LEAD:
        return True
    return owner_id is not None and str(owner_id) == str(actor_id)


@dataclass(frozen=True, slots=True)
class SystemPermissions:
    """Project-independent checks derived from the token's system role."""

    is_authenticated: bool
    is_system_admin: bool
    can_create_projects: bool
    can_view_all_projects: bool
    can_manage_users: bool
    can_manage_content: bool
    can_access_admin_panel: bool

    @classmethod
    def for_role(cls, system_role: Optional[SystemRole], *, authenticated: bool = True) -> "SystemPermissions":
        if not authenticated or system_role is None:
            return cls(
                is_authenticated=False,
                is_system_admin=False,
                can_create_projects=False,
                can_view_all_projects=False,
                can_manage_users=False,
                can_manage_content=False,
                can_access_admin_panel=False,
            )
        admin = system_role is SystemRole.ADMIN
        staff = system_role in (SystemRole.ADMIN, SystemRole.PROJECT_MANAGER)
        return cls(
            is_authenticated=True,
            is_system_admin=admin,
            can_create_projects=system_role is not SystemRole.VIEWER,
            can_view_all_projects=staff,
            can_manage_users=admin,
            can_manage_content=staff,
            can_access_admin_panel=staff,
        )
