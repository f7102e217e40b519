"""Controlled errors for project access control.

Permission derivation never raises; these errors come from membership
lookups and membership writes. Routes translate them into HTTP responses.
"""

from __future__ import annotations


class AccessControlError(RuntimeError):
    """Base error for the access control layer."""


class PermissionDenied(AccessControlError):
    """Raised when the acting user may not perform the requested action."""


class ProjectNotFound(AccessControlError):
    """Raised when the referenced project does not exist."""


class UserNotFound(AccessControlError):
    """Raised when the referenced user does not exist."""


class MembershipNotFound(AccessControlError):
    """Raised when the target user is not a member of the project."""


class MembershipConflict(AccessControlError):
    """Raised when a (user, project) pair already has a membership."""


class MembershipFetchError(AccessControlError):
    """Raised when the membership lookup itself fails (storage/network).

    Distinct from non-membership: callers must not treat it as "not a member".
    """
