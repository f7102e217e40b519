"""API dependencies and domain-error translation."""

from __future__ import annotations

from collections.abc import Generator

from fastapi import Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.core.db import SessionLocal
from app.repositories.project_member_repo import ProjectMemberRepository
from app.security.errors import (
    AccessControlError,
    MembershipConflict,
    MembershipFetchError,
    MembershipNotFound,
    PermissionDenied,
    ProjectNotFound,
    UserNotFound,
)
from app.security.membership import MembershipResolver
from app.services.membership_service import MembershipService


def get_db_session() -> Generator[Session, None, None]:
    """Provide a database session for request scope."""
    session: Session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


def get_member_repository(db: Session = Depends(get_db_session)) -> ProjectMemberRepository:
    return ProjectMemberRepository(db)


def get_membership_resolver(
    repo: ProjectMemberRepository = Depends(get_member_repository),
) -> MembershipResolver:
    """Request-scoped resolver: its last-known-role cache starts empty per request."""
    return MembershipResolver(repo)


def get_membership_service(db: Session = Depends(get_db_session)) -> MembershipService:
    return MembershipService(db)


_STATUS_BY_ERROR: tuple[tuple[type[AccessControlError], int], ...] = (
    (PermissionDenied, status.HTTP_403_FORBIDDEN),
    (ProjectNotFound, status.HTTP_404_NOT_FOUND),
    (UserNotFound, status.HTTP_404_NOT_FOUND),
    (MembershipNotFound, status.HTTP_404_NOT_FOUND),
    (MembershipConflict, status.HTTP_409_CONFLICT),
    (MembershipFetchError, status.HTTP_503_SERVICE_UNAVAILABLE),
)


def http_error(e: AccessControlError) -> HTTPException:
    for err_type, code in _STATUS_BY_ERROR:
        if isinstance(e, err_type):
            return HTTPException(status_code=code, detail=str(e))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal error.")
