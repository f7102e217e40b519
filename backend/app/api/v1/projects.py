"""Project access and membership endpoints."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, HTTPException, Response, status

from app.api.deps import (
    get_member_repository,
    get_membership_resolver,
    get_membership_service,
    http_error,
)
from app.repositories.project_member_repo import MembershipDTO, ProjectDTO, ProjectMemberRepository, parse_uuid
from app.schemas.project import (
    MemberAddRequest,
    MemberResponse,
    MemberRoleUpdateRequest,
    MembershipResponse,
    ProjectAccessResponse,
    ProjectCreateRequest,
    ProjectResponse,
    ProjectUpdateRequest,
)
from app.security.auth import Principal, get_current_principal, require_system_roles
from app.security.errors import AccessControlError
from app.models.project import ProjectStatus
from app.security.membership import MembershipResolver, ProjectRoleResolution, ResolutionStatus
from app.security.permissions import Capability
from app.security.roles import ProjectRole, SystemRole
from app.services.membership_service import MembershipService


router = APIRouter(dependencies=[Depends(get_current_principal)])


def _path_uuid(value: str, name: str) -> uuid.UUID:
    parsed = parse_uuid(value)
    if parsed is None:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=f"Invalid {name} UUID.")
    return parsed


def _acting_uuid(principal: Principal) -> uuid.UUID:
    parsed = parse_uuid(principal.sub)
    if parsed is None:
        # Subjects that are not user ids can never hold memberships.
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied.")
    return parsed


async def _require_project(repo: ProjectMemberRepository, project_id: str) -> uuid.UUID:
    pid = _path_uuid(project_id, "project_id")
    if await repo.get_project(pid) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Project not found.")
    return pid


async def _resolve(resolver: MembershipResolver, project_id: uuid.UUID, principal: Principal) -> ProjectRoleResolution:
    resolution = await resolver.resolve(str(project_id), principal.sub, is_authenticated=True)
    if resolution.status is ResolutionStatus.FETCH_FAILED:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Membership lookup failed; project access could not be determined.",
        )
    return resolution


def _to_project_response(p: ProjectDTO) -> ProjectResponse:
    return ProjectResponse(
        project_id=p.id,
        name=p.name,
        description=p.description,
        status=p.status,
        created_at=p.created_at,
    )


def _to_membership_response(m: MembershipDTO) -> MembershipResponse:
    return MembershipResponse(
        project_id=m.project_id,
        user_id=m.user_id,
        role=m.role,  # type: ignore[arg-type]
        joined_at=m.joined_at,
        project_name=m.project_name,
    )


@router.get("/mine", response_model=list[MembershipResponse])
async def list_my_projects(
    principal: Principal = Depends(get_current_principal),
    repo: ProjectMemberRepository = Depends(get_member_repository),
) -> list[MembershipResponse]:
    """Memberships of the calling user."""
    try:
        memberships = await repo.get_my_projects(principal.sub)
    except AccessControlError as e:
        raise http_error(e) from e
    return [_to_membership_response(m) for m in memberships]


@router.get("/{project_id}/access", response_model=ProjectAccessResponse)
async def get_project_access(
    project_id: str,
    principal: Principal = Depends(get_current_principal),
    resolver: MembershipResolver = Depends(get_membership_resolver),
    repo: ProjectMemberRepository = Depends(get_member_repository),
) -> ProjectAccessResponse:
    """Caller's role and capability flags in an existing project."""
    pid = await _require_project(repo, project_id)
    resolution = await _resolve(resolver, pid, principal)
    return ProjectAccessResponse(
        project_id=str(pid),
        status=resolution.status.value,  # type: ignore[arg-type]
        role=resolution.role.value if resolution.role else None,  # type: ignore[arg-type]
        is_project_member=resolution.is_project_member,
        permissions=resolution.permissions.to_dict(),
    )


@router.get("/{project_id}/members", response_model=list[MemberResponse])
async def list_project_members(
    project_id: str,
    principal: Principal = Depends(get_current_principal),
    resolver: MembershipResolver = Depends(get_membership_resolver),
    repo: ProjectMemberRepository = Depends(get_member_repository),
) -> list[MemberResponse]:
    """Members of a project. Requires membership with view_members, or a staff system role."""
    pid = await _require_project(repo, project_id)

    if not principal.system_permissions.can_view_all_projects:
        resolution = await _resolve(resolver, pid, principal)
        if not (resolution.is_project_member and resolution.can_perform(Capability.VIEW_MEMBERS)):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied.")

    members = await repo.list_project_members(pid)
    return [
        MemberResponse(
            user_id=m.user_id,
            email=m.email,
            display_name=m.display_name,
            role=m.role,  # type: ignore[arg-type]
            joined_at=m.joined_at,
        )
        for m in members
    ]


@router.post(
    "",
    response_model=ProjectResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[
        Depends(require_system_roles(SystemRole.ADMIN, SystemRole.PROJECT_MANAGER, SystemRole.CONTRIBUTOR))
    ],
)
async def create_project(
    body: ProjectCreateRequest,
    principal: Principal = Depends(get_current_principal),
    service: MembershipService = Depends(get_membership_service),
) -> ProjectResponse:
    """Create a project with the caller as LEAD."""
    creator_id = _acting_uuid(principal)
    try:
        p = await service.create_project(creator_id=creator_id, name=body.name, description=body.description)
    except AccessControlError as e:
        raise http_error(e) from e
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)) from e
    return _to_project_response(p)


@router.patch("/{project_id}", response_model=ProjectResponse)
async def update_project(
    project_id: str,
    body: ProjectUpdateRequest,
    principal: Principal = Depends(get_current_principal),
    service: MembershipService = Depends(get_membership_service),
) -> ProjectResponse:
    """Edit project details (edit_project; status also needs manage_project_settings)."""
    pid = _path_uuid(project_id, "project_id")
    try:
        p = await service.update_project(
            project_id=pid,
            acting_user_id=_acting_uuid(principal),
            name=body.name,
            description=body.description,
            status=ProjectStatus(body.status) if body.status else None,
        )
    except AccessControlError as e:
        raise http_error(e) from e
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)) from e
    return _to_project_response(p)


@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_project(
    project_id: str,
    principal: Principal = Depends(get_current_principal),
    service: MembershipService = Depends(get_membership_service),
) -> Response:
    pid = _path_uuid(project_id, "project_id")
    try:
        await service.delete_project(project_id=pid, acting_user_id=_acting_uuid(principal))
    except AccessControlError as e:
        raise http_error(e) from e
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{project_id}/members", response_model=MembershipResponse, status_code=status.HTTP_201_CREATED)
async def add_project_member(
    project_id: str,
    body: MemberAddRequest,
    principal: Principal = Depends(get_current_principal),
    service: MembershipService = Depends(get_membership_service),
) -> MembershipResponse:
    pid = _path_uuid(project_id, "project_id")
    uid = _path_uuid(body.user_id, "user_id")
    try:
        m = await service.add_member(
            project_id=pid,
            acting_user_id=_acting_uuid(principal),
            user_id=uid,
            role=ProjectRole(body.role),
        )
    except AccessControlError as e:
        raise http_error(e) from e
    return _to_membership_response(m)


@router.patch("/{project_id}/members/{user_id}", response_model=MembershipResponse)
async def change_project_member_role(
    project_id: str,
    user_id: str,
    body: MemberRoleUpdateRequest,
    principal: Principal = Depends(get_current_principal),
    service: MembershipService = Depends(get_membership_service),
) -> MembershipResponse:
    pid = _path_uuid(project_id, "project_id")
    uid = _path_uuid(user_id, "user_id")
    try:
        m = await service.change_member_role(
            project_id=pid,
            acting_user_id=_acting_uuid(principal),
            user_id=uid,
            new_role=ProjectRole(body.role),
        )
    except AccessControlError as e:
        raise http_error(e) from e
    return _to_membership_response(m)


@router.delete("/{project_id}/members/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_project_member(
    project_id: str,
    user_id: str,
    principal: Principal = Depends(get_current_principal),
    service: MembershipService = Depends(get_membership_service),
) -> Response:
    pid = _path_uuid(project_id, "project_id")
    uid = _path_uuid(user_id, "user_id")
    try:
        await service.remove_member(project_id=pid, acting_user_id=_acting_uuid(principal), user_id=uid)
    except AccessControlError as e:
        raise http_error(e) from e
    return Response(status_code=status.HTTP_204_NO_CONTENT)
