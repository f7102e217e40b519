"""Schemas for project membership and access endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field


ProjectRoleName = Literal["LEAD", "MEMBER", "OBSERVER"]
ResolutionStatusName = Literal["RESOLVED", "NO_ROLE", "FETCH_FAILED"]
ProjectStatusName = Literal["ACTIVE", "COMPLETED", "ON_HOLD", "CANCELLED"]


class ProjectCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=5000)


class ProjectUpdateRequest(BaseModel):
    """Partial update; omitted fields stay unchanged."""

    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=5000)
    status: Optional[ProjectStatusName] = None


class ProjectResponse(BaseModel):
    project_id: str
    name: str
    description: Optional[str] = None
    status: str
    created_at: Optional[datetime] = None


class MembershipResponse(BaseModel):
    project_id: str
    user_id: str
    role: ProjectRoleName
    joined_at: datetime
    project_name: Optional[str] = None


class MemberResponse(BaseModel):
    user_id: str
    email: str
    display_name: str
    role: ProjectRoleName
    joined_at: datetime


class MemberAddRequest(BaseModel):
    user_id: str = Field(min_length=1, max_length=64)
    role: ProjectRoleName = "MEMBER"


class MemberRoleUpdateRequest(BaseModel):
    role: ProjectRoleName


class ProjectAccessResponse(BaseModel):
    """Caller's resolved standing in a project."""

    project_id: str
    status: ResolutionStatusName
    role: Optional[ProjectRoleName] = None
    is_project_member: bool
    permissions: dict[str, bool] = Field(default_factory=dict)
