from __future__ import annotations

import asyncio
import uuid
from pathlib import Path

import pytest
from sqlalchemy import insert, select
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from app.models.project import Project
from app.models.project_member import ProjectMember
from app.repositories.base import BaseRepository, RepositoryReadOnlyViolation
from app.repositories.project_member_repo import ProjectMemberRepository
from app.security.errors import MembershipFetchError
from app.security.roles import ProjectRole
from conftest import seed_membership, seed_project, seed_user


ROOT = Path(__file__).resolve().parents[2]
REPO_DIR = ROOT / "backend" / "app" / "repositories"

FORBIDDEN_SUBSTRINGS = [
    ".commit(",
    ".add(",
    ".delete(",
    ".flush(",
    "insert(",
    "update(",
    "delete(",
]


def test_repository_code_has_no_obvious_writes():
    files = list(REPO_DIR.glob("**/*.py"))
    assert files, "No repository files found."

    offenders: list[str] = []
    for f in files:
        txt = f.read_text(encoding="utf-8", errors="ignore")
        for s in FORBIDDEN_SUBSTRINGS:
            if s in txt:
                offenders.append(f"{f.relative_to(ROOT)} contains {s!r}")

    assert not offenders, "Read-only repository violations:\n" + "\n".join(offenders)


def test_repository_rejects_dirty_session(memory_session: Session):
    repo: BaseRepository[ProjectMember] = BaseRepository(memory_session)
    memory_session.add(Project(name="dirty"))
    with pytest.raises(RepositoryReadOnlyViolation):
        asyncio.run(repo._execute(select(ProjectMember)))


def test_repository_rejects_non_select(memory_session: Session):
    repo: BaseRepository[ProjectMember] = BaseRepository(memory_session)
    with pytest.raises(RepositoryReadOnlyViolation):
        asyncio.run(repo._execute(insert(ProjectMember)))


def test_get_my_projects_lists_every_membership(memory_session: Session):
    user = seed_user(memory_session)
    first = seed_project(memory_session, name="First")
    second = seed_project(memory_session, name="Second")
    seed_membership(memory_session, first, user, ProjectRole.OBSERVER)
    seed_membership(memory_session, second, user, ProjectRole.LEAD)
    memory_session.commit()

    repo = ProjectMemberRepository(memory_session)
    rows = asyncio.run(repo.get_my_projects(str(user.id)))
    assert {(r.project_name, r.role) for r in rows} == {("First", "OBSERVER"), ("Second", "LEAD")}
    assert all(r.user_id == str(user.id) for r in rows)


def test_get_my_projects_with_non_uuid_subject(memory_session: Session):
    repo = ProjectMemberRepository(memory_session)
    assert asyncio.run(repo.get_my_projects("service-account")) == []
    assert asyncio.run(repo.get_my_projects(str(uuid.uuid4()))) == []


def test_get_my_projects_wraps_storage_errors(memory_session: Session, monkeypatch: pytest.MonkeyPatch):
    def down(*args, **kwargs):
        raise OperationalError("select", {}, Exception("connection refused"))

    monkeypatch.setattr(memory_session, "execute", down)
    repo = ProjectMemberRepository(memory_session)
    with pytest.raises(MembershipFetchError):
        asyncio.run(repo.get_my_projects(str(uuid.uuid4())))
