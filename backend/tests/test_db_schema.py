from __future__ import annotations

import pytest
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.security.roles import ProjectRole
from conftest import seed_membership, seed_project, seed_user


def test_expected_tables_exist(db_session: Session):
    rows = db_session.execute(
        text("select tablename from pg_tables where schemaname='public' order by tablename")
    ).fetchall()
    tables = {r[0] for r in rows}
    assert {"users", "projects", "project_members"}.issubset(tables)


def test_required_enums_exist(db_session: Session):
    rows = db_session.execute(
        text(
            """
            select t.typname
            from pg_type t
            join pg_namespace n on n.oid = t.typnamespace
            where n.nspname = 'public' and t.typtype = 'e'
            """
        )
    ).fetchall()
    enums = {r[0] for r in rows}
    assert {"system_role", "project_status", "project_role"}.issubset(enums)


def test_one_membership_per_user_and_project(db_session: Session):
    user = seed_user(db_session)
    project = seed_project(db_session)
    seed_membership(db_session, project, user, ProjectRole.MEMBER)
    with pytest.raises(IntegrityError):
        seed_membership(db_session, project, user, ProjectRole.OBSERVER)
