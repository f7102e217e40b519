from __future__ import annotations

import os
import sys
import uuid
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Generator, Optional

import pytest
from alembic import command
from alembic.config import Config
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool


ROOT = Path(__file__).resolve().parents[2]

# Ensure `backend/app` is importable as top-level `app` for tests.
BACKEND_DIR = ROOT / "backend"
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from app.core.base import Base  # noqa: E402
from app.core.config import load_env_if_present  # noqa: E402
import app.models as _models  # noqa: F401,E402
from app.models.project import Project, ProjectStatus  # noqa: E402
from app.models.project_member import ProjectMember  # noqa: E402
from app.models.user import User  # noqa: E402
from app.security.roles import ProjectRole, SystemRole  # noqa: E402


UTC = timezone.utc
JWT_SECRET = "test-secret"


# --- PostgreSQL integration (skipped without DATABASE_URL) -------------------


def _db_url() -> str | None:
    load_env_if_present()
    return os.environ.get("DATABASE_URL")


def _alembic_config(db_url: str) -> Config:
    cfg = Config(str(ROOT / "backend" / "alembic.ini"))
    cfg.set_main_option("script_location", str(ROOT / "backend" / "alembic"))
    cfg.set_main_option("sqlalchemy.url", db_url)
    return cfg


@pytest.fixture(scope="session")
def engine() -> Engine:
    url = _db_url()
    if not url:
        pytest.skip("DATABASE_URL not set; skipping DB integration tests.")
    return create_engine(url, future=True)


@pytest.fixture(scope="session")
def migrated_engine(engine: Engine) -> Engine:
    command.upgrade(_alembic_config(engine.url.render_as_string(hide_password=False)), "head")
    return engine


@pytest.fixture()
def db_session(migrated_engine: Engine) -> Generator[Session, None, None]:
    """DB session per test with rollback."""
    factory = sessionmaker(bind=migrated_engine, class_=Session, autoflush=False, autocommit=False)
    session = factory()
    trans = session.begin()
    try:
        yield session
    finally:
        if trans.is_active:
            trans.rollback()
        session.close()


# --- In-memory SQLite for API and repository tests ---------------------------


@pytest.fixture()
def memory_session_factory() -> Generator[sessionmaker[Session], None, None]:
    eng = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(eng)
    yield sessionmaker(bind=eng, class_=Session, autoflush=False, autocommit=False)
    eng.dispose()


@pytest.fixture()
def memory_session(memory_session_factory: sessionmaker[Session]) -> Generator[Session, None, None]:
    session = memory_session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def client(
    memory_session_factory: sessionmaker[Session], monkeypatch: pytest.MonkeyPatch
) -> Generator[TestClient, None, None]:
    monkeypatch.setenv("TH_JWT_SECRET", JWT_SECRET)

    from app.api.deps import get_db_session
    from app.main import app

    def _session() -> Generator[Session, None, None]:
        s = memory_session_factory()
        try:
            yield s
        finally:
            s.close()

    app.dependency_overrides[get_db_session] = _session
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


# --- Helpers -----------------------------------------------------------------


def make_jwt(sub: str, role: str, secret: str, *, exp: int | None = None) -> str:
    """HS256 JWT generator for API tests (no external dependency)."""
    import base64, hashlib, hmac, json  # noqa: E401

    def b64url(raw: bytes) -> str:
        return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")

    header = {"alg": "HS256", "typ": "JWT"}
    payload: dict = {"sub": sub, "role": role}
    if exp is not None:
        payload["exp"] = exp

    header_b64 = b64url(json.dumps(header, separators=(",", ":")).encode("utf-8"))
    payload_b64 = b64url(json.dumps(payload, separators=(",", ":")).encode("utf-8"))
    signing_input = f"{header_b64}.{payload_b64}".encode("ascii")
    sig = hmac.new(secret.encode("utf-8"), signing_input, hashlib.sha256).digest()
    return f"{header_b64}.{payload_b64}.{b64url(sig)}"


def auth_header(sub: object, system_role: str = "CONTRIBUTOR") -> dict[str, str]:
    token = make_jwt(
        sub=str(sub),
        role=system_role,
        secret=JWT_SECRET,
        exp=int((datetime.now(tz=UTC) + timedelta(hours=1)).timestamp()),
    )
    return {"Authorization": f"Bearer {token}"}


def seed_user(db: Session, *, system_role: SystemRole = SystemRole.CONTRIBUTOR, name: Optional[str] = None) -> User:
    uid = uuid.uuid4()
    u = User(
        id=uid,
        email=f"{uid.hex[:12]}@example.test",
        display_name=name or f"user-{uid.hex[:6]}",
        system_role=system_role,
    )
    db.add(u)
    db.flush()
    return u


def seed_project(db: Session, *, name: str = "Apollo") -> Project:
    p = Project(name=name, description=None, status=ProjectStatus.ACTIVE)
    db.add(p)
    db.flush()
    return p


def seed_membership(db: Session, project: Project, user: User, role: ProjectRole) -> ProjectMember:
    m = ProjectMember(
        project_id=project.id,
        user_id=user.id,
        role=role,
        joined_at=datetime.now(tz=UTC),
    )
    db.add(m)
    db.flush()
    return m
