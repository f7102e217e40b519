from __future__ import annotations

import time

import pytest
from fastapi import HTTPException

from app.security.auth import Principal, decode_and_verify_jwt
from app.security.roles import SystemRole
from conftest import JWT_SECRET, make_jwt


@pytest.fixture(autouse=True)
def _auth_env(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("TH_JWT_SECRET", JWT_SECRET)


def test_valid_token_round_trips_claims():
    token = make_jwt("u1", "ADMIN", JWT_SECRET, exp=int(time.time()) + 60)
    claims = decode_and_verify_jwt(token)
    assert claims["sub"] == "u1"
    assert claims["role"] == "ADMIN"


def test_expired_token_rejected():
    token = make_jwt("u1", "ADMIN", JWT_SECRET, exp=int(time.time()) - 1)
    with pytest.raises(HTTPException) as exc:
        decode_and_verify_jwt(token)
    assert exc.value.status_code == 401
    assert "expired" in exc.value.detail.lower()


def test_wrong_secret_rejected():
    token = make_jwt("u1", "ADMIN", "other-secret")
    with pytest.raises(HTTPException) as exc:
        decode_and_verify_jwt(token)
    assert exc.value.status_code == 401


def test_malformed_token_rejected():
    with pytest.raises(HTTPException):
        decode_and_verify_jwt("not-a-jwt")


def test_missing_secret_is_a_configuration_error(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("TH_JWT_SECRET", "")
    with pytest.raises(RuntimeError):
        decode_and_verify_jwt(make_jwt("u1", "ADMIN", JWT_SECRET))


def test_unknown_system_role_claim_is_unauthorized(client):
    token = make_jwt("u1", "ROOT", JWT_SECRET, exp=int(time.time()) + 60)
    r = client.get("/v1/projects/mine", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 401


def test_principal_system_permissions():
    assert Principal(sub="u1", role=SystemRole.ADMIN).system_permissions.is_system_admin
    assert not Principal(sub="u1", role=SystemRole.VIEWER).system_permissions.can_create_projects
