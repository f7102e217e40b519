from __future__ import annotations

import json
import logging

import app.main as main_mod
from app.security.roles import ProjectRole
from conftest import auth_header, seed_membership, seed_project, seed_user


def test_request_id_propagates_and_access_log_is_sanitized(client, memory_session_factory, monkeypatch):
    with memory_session_factory() as s:
        user = seed_user(s)
        project = seed_project(s)
        seed_membership(s, project, user, ProjectRole.MEMBER)
        user_id, project_id = user.id, project.id
        s.commit()

    captured: list[str] = []
    orig_info = main_mod.logger.info

    def _capture_info(msg, *args, **kwargs):
        captured.append(str(msg))
        return orig_info(msg, *args, **kwargs)

    # Capture access log emission regardless of handler wiring.
    main_mod.logger.setLevel(logging.INFO)
    monkeypatch.setattr(main_mod.logger, "info", _capture_info)

    r = client.get(
        f"/v1/projects/{project_id}/access",
        headers={**auth_header(user_id), "x-request-id": "req-123"},
    )
    assert r.status_code == 200
    assert r.headers["x-request-id"] == "req-123"

    access_lines = [m for m in captured if '"event": "access"' in m]
    assert access_lines, "No access logs captured."

    payload = json.loads(access_lines[-1])
    assert payload["request_id"] == "req-123"
    assert payload["path"] == f"/v1/projects/{project_id}/access"
    assert payload["status_code"] == 200
    assert "authorization" not in access_lines[-1].lower()
    assert "bearer" not in access_lines[-1].lower()


def test_membership_changes_are_audited(client, memory_session_factory, caplog):
    with memory_session_factory() as s:
        lead = seed_user(s)
        member = seed_user(s)
        project = seed_project(s)
        seed_membership(s, project, lead, ProjectRole.LEAD)
        seed_membership(s, project, member, ProjectRole.MEMBER)
        lead_id, member_id, project_id = lead.id, member.id, project.id
        s.commit()

    with caplog.at_level(logging.INFO, logger="teamhub.membership"):
        r = client.patch(
            f"/v1/projects/{project_id}/members/{member_id}",
            json={"role": "OBSERVER"},
            headers=auth_header(lead_id),
        )
        assert r.status_code == 200
        r = client.patch(
            f"/v1/projects/{project_id}/members/{lead_id}",
            json={"role": "OBSERVER"},
            headers=auth_header(member_id),
        )
        assert r.status_code == 403

    events = [json.loads(rec.getMessage()) for rec in caplog.records if rec.name == "teamhub.membership"]
    changed = [e for e in events if e["event"] == "member_role_changed"]
    denied = [e for e in events if e["event"] == "membership_denied"]
    assert changed and changed[0]["from_role"] == "MEMBER" and changed[0]["to_role"] == "OBSERVER"
    assert denied and denied[0]["action"] == "change_role"
