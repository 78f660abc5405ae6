"""Role session endpoint and the developer role preview.

The preview changes what the session reports for the UI.  It never
changes what the server authorizes: org-scoped routes read the stored
role on every request.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from bizsuite.api import sessions, stores
from bizsuite.services.role_preview import PreviewRoleSession
from tests.conftest import add_test_member, auth, create_test_org, mint_token


@pytest.fixture
def dev_preview(monkeypatch) -> None:
    monkeypatch.setattr(sessions, "_preview_session_cls", PreviewRoleSession)


@pytest.fixture
def no_preview(monkeypatch) -> None:
    monkeypatch.setattr(sessions, "_preview_session_cls", None)


def test_session_reports_stored_role(client: TestClient) -> None:
    org = create_test_org()
    add_test_member(org.id, "hr-user", "hr", "employee")

    resp = client.get(
        f"/v1/orgs/{org.id}/session", headers=auth(mint_token(username="hr-user"))
    )

    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "resolved"
    assert body["actual_role"] == "hr"
    assert body["effective_role"] == "hr"
    assert body["is_impersonating"] is False
    assert body["available_roles"] == ["hr", "employee"]
    assert "hrms.*" in body["permissions"]


def test_session_without_assignment_defaults_to_employee(client: TestClient) -> None:
    org = create_test_org()
    resp = client.get(
        f"/v1/orgs/{org.id}/session", headers=auth(mint_token(username="new-hire"))
    )
    assert resp.json()["effective_role"] == "employee"


def test_session_requires_token(client: TestClient) -> None:
    org = create_test_org()
    assert client.get(f"/v1/orgs/{org.id}/session").status_code == 401


def test_failed_role_fetch_reports_no_role(client: TestClient, monkeypatch) -> None:
    org = create_test_org()

    async def broken_fetch(*args, **kwargs):
        raise RuntimeError("db unavailable")

    monkeypatch.setattr(sessions.role_service, "fetch_roles", broken_fetch)

    resp = client.get(
        f"/v1/orgs/{org.id}/session", headers=auth(mint_token(username="u1"))
    )

    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "failed"
    assert body["effective_role"] is None
    assert body["permissions"] == []


def test_preview_changes_effective_role_only(
    client: TestClient, dev_preview: None
) -> None:
    org = create_test_org()
    add_test_member(org.id, "boss", "admin")
    headers = {**auth(mint_token(username="boss")), "X-Preview-Role": "employee"}

    resp = client.get(f"/v1/orgs/{org.id}/session", headers=headers)

    body = resp.json()
    assert body["actual_role"] == "admin"
    assert body["effective_role"] == "employee"
    assert body["is_impersonating"] is True
    assert body["available_roles"] == ["admin", "hr", "finance", "manager", "employee"]
    assert "org.members.read" not in body["permissions"]
    assert stores.tenant_store._data.roles[(org.id, "boss")] == ("admin",)


def test_preview_down_does_not_reduce_server_authorization(
    client: TestClient, dev_preview: None
) -> None:
    org = create_test_org()
    add_test_member(org.id, "boss", "admin")
    headers = {**auth(mint_token(username="boss")), "X-Preview-Role": "employee"}

    resp = client.get(f"/v1/orgs/{org.id}/members", headers=headers)

    assert resp.status_code == 200


def test_preview_up_does_not_grant_server_authorization(
    client: TestClient, dev_preview: None
) -> None:
    org = create_test_org()
    add_test_member(org.id, "emp", "employee")
    headers = {**auth(mint_token(username="emp")), "X-Preview-Role": "admin"}

    session = client.get(f"/v1/orgs/{org.id}/session", headers=headers)
    assert session.json()["effective_role"] == "admin"

    resp = client.get(f"/v1/orgs/{org.id}/members", headers=headers)
    assert resp.status_code == 403


def test_unknown_preview_role_is_422(client: TestClient, dev_preview: None) -> None:
    org = create_test_org()
    headers = {**auth(mint_token(username="u1")), "X-Preview-Role": "owner"}
    resp = client.get(f"/v1/orgs/{org.id}/session", headers=headers)
    assert resp.status_code == 422


def test_preview_header_ignored_outside_dev_mode(
    client: TestClient, no_preview: None
) -> None:
    org = create_test_org()
    add_test_member(org.id, "emp", "employee")
    headers = {**auth(mint_token(username="emp")), "X-Preview-Role": "admin"}

    body = client.get(f"/v1/orgs/{org.id}/session", headers=headers).json()

    assert body["effective_role"] == "employee"
    assert body["is_impersonating"] is False
    assert body["available_roles"] == ["employee"]
