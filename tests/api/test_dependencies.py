"""require_org_permission wired into a bare router.

Routes built on the factory take the caller from the bearer token and
the org from the path; no other client input is part of their signature.
"""

from __future__ import annotations

from uuid import uuid4

import pytest
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient

from bizsuite.api.dependencies import require_org_permission
from bizsuite.models.principal import Principal
from bizsuite.repos.tenant_store import InMemoryTenantStore
from tests.conftest import auth, mint_token

ORG = uuid4()


@pytest.fixture
def guarded_client() -> TestClient:
    store = InMemoryTenantStore()
    store._data.roles[(ORG, "hr-lead")] = ("hr",)
    store._data.roles[(ORG, "staff")] = ("employee",)
    can_read = require_org_permission("org.members.read", store)

    app = FastAPI()

    @app.get("/orgs/{org_id}/members")
    async def members(principal: Principal = Depends(can_read)) -> dict:
        return {"user": principal.user_id, "role": principal.org_role}

    return TestClient(app)


def test_guarded_route_takes_no_query_parameters(guarded_client: TestClient) -> None:
    schema = guarded_client.app.openapi()  # type: ignore[attr-defined]
    params = schema["paths"]["/orgs/{org_id}/members"]["get"]["parameters"]
    assert {p["name"] for p in params} == {"org_id"}


def test_permitted_role_passes(guarded_client: TestClient) -> None:
    resp = guarded_client.get(
        f"/orgs/{ORG}/members", headers=auth(mint_token(username="hr-lead"))
    )
    assert resp.status_code == 200
    assert resp.json() == {"user": "hr-lead", "role": "hr"}


@pytest.mark.parametrize(
    "username,expected", [("staff", 403), ("outsider", 403), (None, 401)]
)
def test_other_callers_refused(
    guarded_client: TestClient, username: str | None, expected: int
) -> None:
    token = mint_token(username=username) if username else None
    resp = guarded_client.get(f"/orgs/{ORG}/members", headers=auth(token))
    assert resp.status_code == expected
