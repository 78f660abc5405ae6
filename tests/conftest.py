from __future__ import annotations

import sys
from dataclasses import replace
from pathlib import Path
from uuid import UUID

import pytest
from fastapi.testclient import TestClient

from bizsuite.api import stores
from bizsuite.main import app
from bizsuite.models.organization import ACTIVE, FEATURE_MODULES, Organization
from bizsuite.services import token_service

# Ensure repo root is on sys.path so `import bizsuite` works under pytest.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


@pytest.fixture(autouse=True)
def reset_tenant_store() -> None:
    """Clear organizations, keys, roles and defaults between tests."""
    stores.tenant_store._data.clear()  # type: ignore[attr-defined]


@pytest.fixture(autouse=True)
def reset_workforce_and_notifications() -> None:
    stores.workforce_repo.clear()  # type: ignore[attr-defined]
    stores.notification_repo._store.clear()  # type: ignore[attr-defined]


@pytest.fixture(autouse=True)
def reset_rate_limiter() -> None:
    """Clear rate limit buckets between tests so limits don't bleed."""
    if hasattr(stores.rate_limiter, "_buckets"):
        stores.rate_limiter._buckets.clear()  # type: ignore[union-attr]


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


def mint_token(username: str = "test-user", roles: list[str] | None = None) -> str:
    """Create a valid ES256 JWT for testing."""
    return token_service.create_access_token(sub=username, roles=roles)


def auth(token: str | None) -> dict[str, str]:
    if token is None:
        return {}
    return {"Authorization": f"Bearer {token}"}


# ---------------------------------------------------------------------------
# Tenant test helpers (write straight into the in-memory store)
# ---------------------------------------------------------------------------


def create_test_org(
    name: str = "Test Org",
    *,
    lifecycle: str = ACTIVE,
    modules: frozenset[str] = FEATURE_MODULES,
    plan: str | None = "growth",
) -> Organization:
    org = replace(
        Organization.new(name=name),
        lifecycle=lifecycle,
        enabled_modules=modules,
        plan=plan,
    )
    stores.tenant_store._data.orgs[org.id] = org  # type: ignore[attr-defined]
    return org


def add_test_member(org_id: UUID, user_id: str, *roles: str) -> None:
    data = stores.tenant_store._data  # type: ignore[attr-defined]
    data.roles[(org_id, user_id)] = tuple(roles or ("employee",))


def get_test_org(org_id: UUID) -> Organization:
    return stores.tenant_store._data.orgs[org_id]  # type: ignore[attr-defined]
