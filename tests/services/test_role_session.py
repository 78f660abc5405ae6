from __future__ import annotations

import asyncio
from uuid import uuid4

import pytest

from bizsuite.models.role import ROLES, rank_roles
from bizsuite.repos.tenant_store import InMemoryTenantStore
from bizsuite.services import role_service
from bizsuite.services.role_preview import PreviewRoleSession
from bizsuite.services.role_session import RoleSession


def _resolved(*roles: str) -> RoleSession:
    return RoleSession.resolved(rank_roles(roles))


def test_resolved_session_uses_highest_role() -> None:
    session = _resolved("employee", "manager")
    assert session.actual_role == "manager"
    assert session.effective_role == "manager"
    assert session.available_roles == ("manager", "employee")
    assert session.is_impersonating is False


@pytest.mark.parametrize(
    "session", [RoleSession.loading(), RoleSession.failed()], ids=["loading", "failed"]
)
def test_unresolved_session_has_no_role(session: RoleSession) -> None:
    assert session.actual_role is None
    assert session.effective_role is None


def test_plain_session_cannot_switch_roles() -> None:
    assert not hasattr(_resolved("admin"), "set_active_role")


def test_preview_changes_only_effective_role() -> None:
    preview = PreviewRoleSession(_resolved("admin"))
    preview.set_active_role("employee")

    assert preview.actual_role == "admin"
    assert preview.effective_role == "employee"
    assert preview.is_impersonating is True
    assert preview.available_roles == ROLES


def test_previewing_actual_role_ends_preview() -> None:
    preview = PreviewRoleSession(_resolved("hr"))
    preview.set_active_role("finance")
    preview.set_active_role("hr")

    assert preview.is_impersonating is False
    assert preview.effective_role == "hr"


def test_clearing_preview() -> None:
    preview = PreviewRoleSession(_resolved("hr"))
    preview.set_active_role("manager")
    preview.set_active_role(None)
    assert preview.effective_role == "hr"


def test_unknown_preview_role_rejected() -> None:
    preview = PreviewRoleSession(_resolved("admin"))
    with pytest.raises(ValueError):
        preview.set_active_role("owner")
    assert preview.is_impersonating is False


def test_preview_of_unresolved_session_has_no_effective_role() -> None:
    preview = PreviewRoleSession(RoleSession.failed())
    preview.set_active_role("admin")
    assert preview.effective_role is None


def test_preview_never_touches_the_role_store() -> None:
    store = InMemoryTenantStore()
    org_id = uuid4()
    store._data.roles[(org_id, "dev")] = ("employee",)
    grants = asyncio.run(role_service.fetch_roles(store, org_id, "dev"))

    preview = PreviewRoleSession(RoleSession.resolved(grants))
    preview.set_active_role("admin")

    assert store._data.roles == {(org_id, "dev"): ("employee",)}
    assert store._data.audit == []
    refetched = asyncio.run(role_service.fetch_roles(store, org_id, "dev"))
    assert [g.role for g in refetched] == ["employee"]
