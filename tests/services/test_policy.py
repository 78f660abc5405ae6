from __future__ import annotations

from uuid import uuid4

import pytest

from bizsuite.models.role import ROLES
from bizsuite.services.policy import authorize, is_permitted, permissions_for

ORG_A = uuid4()
ORG_B = uuid4()


@pytest.mark.parametrize(
    "role,operation,expected",
    [
        ("admin", "financial.invoices.delete", True),
        ("admin", "org.members.read", True),
        ("hr", "hrms.employees.update", True),
        ("hr", "performance.memos.create", True),
        ("hr", "financial.invoices.read", False),
        ("finance", "financial.invoices.create", True),
        ("finance", "hrms.payroll.run", True),
        ("finance", "hrms.employees.update", False),
        ("manager", "hrms.leave_requests.approve", True),
        ("manager", "hrms.payroll.run", False),
        ("manager", "performance.goals.update", True),
        ("employee", "hrms.leave_requests.create", True),
        ("employee", "hrms.leave_requests.approve", False),
        ("employee", "org.members.read", False),
        ("employee", "notifications.own.read", True),
        (None, "org.profile.read", False),
        ("owner", "org.profile.read", False),
    ],
)
def test_permission_matrix(role, operation: str, expected: bool) -> None:
    assert authorize(role, ORG_A, ORG_A, operation) is expected


@pytest.mark.parametrize("role", ROLES)
def test_cross_org_access_is_always_denied(role: str) -> None:
    assert authorize(role, ORG_A, ORG_B, "org.profile.read") is False


def test_missing_org_is_denied() -> None:
    assert authorize("admin", None, ORG_A, "org.profile.read") is False
    assert authorize("admin", ORG_A, None, "org.profile.read") is False


def test_prefix_grant_does_not_match_sibling_namespace() -> None:
    # "financial.*" must not cover "financialx.thing"
    assert not is_permitted("finance", "financialx.ledger.read")


def test_only_admin_can_redeem_subscriptions() -> None:
    holders = [r for r in ROLES if is_permitted(r, "org.subscription.redeem")]
    assert holders == ["admin"]


def test_grants_widen_with_rank() -> None:
    assert permissions_for("employee") < permissions_for("manager")
    assert permissions_for("manager") < permissions_for("hr")
    assert permissions_for("employee") < permissions_for("finance")
