"""Row-level authorization as a pure function table.

Every org-scoped data access resolves to one question:

    authorize(actor_role, actor_org_id, resource_org_id, operation)

The answer depends only on the arguments: the actor's stored role, the
organization the actor is acting in, the organization that owns the
row, and an operation string of the form ``<module>.<resource>.<action>``.
Nothing here touches storage, so the whole matrix is testable with
plain asserts.

PATTERNS
----------
Grants are exact operation strings or a prefix ending in ``.*``:

    "hrms.leave_requests.*"  matches  "hrms.leave_requests.approve"
    "*"                      matches  everything (admin)

A cross-tenant access (actor_org_id != resource_org_id) is denied
before the matrix is consulted, whatever the role.
"""

from __future__ import annotations

from uuid import UUID

from bizsuite.models.role import ADMIN, EMPLOYEE, FINANCE, HR, MANAGER

_EMPLOYEE_GRANTS = frozenset(
    {
        "org.profile.read",
        "org.onboarding.complete",
        "notifications.own.*",
        "notifications.dispatch",
        "hrms.leave_requests.create",
        "hrms.leave_requests.read_own",
        "hrms.attendance.read_own",
        "hrms.corrections.create",
        "hrms.reimbursements.create",
        "hrms.reimbursements.read_own",
        "performance.goals.read_own",
        "performance.memos.read",
    }
)

_MANAGER_GRANTS = _EMPLOYEE_GRANTS | {
    "org.members.read",
    "hrms.leave_requests.approve",
    "hrms.leave_requests.read_team",
    "hrms.corrections.approve",
    "hrms.reimbursements.approve_manager",
    "hrms.attendance.read_team",
    "performance.goals.*",
}

_HR_GRANTS = _MANAGER_GRANTS | {
    "hrms.*",
    "performance.*",
}

_FINANCE_GRANTS = _EMPLOYEE_GRANTS | {
    "org.members.read",
    "financial.*",
    "hrms.payroll.*",
    "hrms.reimbursements.approve_finance",
}

PERMISSIONS: dict[str, frozenset[str]] = {
    ADMIN: frozenset({"*"}),
    HR: frozenset(_HR_GRANTS),
    FINANCE: frozenset(_FINANCE_GRANTS),
    MANAGER: frozenset(_MANAGER_GRANTS),
    EMPLOYEE: _EMPLOYEE_GRANTS,
}


def permissions_for(role: str | None) -> frozenset[str]:
    if role is None:
        return frozenset()
    return PERMISSIONS.get(role, frozenset())


def _grant_matches(grant: str, operation: str) -> bool:
    if grant == "*" or grant == operation:
        return True
    return grant.endswith(".*") and operation.startswith(grant[:-1])


def is_permitted(role: str | None, operation: str) -> bool:
    return any(_grant_matches(g, operation) for g in permissions_for(role))


def authorize(
    actor_role: str | None,
    actor_org_id: UUID | None,
    resource_org_id: UUID | None,
    operation: str,
) -> bool:
    if actor_org_id is None or resource_org_id is None:
        return False
    if actor_org_id != resource_org_id:
        return False
    return is_permitted(actor_role, operation)
