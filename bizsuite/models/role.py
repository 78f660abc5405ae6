from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

ADMIN = "admin"
HR = "hr"
FINANCE = "finance"
MANAGER = "manager"
EMPLOYEE = "employee"

# Canonical ranking. Higher wins; ties resolve by position in ROLES.
ROLE_PRIORITY: dict[str, int] = {
    ADMIN: 100,
    HR: 80,
    FINANCE: 80,
    MANAGER: 60,
    EMPLOYEE: 20,
}

ROLES: tuple[str, ...] = (ADMIN, HR, FINANCE, MANAGER, EMPLOYEE)

DEFAULT_ROLE = EMPLOYEE


@dataclass(frozen=True, slots=True)
class RoleAssignment:
    user_id: str
    org_id: UUID
    role: str


@dataclass(frozen=True, slots=True)
class RoleGrant:
    role: str
    priority: int


def rank_roles(roles: list[str] | tuple[str, ...] | set[str]) -> list[RoleGrant]:
    """Deduplicate and order roles from highest to lowest priority."""
    unique = {r for r in roles if r in ROLE_PRIORITY}
    ordered = sorted(unique, key=lambda r: (-ROLE_PRIORITY[r], ROLES.index(r)))
    return [RoleGrant(role=r, priority=ROLE_PRIORITY[r]) for r in ordered]


def highest_role(roles: list[str] | tuple[str, ...] | set[str]) -> str | None:
    ranked = rank_roles(roles)
    return ranked[0].role if ranked else None
