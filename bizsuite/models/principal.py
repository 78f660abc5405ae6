from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

SUPER_ADMIN = "super_admin"


@dataclass(frozen=True, slots=True)
class Principal:
    """Authenticated identity extracted from a validated JWT.

    Platform-level fields (always set):
        user_id: subject from JWT
        roles: platform roles ("user", "super_admin")

    Org-level fields (set by resolve_org_principal for org-scoped routes):
        org_id: organization named in the URL
        org_role: the caller's highest-priority STORED role in that org.
            Never a previewed role; server-side checks read only this.
    """

    user_id: str
    roles: frozenset[str]
    org_id: UUID | None = None
    org_role: str | None = None

    def has_role(self, role: str) -> bool:
        return role in self.roles

    def has_org_role(self, role: str) -> bool:
        return self.org_role == role

    def has_any_org_role(self, roles: set[str] | frozenset[str]) -> bool:
        return self.org_role in roles

    def is_super_admin(self) -> bool:
        return SUPER_ADMIN in self.roles
